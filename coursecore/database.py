"""
coursecore/database.py
Async engine, session factory and store-native write helpers
"""
import logging
from typing import Iterable, Mapping, Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from coursecore.orm import Base

logger = logging.getLogger(__name__)


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build the async engine for the configured backend.

    SQLite: busy timeout so concurrent writers wait instead of failing at once.
    PostgreSQL: pooled connections sized for many concurrent requests.
    """
    if "sqlite" in database_url.lower():
        if ":memory:" in database_url:
            # One shared connection, otherwise every session sees its own empty db
            return create_async_engine(
                database_url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={
                "timeout": 30.0,   # SQLite busy timeout in seconds
            },
        )

    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=20,
        max_overflow=30,
        pool_timeout=30,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables. Idempotent: safe to run multiple times."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()


async def insert_ignoring_conflicts(
    session: AsyncSession,
    model,
    rows: Iterable[Mapping[str, Any]],
) -> None:
    """
    INSERT rows, silently skipping any whose primary key already exists.

    This is the store-native set-union primitive: concurrent writers adding
    different members never overwrite each other, and re-adding a member is a
    no-op.
    """
    rows = [dict(row) for row in rows]
    if not rows:
        return
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert
    stmt = insert(model).values(rows).on_conflict_do_nothing()
    await session.execute(stmt)
