"""
coursecore/orm/base.py
Declarative base and the columns every stored document carries
"""
import uuid

from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import declarative_base

from coursecore.core.db_types import UTCDateTime, utcnow

Base = declarative_base()


def new_document_id() -> str:
    """Opaque document identifier."""
    return uuid.uuid4().hex


class DocumentMixin:
    """
    Identity and audit timestamps.
    Ids are opaque strings so references survive a move between backends.
    """
    id = Column(
        String(64),
        primary_key=True,
        default=new_document_id,
    )

    created_at = Column(
        UTCDateTime,
        default=utcnow,
        nullable=False,
        comment="Timestamp when record was created"
    )

    updated_at = Column(
        UTCDateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        comment="Timestamp when record was last updated"
    )


class SoftDeleteMixin:
    """
    Soft-delete flag + timestamp.
    Rows are never physically removed; readers filter on is_deleted.
    """
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(UTCDateTime, nullable=True)

    def mark_deleted(self) -> None:
        now = utcnow()
        self.is_deleted = True
        self.deleted_at = now
        self.updated_at = now
