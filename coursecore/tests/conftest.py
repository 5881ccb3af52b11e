"""
coursecore/tests/conftest.py
Shared fixtures: a file-backed SQLite store per test and services wired to it
"""
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from coursecore.database import close_db, create_engine, create_session_factory, init_db
from coursecore.schemas.content import CourseCreate, LessonCreate, QuizCreate
from coursecore.schemas.user import UserCreate
from coursecore.services.registry import CoreServices, build_services
from coursecore.services.resilient_executor import ResilientExecutor, RetryPolicy


class RecordingSleep:
    """Stands in for asyncio.sleep; remembers the requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def executor(sleeper) -> ResilientExecutor:
    return ResilientExecutor(RetryPolicy(), sleep=sleeper)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'coursecore-test.db'}")
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def services(session_factory, executor) -> CoreServices:
    return build_services(session_factory, executor=executor)


@pytest.fixture
def brand_repo(services):
    return services.brand_content("acme")


@pytest.fixture
def make_course(services):
    async def factory(title: str = "Sales Basics", brand_id: str = None, curriculum: List[str] = None):
        repo = services.brand_content(brand_id) if brand_id else services.content
        course = await repo.create_course(CourseCreate(title=title, number_of_modules=2))
        if curriculum:
            await services.composer.replace_curriculum(course.id, curriculum)
            course = await repo.get_course(course.id)
        return course
    return factory


@pytest.fixture
def make_lesson(services):
    async def factory(title: str = "Lesson", brand_id: str = None):
        repo = services.brand_content(brand_id) if brand_id else services.content
        lesson = await repo.create_lesson(LessonCreate(title=title))
        return lesson, str(repo.reference_for(lesson))
    return factory


@pytest.fixture
def make_quiz(services):
    async def factory(title: str = "Quiz", brand_id: str = None):
        repo = services.brand_content(brand_id) if brand_id else services.content
        quiz = await repo.create_quiz(QuizCreate(title=title))
        return quiz, str(repo.reference_for(quiz))
    return factory


@pytest.fixture
def make_user(services):
    async def factory(name: str = "Dana", company_id: str = "acme", location_ids: List[str] = None):
        return await services.users.create_user(UserCreate(
            name=name,
            email=f"{name.lower()}@example.com",
            company_id=company_id,
            assigned_location_ids=location_ids or [],
        ))
    return factory

