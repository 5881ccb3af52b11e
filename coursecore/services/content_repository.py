"""
coursecore/services/content_repository.py
Course / Lesson / Quiz storage for one content tier

One ContentRepository serves either the global library or a single brand's
library. Both tiers share the same code path; the tier only selects the
tables and, for brands, adds the brand_id filter.

Soft-delete is invisible to readers: a soft-deleted row answers exactly like a
missing one (None from get_*, absent from list_*, NotFoundError from writes).
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.core.item_reference import ContentTier, ItemKind, ItemRef
from coursecore.errors import ErrorCode, NotFoundError
from coursecore.orm.content import (
    COURSE_MODELS,
    LESSON_MODELS,
    QUIZ_MODELS,
    PLACEHOLDER_IMAGE_URL,
)
from coursecore.schemas.common import PatchModel
from coursecore.schemas.content import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate, QuizCreate, QuizUpdate
from coursecore.services.resilient_executor import ResilientExecutor

logger = logging.getLogger(__name__)


def placeholder_image_url(title: str) -> str:
    return PLACEHOLDER_IMAGE_URL.format(title=quote(title, safe=""))


def module_titles(count: int) -> List[str]:
    return [f"Module {i + 1}" for i in range(count)]


async def load_course_any_tier(session: AsyncSession, course_id: str):
    """
    Resolve a course id against the global tier first, then the brand tier.

    Returns None when the id is unknown in both tiers or soft-deleted.
    """
    for tier in (ContentTier.GLOBAL, ContentTier.BRAND):
        model = COURSE_MODELS[tier]
        course = await session.get(model, course_id)
        if course is not None and not course.is_deleted:
            return course
    return None


class ContentRepository:
    """
    CRUD over courses, lessons and quizzes of one tier.

    Usage:
        repo = ContentRepository(session_factory, executor)                       # global
        brand_repo = ContentRepository(session_factory, executor, ContentTier.BRAND, "acme")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        executor: ResilientExecutor,
        tier: ContentTier = ContentTier.GLOBAL,
        brand_id: Optional[str] = None,
    ):
        if tier == ContentTier.BRAND and not brand_id:
            raise ValueError("A brand repository needs a brand_id")
        if tier == ContentTier.GLOBAL and brand_id:
            raise ValueError("The global repository is not scoped to a brand")
        self.session_factory = session_factory
        self.executor = executor
        self.tier = tier
        self.brand_id = brand_id
        self.course_model = COURSE_MODELS[tier]
        self.lesson_model = LESSON_MODELS[tier]
        self.quiz_model = QUIZ_MODELS[tier]

    def for_brand(self, brand_id: str) -> "ContentRepository":
        return ContentRepository(self.session_factory, self.executor, ContentTier.BRAND, brand_id)

    def _label(self, action: str) -> str:
        if self.brand_id:
            return f"{action} [brand {self.brand_id}]"
        return action

    def _owned(self, row) -> bool:
        if row is None or row.is_deleted:
            return False
        return self.tier == ContentTier.GLOBAL or row.brand_id == self.brand_id

    # ================= generic helpers =================

    async def _get(self, model, entity_id: str):
        async def op():
            async with self.session_factory() as session:
                row = await session.get(model, entity_id)
                return row if self._owned(row) else None

        return await self.executor.run(op, label=self._label(f"get {model.__tablename__} {entity_id}"))

    async def _list(self, model) -> list:
        async def op():
            async with self.session_factory() as session:
                stmt = select(model).where(model.is_deleted.is_(False))
                if self.tier == ContentTier.BRAND:
                    stmt = stmt.where(model.brand_id == self.brand_id)
                result = await session.execute(stmt.order_by(model.created_at, model.id))
                return list(result.scalars().all())

        return await self.executor.run(op, label=self._label(f"list {model.__tablename__}"))

    async def _create(self, model, values: Dict[str, Any]):
        if self.tier == ContentTier.BRAND:
            values["brand_id"] = self.brand_id

        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    row = model(**values)
                    session.add(row)
                return row

        row = await self.executor.run(op, label=self._label(f"create {model.__tablename__}"))
        logger.info(f"Created {model.__tablename__} {row.id}")
        return row

    async def _update(self, model, entity_id: str, patch: PatchModel, resource: str, code: str, extra=None):
        changes = patch.changes()

        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.get(model, entity_id)
                    if not self._owned(row):
                        raise NotFoundError(resource, entity_id, code=code)
                    for field, value in changes.items():
                        setattr(row, field, value)
                    if extra is not None:
                        extra(row, changes)
                return row

        row = await self.executor.run(op, label=self._label(f"update {model.__tablename__} {entity_id}"))
        logger.info(f"Updated {model.__tablename__} {entity_id}: {sorted(changes)}")
        return row

    async def _soft_delete(self, model, entity_id: str, resource: str, code: str) -> None:
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.get(model, entity_id)
                    if not self._owned(row):
                        raise NotFoundError(resource, entity_id, code=code)
                    row.mark_deleted()

        await self.executor.run(
            op,
            label=self._label(f"soft-delete {model.__tablename__} {entity_id}"),
            destructive=True,
        )
        logger.info(f"Soft-deleted {model.__tablename__} {entity_id}")

    # ================= COURSES =================

    async def create_course(self, data: CourseCreate):
        values = data.model_dump(exclude={"number_of_modules"})
        values["level"] = data.level.value
        if not values.get("image_url"):
            values["image_url"] = placeholder_image_url(data.title)
        values["modules"] = module_titles(data.number_of_modules)
        values["curriculum"] = []
        values["module_assignments"] = {}
        return await self._create(self.course_model, values)

    async def get_course(self, course_id: str):
        return await self._get(self.course_model, course_id)

    async def list_courses(self) -> list:
        return await self._list(self.course_model)

    async def update_course(self, course_id: str, patch: CourseUpdate):
        def finish(course, changes):
            if "level" in changes:
                course.level = changes["level"].value
            # A cleared image falls back to the title placeholder
            if "image_url" in changes and not changes["image_url"]:
                course.image_url = placeholder_image_url(course.title)

        return await self._update(
            self.course_model, course_id, patch, "Course", ErrorCode.COURSE_NOT_FOUND, extra=finish
        )

    async def delete_course(self, course_id: str) -> None:
        """Soft-delete; lessons and quizzes it references are untouched."""
        await self._soft_delete(self.course_model, course_id, "Course", ErrorCode.COURSE_NOT_FOUND)

    # ================= LESSONS =================

    async def create_lesson(self, data: LessonCreate):
        return await self._create(self.lesson_model, data.model_dump())

    async def get_lesson(self, lesson_id: str):
        return await self._get(self.lesson_model, lesson_id)

    async def list_lessons(self) -> list:
        return await self._list(self.lesson_model)

    async def update_lesson(self, lesson_id: str, patch: LessonUpdate):
        return await self._update(self.lesson_model, lesson_id, patch, "Lesson", ErrorCode.LESSON_NOT_FOUND)

    async def soft_delete_lesson(self, lesson_id: str) -> None:
        """Flag only. Use ReferenceCleanupService.delete_item to delete a lesson."""
        await self._soft_delete(self.lesson_model, lesson_id, "Lesson", ErrorCode.LESSON_NOT_FOUND)

    # ================= QUIZZES =================

    async def create_quiz(self, data: QuizCreate):
        values = data.model_dump()
        values["questions"] = []
        return await self._create(self.quiz_model, values)

    async def get_quiz(self, quiz_id: str):
        return await self._get(self.quiz_model, quiz_id)

    async def list_quizzes(self) -> list:
        return await self._list(self.quiz_model)

    async def update_quiz(self, quiz_id: str, patch: QuizUpdate):
        return await self._update(self.quiz_model, quiz_id, patch, "Quiz", ErrorCode.QUIZ_NOT_FOUND)

    async def soft_delete_quiz(self, quiz_id: str) -> None:
        """Flag only. Use ReferenceCleanupService.delete_item to delete a quiz."""
        await self._soft_delete(self.quiz_model, quiz_id, "Quiz", ErrorCode.QUIZ_NOT_FOUND)

    # ================= references =================

    def reference_for(self, item) -> ItemRef:
        """Curriculum reference of a lesson or quiz stored in this tier."""
        return ItemRef(ItemKind.for_entity(self.tier, item.is_quiz), item.id)
