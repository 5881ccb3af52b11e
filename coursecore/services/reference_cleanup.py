"""
coursecore/services/reference_cleanup.py
Cascading Reference Cleanup

Deleting a lesson or quiz is two sequenced steps, never one transaction:

1. cleanup batch: remove the reference from the curriculum and module
   assignments of every live course that holds it, committed atomically and
   retried as a whole (destructive budget)
2. soft-delete the item, only after step 1 committed

If step 1 fails the deletion is aborted and the item stays live (fail closed).
If the process dies between 1 and 2 the item is live and unreferenced, and can
simply be deleted again. Dangling references left by any other path are found
by CurriculumComposer.find_dangling_references and removed by repair().

Scope of the course query:
- brand item  -> that brand's courses
- global item -> global courses and every brand course (brand curricula may
                 interleave global items)
"""
import logging
from typing import List, Optional

from sqlalchemy import String, cast, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.core.item_reference import ContentTier, ItemRef
from coursecore.errors import ErrorCode, NotFoundError
from coursecore.orm.content import COURSE_MODELS, LESSON_MODELS, QUIZ_MODELS
from coursecore.schemas.progress import CleanupResult, DanglingReferenceReport
from coursecore.services.content_repository import ContentRepository
from coursecore.services.curriculum_composer import resolve_curriculum
from coursecore.services.resilient_executor import ResilientExecutor

logger = logging.getLogger(__name__)


def _item_model(ref: ItemRef):
    models = QUIZ_MODELS if ref.kind.is_quiz else LESSON_MODELS
    return models[ref.tier]


def strip_reference(course, reference: str) -> bool:
    """Remove one reference from a course in place. True when anything changed."""
    curriculum = list(course.curriculum or [])
    assignments = dict(course.module_assignments or {})

    new_curriculum = [entry for entry in curriculum if entry != reference]
    new_assignments = {
        title: [entry for entry in refs if entry != reference]
        for title, refs in assignments.items()
    }
    if new_curriculum == curriculum and new_assignments == assignments:
        return False
    course.curriculum = new_curriculum
    course.module_assignments = new_assignments
    return True


def _holds(course, reference: str) -> bool:
    if reference in (course.curriculum or []):
        return True
    return any(reference in refs for refs in (course.module_assignments or {}).values())


async def courses_referencing(
    session: AsyncSession,
    reference: str,
    tier: ContentTier,
    brand_id: Optional[str] = None,
) -> list:
    """
    Live courses whose curriculum or module assignments contain the reference.

    The LIKE over the JSON text only narrows the scan; membership is decided
    on the decoded arrays.
    """
    needle = f'%"{reference}"%'
    if tier == ContentTier.BRAND:
        scopes = [(COURSE_MODELS[ContentTier.BRAND], brand_id)]
    else:
        scopes = [(COURSE_MODELS[ContentTier.GLOBAL], None), (COURSE_MODELS[ContentTier.BRAND], None)]

    matches = []
    for model, scope_brand in scopes:
        stmt = select(model).where(
            model.is_deleted.is_(False),
            cast(model.curriculum, String).like(needle) | cast(model.module_assignments, String).like(needle),
        )
        if scope_brand is not None:
            stmt = stmt.where(model.brand_id == scope_brand)
        result = await session.execute(stmt.order_by(model.id))
        matches.extend(course for course in result.scalars().all() if _holds(course, reference))
    return matches


class ReferenceCleanupService:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def _cleanup_batch(
        self,
        ref: ItemRef,
        brand_id: Optional[str],
    ) -> List[str]:
        reference = str(ref)

        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    courses = await courses_referencing(session, reference, ref.tier, brand_id)
                    return [course.id for course in courses if strip_reference(course, reference)]

        return await self.executor.run(op, label=f"cleanup batch for {reference}", destructive=True)

    async def _load_live_item(self, ref: ItemRef):
        model = _item_model(ref)

        async def op():
            async with self.session_factory() as session:
                item = await session.get(model, ref.id)
                if item is None or item.is_deleted:
                    code = ErrorCode.QUIZ_NOT_FOUND if ref.kind.is_quiz else ErrorCode.LESSON_NOT_FOUND
                    raise NotFoundError("Quiz" if ref.kind.is_quiz else "Lesson", str(ref), code=code)
                return item

        return await self.executor.run(op, label=f"load {ref}")

    async def delete_item(self, ref: ItemRef) -> CleanupResult:
        """
        Remove every curriculum reference to a lesson/quiz, then soft-delete it.

        Raises NotFoundError when the item is missing or already deleted; any
        failure of the cleanup batch propagates and leaves the item live.
        """
        reference = str(ref)
        item = await self._load_live_item(ref)
        brand_id = item.brand_id if ref.tier == ContentTier.BRAND else None

        try:
            updated = await self._cleanup_batch(ref, brand_id)
        except Exception as e:
            logger.error(f"Cleanup for {reference} failed, deletion aborted: {e}")
            raise

        logger.info(f"Removed {reference} from {len(updated)} course(s): {updated}")

        repo = ContentRepository(self.session_factory, self.executor, ref.tier, brand_id)
        soft_delete = repo.soft_delete_quiz if ref.kind.is_quiz else repo.soft_delete_lesson
        try:
            await soft_delete(ref.id)
            deleted = True
        except NotFoundError:
            logger.warning(f"{reference} was deleted concurrently; cleanup still applied")
            deleted = False
        return CleanupResult(reference=reference, courses_updated=updated, item_deleted=deleted)

    async def repair(self, reports: List[DanglingReferenceReport]) -> List[CleanupResult]:
        """
        Strip dangling references from the reported courses. Each reference is
        re-resolved first; one that still resolves is left in place. Idempotent;
        the items themselves are not touched.
        """
        results = []
        for report in reports:
            for reference in report.references:
                updated = await self._repair_reference(report, reference)
                if updated:
                    logger.info(f"Repaired {reference} in course {report.course_id}")
                results.append(CleanupResult(reference=reference, courses_updated=updated))
        return results

    async def _repair_reference(self, report: DanglingReferenceReport, reference: str) -> List[str]:
        course_model = COURSE_MODELS[report.tier]

        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    course = await session.get(course_model, report.course_id)
                    if course is None or course.is_deleted:
                        return []
                    resolved = await resolve_curriculum(session, course)
                    if reference in resolved.live_references:
                        logger.warning(f"{reference} in course {course.id} resolves; not repaired")
                        return []
                    return [course.id] if strip_reference(course, reference) else []

        return await self.executor.run(op, label=f"repair {reference} in {report.course_id}", destructive=True)
