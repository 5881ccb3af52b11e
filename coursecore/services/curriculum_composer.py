"""
coursecore/services/curriculum_composer.py
Curriculum Composer

Owns Course.curriculum, Course.modules and Course.module_assignments.

Resolution is lazy: a stored curriculum may transiently hold references to
items that were soft-deleted and not yet cleaned up. resolve_curriculum()
splits it into live items (in order) and dangling references; the composer,
the progress ledger and aggregation all count only the live part.

Tier rules:
- global course: lesson / quiz only
- brand course:  brandLesson / brandQuiz of its own brand, plus global lesson / quiz
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.core.item_reference import ContentTier, ItemKind, ItemRef
from coursecore.errors import BadRequestError, ErrorCode, NotFoundError, StaleReferenceError
from coursecore.orm.content import COURSE_MODELS, LESSON_MODELS, QUIZ_MODELS
from coursecore.schemas.progress import CurriculumItem, CurriculumView, DanglingReferenceReport
from coursecore.services.content_repository import load_course_any_tier
from coursecore.services.resilient_executor import ResilientExecutor

logger = logging.getLogger(__name__)


@dataclass
class ResolvedCurriculum:
    """A course's curriculum split into live entries and dangling references."""
    course: Any
    live: List[Tuple[ItemRef, Any]] = field(default_factory=list)
    dangling: List[str] = field(default_factory=list)
    # Index of each live entry in the stored curriculum; the ledger's item_index
    positions: List[int] = field(default_factory=list)

    @property
    def live_references(self) -> List[str]:
        return [str(ref) for ref, _ in self.live]

    @property
    def total(self) -> int:
        return len(self.live)


def _model_for(kind: ItemKind):
    models = QUIZ_MODELS if kind.is_quiz else LESSON_MODELS
    return models[kind.tier]


def allowed_in_course(ref: ItemRef, course) -> bool:
    """Kind-level tier rule; brand ownership is checked on resolution."""
    if course.tier == ContentTier.GLOBAL:
        return ref.tier == ContentTier.GLOBAL
    return True


async def resolve_curriculum(session: AsyncSession, course) -> ResolvedCurriculum:
    """
    Resolve every stored reference of a course in one query per item kind.

    Dangling: malformed, not allowed in the course's tier, missing,
    soft-deleted, or owned by another brand. Repeated references count once.
    """
    resolved = ResolvedCurriculum(course=course)
    parsed: List[Tuple[str, Optional[ItemRef]]] = []
    wanted: Dict[ItemKind, set] = {}

    for raw in course.curriculum or []:
        try:
            ref = ItemRef.parse(raw)
        except BadRequestError:
            parsed.append((raw, None))
            continue
        if not allowed_in_course(ref, course):
            parsed.append((raw, None))
            continue
        parsed.append((raw, ref))
        wanted.setdefault(ref.kind, set()).add(ref.id)

    found: Dict[Tuple[ItemKind, str], Any] = {}
    for kind, ids in wanted.items():
        model = _model_for(kind)
        stmt = select(model).where(model.id.in_(ids), model.is_deleted.is_(False))
        if kind.tier == ContentTier.BRAND:
            stmt = stmt.where(model.brand_id == course.brand_id)
        result = await session.execute(stmt)
        for item in result.scalars().all():
            found[(kind, item.id)] = item

    seen = set()
    for index, (raw, ref) in enumerate(parsed):
        if raw in seen:
            continue
        seen.add(raw)
        item = found.get((ref.kind, ref.id)) if ref is not None else None
        if item is None:
            resolved.dangling.append(raw)
        else:
            resolved.live.append((ref, item))
            resolved.positions.append(index)
    return resolved


def build_view(resolved: ResolvedCurriculum) -> CurriculumView:
    course = resolved.course
    assignments = course.module_assignments or {}
    items = []
    for position, (ref, item) in zip(resolved.positions, resolved.live):
        reference = str(ref)
        items.append(CurriculumItem(
            position=position,
            reference=reference,
            kind=ref.kind,
            item_id=ref.id,
            title=item.title,
            is_quiz=ref.kind.is_quiz,
            modules=[title for title, refs in assignments.items() if reference in refs],
        ))
    return CurriculumView(
        course_id=course.id,
        tier=course.tier,
        items=items,
        modules=list(course.modules or []),
        dangling=list(resolved.dangling),
    )


class CurriculumComposer:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def _load_course(self, session: AsyncSession, course_id: str):
        course = await load_course_any_tier(session, course_id)
        if course is None:
            raise NotFoundError("Course", course_id, code=ErrorCode.COURSE_NOT_FOUND)
        return course

    async def _validate_references(self, session: AsyncSession, course, raw_refs: List[str]) -> List[str]:
        refs = []
        seen = set()
        for raw in raw_refs:
            ref = ItemRef.parse(raw)
            reference = str(ref)
            if reference in seen:
                raise BadRequestError(
                    f"Duplicate curriculum reference: {reference}",
                    code=ErrorCode.DUPLICATE_REFERENCE,
                    details={"reference": reference},
                )
            seen.add(reference)

            if not allowed_in_course(ref, course):
                raise BadRequestError(
                    f"{ref.kind.value} items cannot be used in a {course.tier.value} course",
                    code=ErrorCode.TIER_MISMATCH,
                    details={"reference": reference, "course_tier": course.tier.value},
                )

            item = await session.get(_model_for(ref.kind), ref.id)
            if item is None or item.is_deleted:
                raise StaleReferenceError(reference, course_id=course.id)
            if ref.tier == ContentTier.BRAND and item.brand_id != course.brand_id:
                raise BadRequestError(
                    f"{reference} belongs to another brand",
                    code=ErrorCode.TIER_MISMATCH,
                    details={"reference": reference, "brand_id": course.brand_id},
                )
            refs.append(reference)
        return refs

    @staticmethod
    def _validate_assignments(course, curriculum: List[str], assignments: Dict[str, List[str]]) -> Dict[str, List[str]]:
        modules = set(course.modules or [])
        members = set(curriculum)
        cleaned = {}
        for title, refs in assignments.items():
            if title not in modules:
                raise BadRequestError(
                    f"Unknown module: {title}",
                    details={"module": title, "modules": list(course.modules or [])},
                )
            missing = [ref for ref in refs if ref not in members]
            if missing:
                raise BadRequestError(
                    f"Module '{title}' assigns references that are not in the curriculum",
                    code=ErrorCode.INVALID_REFERENCE,
                    details={"module": title, "references": missing},
                )
            cleaned[title] = list(dict.fromkeys(refs))
        return cleaned

    async def replace_curriculum(
        self,
        course_id: str,
        refs: List[str],
        module_assignments: Optional[Dict[str, List[str]]] = None,
    ) -> CurriculumView:
        """
        Replace the ordered curriculum as a whole.

        Without module_assignments, existing assignments are kept minus any
        reference no longer in the curriculum.
        """
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    course = await self._load_course(session, course_id)
                    curriculum = await self._validate_references(session, course, refs)
                    if module_assignments is None:
                        assignments = {
                            title: [ref for ref in assigned if ref in curriculum]
                            for title, assigned in (course.module_assignments or {}).items()
                        }
                    else:
                        assignments = self._validate_assignments(course, curriculum, module_assignments)
                    course.curriculum = curriculum
                    course.module_assignments = assignments
                    return build_view(await resolve_curriculum(session, course))

        view = await self.executor.run(op, label=f"replace curriculum of course {course_id}")
        logger.info(f"Course {course_id} curriculum replaced ({len(view.items)} items)")
        return view

    async def update_modules(self, course_id: str, modules: List[str]) -> CurriculumView:
        """Replace the module titles; assignments of removed modules are dropped."""
        titles = [title.strip() for title in modules]
        if any(not title for title in titles):
            raise BadRequestError("Module titles cannot be blank")
        if len(set(titles)) != len(titles):
            raise BadRequestError("Module titles must be unique", details={"modules": titles})

        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    course = await self._load_course(session, course_id)
                    course.modules = titles
                    course.module_assignments = {
                        title: list(refs)
                        for title, refs in (course.module_assignments or {}).items()
                        if title in titles
                    }
                    return build_view(await resolve_curriculum(session, course))

        view = await self.executor.run(op, label=f"update modules of course {course_id}")
        logger.info(f"Course {course_id} modules set to {titles}")
        return view

    async def get_curriculum(self, course_id: str) -> CurriculumView:
        """Live items in order; dangling references are listed, never repaired."""
        async def op():
            async with self.session_factory() as session:
                course = await self._load_course(session, course_id)
                return build_view(await resolve_curriculum(session, course))

        view = await self.executor.run(op, label=f"get curriculum of course {course_id}")
        for reference in view.dangling:
            logger.warning(f"Stale curriculum reference {reference} in course {course_id}; skipped")
        return view

    async def find_dangling_references(self, course_id: Optional[str] = None) -> List[DanglingReferenceReport]:
        """Check one course, or every live course of both tiers."""
        async def op():
            async with self.session_factory() as session:
                if course_id is not None:
                    courses = [await self._load_course(session, course_id)]
                else:
                    courses = []
                    for tier in (ContentTier.GLOBAL, ContentTier.BRAND):
                        model = COURSE_MODELS[tier]
                        result = await session.execute(
                            select(model).where(model.is_deleted.is_(False)).order_by(model.created_at, model.id)
                        )
                        courses.extend(result.scalars().all())

                reports = []
                for course in courses:
                    resolved = await resolve_curriculum(session, course)
                    if resolved.dangling:
                        reports.append(DanglingReferenceReport(
                            course_id=course.id,
                            tier=course.tier,
                            brand_id=course.brand_id,
                            references=resolved.dangling,
                        ))
                return reports

        reports = await self.executor.run(op, label="find dangling references")
        if reports:
            logger.warning(f"Found dangling references in {len(reports)} course(s)")
        return reports
