"""
coursecore/services/progress_ledger.py
Progress Ledger

Per (user, course) completion state. Stored as a course_progress row plus a
completed_items set; everything the caller sees is recomputed against the
live curriculum:

    progress = round_half_up(100 * k / N)
    N = live (resolvable) curriculum references
    k = completed references among them

Writes:
- record_item_completion adds one reference with INSERT ... ON CONFLICT DO
  NOTHING, so concurrent completions of different items are a set union and
  repeating a completion is a no-op.

Reads:
- never write; recompute on every read
- stored values when the curriculum cannot be resolved (deleted course,
  empty curriculum)
- defaults when the user is unknown or the store fails
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.core.db_types import utcnow
from coursecore.database import insert_ignoring_conflicts
from coursecore.errors import ErrorCode, InvalidStateError, NotFoundError
from coursecore.orm.user import CompletedItem, CourseProgress
from coursecore.schemas.progress import ProgressRecord
from coursecore.services.content_repository import load_course_any_tier
from coursecore.services.curriculum_composer import resolve_curriculum
from coursecore.services.resilient_executor import ResilientExecutor
from coursecore.services.user_service import load_live_user
from coursecore.state_machines.progress_status import (
    ProgressStatus,
    coerce_status,
    compute_percentage,
    derive_status,
)

logger = logging.getLogger(__name__)


@dataclass
class CourseStanding:
    """One user's live position in one course."""
    course_id: str
    course: Optional[Any]
    record: ProgressRecord
    completed: int = 0
    total: int = 0

    @property
    def resolvable(self) -> bool:
        return self.course is not None and self.total > 0


async def _completed_references(session: AsyncSession, user_id: str, course_id: str) -> List[str]:
    result = await session.execute(
        select(CompletedItem.item_ref)
        .where(CompletedItem.user_id == user_id, CompletedItem.course_id == course_id)
        .order_by(CompletedItem.completed_at, CompletedItem.item_ref)
    )
    return list(result.scalars().all())


def _stored_record(row: Optional[CourseProgress], completed_refs: List[str]) -> ProgressRecord:
    if row is None:
        return ProgressRecord(completed_items=completed_refs)
    return ProgressRecord(
        completed_items=completed_refs,
        status=coerce_status(row.status) or ProgressStatus.NOT_STARTED,
        progress=row.progress or 0,
        last_updated=row.last_updated,
    )


async def load_standing(session: AsyncSession, user_id: str, course_id: str) -> CourseStanding:
    """Recompute one record against the live curriculum without writing anything."""
    row = await session.get(CourseProgress, (user_id, course_id))
    completed_refs = await _completed_references(session, user_id, course_id)
    stored = _stored_record(row, completed_refs)

    course = await load_course_any_tier(session, course_id)
    if course is None:
        return CourseStanding(course_id=course_id, course=None, record=stored)

    resolved = await resolve_curriculum(session, course)
    if resolved.total == 0:
        return CourseStanding(course_id=course_id, course=course, record=stored)

    done = set(completed_refs)
    live_completed = [reference for reference in resolved.live_references if reference in done]
    previous = coerce_status(row.status) if row is not None else None
    record = ProgressRecord(
        completed_items=live_completed,
        status=derive_status(len(live_completed), resolved.total, previous),
        progress=compute_percentage(len(live_completed), resolved.total),
        last_updated=stored.last_updated,
    )
    return CourseStanding(
        course_id=course_id,
        course=course,
        record=record,
        completed=len(live_completed),
        total=resolved.total,
    )


class ProgressLedger:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def record_item_completion(self, user_id: str, course_id: str, item_index: int) -> ProgressRecord:
        """
        Mark the curriculum entry at item_index complete and persist the
        recomputed status/percentage.

        Raises NotFoundError for an unknown user or course and InvalidStateError
        for an index outside the curriculum. An entry that no longer resolves is
        skipped: the current record is returned unchanged.
        """
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    if await load_live_user(session, user_id) is None:
                        raise NotFoundError("User", user_id, code=ErrorCode.USER_NOT_FOUND)
                    course = await load_course_any_tier(session, course_id)
                    if course is None:
                        raise NotFoundError("Course", course_id, code=ErrorCode.COURSE_NOT_FOUND)

                    curriculum = list(course.curriculum or [])
                    if isinstance(item_index, bool) or not 0 <= item_index < len(curriculum):
                        raise InvalidStateError(
                            f"Item index {item_index} is outside the curriculum of course {course_id}",
                            code=ErrorCode.ITEM_INDEX_OUT_OF_RANGE,
                            details={"item_index": item_index, "curriculum_length": len(curriculum)},
                        )
                    reference = curriculum[item_index]

                    resolved = await resolve_curriculum(session, course)
                    if reference in resolved.dangling:
                        logger.warning(
                            f"Completion of stale reference {reference} in course {course_id} "
                            f"by user {user_id} skipped"
                        )
                        return (await load_standing(session, user_id, course_id)).record

                    now = utcnow()
                    await insert_ignoring_conflicts(session, CompletedItem, [
                        {"user_id": user_id, "course_id": course_id, "item_ref": reference, "completed_at": now}
                    ])
                    await insert_ignoring_conflicts(session, CourseProgress, [
                        {
                            "user_id": user_id,
                            "course_id": course_id,
                            "status": ProgressStatus.NOT_STARTED.value,
                            "progress": 0,
                            "last_updated": now,
                        }
                    ])

                    # Locked before the set is read; concurrent completions serialise here
                    row = (await session.execute(
                        select(CourseProgress)
                        .where(CourseProgress.user_id == user_id, CourseProgress.course_id == course_id)
                        .with_for_update()
                    )).scalar_one()
                    done = set(await _completed_references(session, user_id, course_id))
                    live_completed = [ref for ref in resolved.live_references if ref in done]
                    status = derive_status(len(live_completed), resolved.total, coerce_status(row.status))
                    row.status = status.value
                    row.progress = compute_percentage(len(live_completed), resolved.total)
                    row.last_updated = now
                    return ProgressRecord(
                        completed_items=live_completed,
                        status=status,
                        progress=row.progress,
                        last_updated=now,
                    )

        record = await self.executor.run(op, label=f"record completion {user_id}/{course_id}#{item_index}")
        logger.info(f"User {user_id} course {course_id}: {record.progress}% ({record.status.value})")
        return record

    async def get_progress(self, user_id: str, course_id: str) -> ProgressRecord:
        """Recomputed record; never raises for unknown users or store failures."""
        async def op():
            async with self.session_factory() as session:
                if await load_live_user(session, user_id) is None:
                    return None
                return (await load_standing(session, user_id, course_id)).record

        try:
            record = await self.executor.run(op, label=f"get progress {user_id}/{course_id}")
        except Exception as e:
            logger.warning(f"Progress read for {user_id}/{course_id} degraded to defaults: {e}")
            return ProgressRecord.default()
        return record if record is not None else ProgressRecord.default()

    async def get_course_progress_map(self, user_id: str) -> Dict[str, ProgressRecord]:
        """course id -> recomputed record for every assigned course."""
        async def op():
            async with self.session_factory() as session:
                user = await load_live_user(session, user_id)
                if user is None:
                    return {}
                return {
                    course_id: (await load_standing(session, user_id, course_id)).record
                    for course_id in user.assigned_course_ids or []
                }

        try:
            return await self.executor.run(op, label=f"get course progress of {user_id}")
        except Exception as e:
            logger.warning(f"Course progress read for {user_id} degraded to empty: {e}")
            return {}
