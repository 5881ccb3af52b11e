"""
coursecore/services/progress_aggregation.py
Dashboard rollups over the progress ledger

Every figure counts live curriculum only. A course that does not resolve
(soft-deleted, unknown id, empty curriculum) is left out of both numerator
and denominator. All reads degrade to zero/empty values when the store fails.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.orm.user import User
from coursecore.schemas.progress import (
    CourseProgressEntry,
    TeamMemberProgress,
    TeamProgressSummary,
    UserProgressSummary,
)
from coursecore.services.progress_ledger import CourseStanding, load_standing
from coursecore.services.resilient_executor import ResilientExecutor
from coursecore.services.user_service import load_live_user
from coursecore.state_machines.progress_status import ProgressStatus, compute_percentage

logger = logging.getLogger(__name__)


async def _standings_for(session: AsyncSession, user: User) -> List[CourseStanding]:
    return [
        await load_standing(session, user.id, course_id)
        for course_id in dict.fromkeys(user.assigned_course_ids or [])
    ]


def overall_from(standings: List[CourseStanding]) -> int:
    """Σ completed / Σ total over resolvable courses, rounded half up."""
    live = [standing for standing in standings if standing.resolvable]
    return compute_percentage(
        sum(standing.completed for standing in live),
        sum(standing.total for standing in live),
    )


def _mean_half_up(values: List[int]) -> int:
    if not values:
        return 0
    return (2 * sum(values) + len(values)) // (2 * len(values))


class ProgressAggregation:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def get_user_overall_progress(self, user_id: str) -> int:
        async def op():
            async with self.session_factory() as session:
                user = await load_live_user(session, user_id)
                if user is None:
                    return 0
                return overall_from(await _standings_for(session, user))

        try:
            return await self.executor.run(op, label=f"overall progress of {user_id}")
        except Exception as e:
            logger.warning(f"Overall progress for {user_id} degraded to 0: {e}")
            return 0

    async def get_user_progress_summary(self, user_id: str) -> UserProgressSummary:
        async def op():
            async with self.session_factory() as session:
                user = await load_live_user(session, user_id)
                if user is None:
                    return UserProgressSummary(user_id=user_id)
                standings = await _standings_for(session, user)

            summary = UserProgressSummary(user_id=user_id, overall_progress=overall_from(standings))
            for standing in standings:
                course = standing.course
                summary.courses.append(CourseProgressEntry(
                    course_id=standing.course_id,
                    tier=course.tier if course is not None else None,
                    title=course.title if course is not None else None,
                    record=standing.record,
                ))
                status = standing.record.status
                if status == ProgressStatus.COMPLETED:
                    summary.completed_courses += 1
                elif status.is_started:
                    summary.in_progress_courses += 1
                else:
                    summary.not_started_courses += 1
            return summary

        try:
            return await self.executor.run(op, label=f"progress summary of {user_id}")
        except Exception as e:
            logger.warning(f"Progress summary for {user_id} degraded to empty: {e}")
            return UserProgressSummary(user_id=user_id)

    async def get_team_progress(self, company_id: str, location_id: Optional[str] = None) -> TeamProgressSummary:
        """
        Mean overall progress over members with at least one resolvable course,
        plus member count and completed (resolvable) courses.
        """
        async def op():
            async with self.session_factory() as session:
                result = await session.execute(
                    select(User)
                    .where(User.is_deleted.is_(False), User.company_id == company_id)
                    .order_by(User.created_at, User.id)
                )
                users = list(result.scalars().all())
                if location_id is not None:
                    users = [user for user in users if location_id in (user.assigned_location_ids or [])]

                members = []
                for user in users:
                    standings = await _standings_for(session, user)
                    live = [standing for standing in standings if standing.resolvable]
                    members.append(TeamMemberProgress(
                        user_id=user.id,
                        name=user.name,
                        overall_progress=overall_from(standings),
                        completed_courses=sum(
                            1 for standing in live if standing.record.status == ProgressStatus.COMPLETED
                        ),
                        has_courses=bool(live),
                    ))

            return TeamProgressSummary(
                company_id=company_id,
                location_id=location_id,
                member_count=len(members),
                average_progress=_mean_half_up([m.overall_progress for m in members if m.has_courses]),
                completed_courses=sum(m.completed_courses for m in members),
                members=members,
            )

        try:
            return await self.executor.run(op, label=f"team progress of company {company_id}")
        except Exception as e:
            logger.warning(f"Team progress for {company_id} degraded to empty: {e}")
            return TeamProgressSummary(company_id=company_id, location_id=location_id)
