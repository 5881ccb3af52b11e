"""
coursecore/services/user_service.py
Users and course assignment

Assigning a course is a set union on User.assigned_course_ids plus an
insert-or-ignore of a Not Started progress row; unassigning is the set
difference plus removal of that row and its completed items. Course ids are
not validated against the course tables: an id that never resolves simply
contributes nothing to aggregation.
"""
import logging
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coursecore.core.db_types import utcnow
from coursecore.database import insert_ignoring_conflicts
from coursecore.errors import BadRequestError, ErrorCode, NotFoundError
from coursecore.orm.user import CompletedItem, CourseProgress, User
from coursecore.schemas.user import UserCreate, UserUpdate
from coursecore.services.resilient_executor import ResilientExecutor
from coursecore.state_machines.progress_status import ProgressStatus

logger = logging.getLogger(__name__)


async def load_live_user(session: AsyncSession, user_id: str) -> Optional[User]:
    user = await session.get(User, user_id)
    if user is None or user.is_deleted:
        return None
    return user


def _clean_ids(course_ids: List[str]) -> List[str]:
    cleaned = [course_id.strip() for course_id in course_ids]
    if any(not course_id for course_id in cleaned):
        raise BadRequestError("Course ids cannot be blank")
    return list(dict.fromkeys(cleaned))


class UserService:

    def __init__(self, session_factory: async_sessionmaker, executor: ResilientExecutor):
        self.session_factory = session_factory
        self.executor = executor

    async def create_user(self, data: UserCreate) -> User:
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    user = User(**data.model_dump(), assigned_course_ids=[], is_active=True)
                    session.add(user)
                return user

        user = await self.executor.run(op, label="create user")
        logger.info(f"Created user {user.id} ({user.role.value})")
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        async def op():
            async with self.session_factory() as session:
                return await load_live_user(session, user_id)

        return await self.executor.run(op, label=f"get user {user_id}")

    async def list_users(self, company_id: Optional[str] = None, location_id: Optional[str] = None) -> List[User]:
        """Live users, optionally of one company and one of its locations."""
        async def op():
            async with self.session_factory() as session:
                stmt = select(User).where(User.is_deleted.is_(False))
                if company_id is not None:
                    stmt = stmt.where(User.company_id == company_id)
                result = await session.execute(stmt.order_by(User.created_at, User.id))
                users = list(result.scalars().all())
                if location_id is not None:
                    users = [user for user in users if location_id in (user.assigned_location_ids or [])]
                return users

        return await self.executor.run(op, label=f"list users of company {company_id}")

    async def _mutate(self, user_id: str, label: str, apply, destructive: bool = False):
        async def op():
            async with self.session_factory() as session:
                async with session.begin():
                    user = await load_live_user(session, user_id)
                    if user is None:
                        raise NotFoundError("User", user_id, code=ErrorCode.USER_NOT_FOUND)
                    await apply(session, user)
                return user

        return await self.executor.run(op, label=label, destructive=destructive)

    async def update_user(self, user_id: str, patch: UserUpdate) -> User:
        changes = patch.changes()

        async def apply(session, user):
            for field, value in changes.items():
                setattr(user, field, value)

        user = await self._mutate(user_id, f"update user {user_id}", apply)
        logger.info(f"Updated user {user_id}: {sorted(changes)}")
        return user

    async def delete_user(self, user_id: str) -> None:
        """Soft-delete and deactivate; progress rows are kept for reporting."""
        async def apply(session, user):
            user.mark_deleted()
            user.is_active = False

        await self._mutate(user_id, f"soft-delete user {user_id}", apply, destructive=True)
        logger.info(f"Soft-deleted user {user_id}")

    async def assign_courses(self, user_id: str, course_ids: List[str]) -> User:
        """Union the ids into the assignment set; new assignments start Not Started."""
        course_ids = _clean_ids(course_ids)

        async def apply(session, user):
            current = list(user.assigned_course_ids or [])
            added = [course_id for course_id in course_ids if course_id not in current]
            if added:
                user.assigned_course_ids = current + added
            now = utcnow()
            await insert_ignoring_conflicts(session, CourseProgress, [
                {
                    "user_id": user_id,
                    "course_id": course_id,
                    "status": ProgressStatus.NOT_STARTED.value,
                    "progress": 0,
                    "last_updated": now,
                }
                for course_id in course_ids
            ])

        user = await self._mutate(user_id, f"assign courses to user {user_id}", apply)
        logger.info(f"Assigned courses {course_ids} to user {user_id}")
        return user

    async def unassign_courses(self, user_id: str, course_ids: List[str]) -> User:
        """Remove the ids and their progress records (rows are deleted, not flagged)."""
        course_ids = _clean_ids(course_ids)

        async def apply(session, user):
            user.assigned_course_ids = [
                course_id for course_id in (user.assigned_course_ids or []) if course_id not in course_ids
            ]
            await session.execute(
                delete(CompletedItem).where(
                    CompletedItem.user_id == user_id,
                    CompletedItem.course_id.in_(course_ids),
                )
            )
            await session.execute(
                delete(CourseProgress).where(
                    CourseProgress.user_id == user_id,
                    CourseProgress.course_id.in_(course_ids),
                )
            )

        user = await self._mutate(user_id, f"unassign courses from user {user_id}", apply, destructive=True)
        logger.info(f"Unassigned courses {course_ids} from user {user_id}")
        return user
