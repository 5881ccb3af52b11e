"""
coursecore/orm/user.py
Learners, their course assignments and the progress ledger

A user's progress on one course is split in two tables:
- course_progress:  one row per (user, course) with the derived status/percentage
- completed_items:  one row per (user, course, item reference)

completed_items is the set of finished curriculum entries. Adding to it is an
INSERT that ignores conflicts, so two clients completing different items of
the same course at the same time both land (set union, no read-modify-write).
"""
from enum import Enum

from sqlalchemy import Column, String, Integer, Boolean, Enum as SQLEnum, Index

from coursecore.core.db_types import UniversalJSON, UTCDateTime, utcnow
from coursecore.orm.base import Base, DocumentMixin, SoftDeleteMixin


class UserRole(str, Enum):
    """
    Ordered role hierarchy. Used by the external authorization layer only;
    nothing in the core branches on it.
    """
    STAFF = "Staff"
    MANAGER = "Manager"
    OWNER = "Owner"
    ADMIN = "Admin"
    SUPER_ADMIN = "Super Admin"

    @property
    def rank(self) -> int:
        return _ROLE_ORDER.index(self)

    def at_least(self, other: "UserRole") -> bool:
        return self.rank >= other.rank


_ROLE_ORDER = [UserRole.STAFF, UserRole.MANAGER, UserRole.OWNER, UserRole.ADMIN, UserRole.SUPER_ADMIN]


class User(DocumentMixin, SoftDeleteMixin, Base):
    """
    Employee of a brand ("company").

    assigned_course_ids may mix global and brand course ids; the progress
    ledger resolves each id against both tiers.
    """
    __tablename__ = "users"

    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.STAFF)
    company_id = Column(String(64), nullable=True, index=True)
    assigned_location_ids = Column(UniversalJSON, nullable=False, default=list)
    assigned_course_ids = Column(UniversalJSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)

    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class CourseProgress(Base):
    """
    Derived progress for one user on one course.

    Created (Not Started, 0%) when the course is assigned, deleted when it is
    unassigned. status/progress are recomputed from completed_items on every
    write and on every read where the curriculum resolves.
    """
    __tablename__ = "course_progress"

    user_id = Column(String(64), primary_key=True)
    course_id = Column(String(64), primary_key=True)
    status = Column(String(32), nullable=False, default="Not Started")
    progress = Column(Integer, nullable=False, default=0)
    last_updated = Column(UTCDateTime, nullable=True, default=utcnow)


class CompletedItem(Base):
    """One finished curriculum entry ("{kind}-{id}") for a user on a course."""
    __tablename__ = "completed_items"

    user_id = Column(String(64), primary_key=True)
    course_id = Column(String(64), primary_key=True)
    item_ref = Column(String(160), primary_key=True)
    completed_at = Column(UTCDateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_completed_items_user_course", "user_id", "course_id"),
    )
