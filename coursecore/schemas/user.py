"""
coursecore/schemas/user.py
User profile and course assignment shapes
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field, field_validator

from coursecore.orm.user import UserRole
from coursecore.schemas.common import CamelModel, PatchModel
from coursecore.schemas.progress import ProgressRecord


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=255)
    role: UserRole = UserRole.STAFF
    company_id: Optional[str] = None
    assigned_location_ids: List[str] = Field(default_factory=list)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class UserUpdate(PatchModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[UserRole] = None
    company_id: Optional[str] = None
    assigned_location_ids: Optional[List[str]] = None
    is_active: Optional[bool] = None


class UserRead(CamelModel):
    id: str
    name: str
    email: str
    role: UserRole
    company_id: Optional[str] = None
    assigned_location_ids: List[str] = Field(default_factory=list)
    assigned_course_ids: List[str] = Field(default_factory=list)
    is_active: bool = True
    course_progress: Dict[str, ProgressRecord] = Field(default_factory=dict)
    created_at: Optional[datetime] = None


class CourseAssignmentRequest(CamelModel):
    course_ids: List[str] = Field(..., min_length=1)
