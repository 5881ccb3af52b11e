"""
coursecore/schemas/progress.py
Progress, curriculum and integrity wire shapes
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from coursecore.core.item_reference import ContentTier, ItemKind
from coursecore.schemas.common import CamelModel
from coursecore.state_machines.progress_status import ProgressStatus


# ================= PROGRESS =================

class ProgressRecord(CamelModel):
    """Wire form: {completedItems, status, progress, lastUpdated}."""
    completed_items: List[str] = Field(default_factory=list)
    status: ProgressStatus = ProgressStatus.NOT_STARTED
    progress: int = Field(0, ge=0, le=100)
    last_updated: Optional[datetime] = None

    @classmethod
    def default(cls) -> "ProgressRecord":
        return cls()


class CompletionRequest(CamelModel):
    item_index: int = Field(..., description="Zero-based position in the course curriculum")


class CourseProgressEntry(CamelModel):
    course_id: str
    tier: Optional[ContentTier] = None
    title: Optional[str] = None
    record: ProgressRecord


class UserProgressSummary(CamelModel):
    """Dashboard card for one learner."""
    user_id: str
    overall_progress: int = 0
    courses: List[CourseProgressEntry] = Field(default_factory=list)
    completed_courses: int = 0
    in_progress_courses: int = 0
    not_started_courses: int = 0


class TeamMemberProgress(CamelModel):
    user_id: str
    name: str
    overall_progress: int = 0
    completed_courses: int = 0
    has_courses: bool = False


class TeamProgressSummary(CamelModel):
    company_id: str
    location_id: Optional[str] = None
    member_count: int = 0
    average_progress: int = 0
    completed_courses: int = 0
    members: List[TeamMemberProgress] = Field(default_factory=list)


# ================= CURRICULUM =================

class CurriculumItem(CamelModel):
    position: int = Field(..., description="Index in the stored curriculum; pass it as itemIndex")
    reference: str
    kind: ItemKind
    item_id: str
    title: str
    is_quiz: bool = False
    modules: List[str] = Field(default_factory=list)


class CurriculumView(CamelModel):
    course_id: str
    tier: ContentTier
    items: List[CurriculumItem] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    dangling: List[str] = Field(default_factory=list)


class CurriculumReplaceRequest(CamelModel):
    curriculum: List[str]
    module_assignments: Optional[Dict[str, List[str]]] = None


class ModulesReplaceRequest(CamelModel):
    modules: List[str]


# ================= INTEGRITY =================

class DanglingReferenceReport(CamelModel):
    course_id: str
    tier: ContentTier
    brand_id: Optional[str] = None
    references: List[str] = Field(default_factory=list)


class CleanupResult(CamelModel):
    reference: str
    courses_updated: List[str] = Field(default_factory=list)
    item_deleted: bool = False
