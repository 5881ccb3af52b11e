"""
coursecore/schemas/__init__.py
Pydantic wire models
"""
from coursecore.schemas.common import CamelModel, PatchModel
from coursecore.schemas.content import (
    CourseLevel,
    QuestionType,
    ProgramCreate,
    ProgramUpdate,
    ProgramRead,
    CourseCreate,
    CourseUpdate,
    CourseRead,
    LessonCreate,
    LessonUpdate,
    LessonRead,
    QuestionPayload,
    QuestionRead,
    QuizCreate,
    QuizUpdate,
    QuizRead,
)
from coursecore.schemas.progress import (
    ProgressRecord,
    CompletionRequest,
    CourseProgressEntry,
    UserProgressSummary,
    TeamMemberProgress,
    TeamProgressSummary,
    CurriculumItem,
    CurriculumView,
    CurriculumReplaceRequest,
    ModulesReplaceRequest,
    DanglingReferenceReport,
    CleanupResult,
)
from coursecore.schemas.user import UserCreate, UserUpdate, UserRead, CourseAssignmentRequest
