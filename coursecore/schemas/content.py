"""
coursecore/schemas/content.py
Create / update / read shapes for programs, courses, lessons, quizzes, questions
"""
from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, List, Optional

from pydantic import Field, field_validator, model_validator

from coursecore.core.item_reference import ContentTier
from coursecore.schemas.common import CamelModel, PatchModel, strip_optional, strip_required_for_patch


class CourseLevel(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    MULTIPLE_SELECT = "multiple-select"


TRUE_FALSE_OPTIONS = ["True", "False"]


# ================= PROGRAMS =================

class ProgramCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    price: str = ""
    first_subscription_price: Optional[str] = None
    second_subscription_price: Optional[str] = None

    @field_validator("first_subscription_price", "second_subscription_price")
    @classmethod
    def trim_prices(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class ProgramUpdate(PatchModel):
    CLEARABLE: ClassVar[FrozenSet[str]] = frozenset({"first_subscription_price", "second_subscription_price"})

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[str] = None
    first_subscription_price: Optional[str] = None
    second_subscription_price: Optional[str] = None

    @field_validator("first_subscription_price", "second_subscription_price")
    @classmethod
    def trim_prices(cls, v: Optional[str], info) -> Optional[str]:
        return strip_required_for_patch(v, info.field_name)


class ProgramRead(CamelModel):
    id: str
    title: str
    description: str
    price: str
    first_subscription_price: Optional[str] = None
    second_subscription_price: Optional[str] = None
    course_ids: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ================= COURSES =================

class CourseCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    long_description: str = ""
    image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    level: CourseLevel = CourseLevel.BEGINNER
    duration: str = ""
    number_of_modules: int = Field(1, ge=0, le=100, description="Creates 'Module 1'..'Module n'")

    @field_validator("image_url", "featured_image_url")
    @classmethod
    def trim_urls(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class CourseUpdate(PatchModel):
    """Metadata only; curriculum and modules change through the composer."""
    CLEARABLE: ClassVar[FrozenSet[str]] = frozenset({"image_url", "featured_image_url"})

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    long_description: Optional[str] = None
    image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    level: Optional[CourseLevel] = None
    duration: Optional[str] = None

    @field_validator("image_url", "featured_image_url")
    @classmethod
    def trim_urls(cls, v: Optional[str], info) -> Optional[str]:
        return strip_required_for_patch(v, info.field_name)


class CourseRead(CamelModel):
    id: str
    tier: ContentTier
    brand_id: Optional[str] = None
    title: str
    description: str = ""
    long_description: str = ""
    image_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    level: CourseLevel = CourseLevel.BEGINNER
    duration: str = ""
    curriculum: List[str] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    module_assignments: Dict[str, List[str]] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ================= LESSONS =================

_LESSON_OPTIONAL_TEXT = ("video_url", "featured_image_url", "exercise_files_info", "playback_time")


class LessonCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    video_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    exercise_files_info: Optional[str] = None
    is_preview_available: bool = False
    playback_time: Optional[str] = None

    @field_validator(*_LESSON_OPTIONAL_TEXT)
    @classmethod
    def trim_optional(cls, v: Optional[str]) -> Optional[str]:
        return strip_optional(v)


class LessonUpdate(PatchModel):
    CLEARABLE: ClassVar[FrozenSet[str]] = frozenset(_LESSON_OPTIONAL_TEXT)

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    video_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    exercise_files_info: Optional[str] = None
    is_preview_available: Optional[bool] = None
    playback_time: Optional[str] = None

    @field_validator(*_LESSON_OPTIONAL_TEXT)
    @classmethod
    def trim_optional(cls, v: Optional[str], info) -> Optional[str]:
        return strip_required_for_patch(v, info.field_name)


class LessonRead(CamelModel):
    id: str
    tier: ContentTier
    brand_id: Optional[str] = None
    title: str
    content: str = ""
    video_url: Optional[str] = None
    featured_image_url: Optional[str] = None
    exercise_files_info: Optional[str] = None
    is_preview_available: bool = False
    playback_time: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ================= QUIZZES & QUESTIONS =================

class QuestionPayload(CamelModel):
    """
    Full question body, used both to add and to replace a question.

    Single-answer types (multiple-choice, true-false) use correct_answer;
    multiple-select uses correct_answers. Every answer must be one of options.
    """
    type: QuestionType
    text: str = Field(..., min_length=1)
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    correct_answers: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_answers(self):
        if self.type == QuestionType.TRUE_FALSE and not self.options:
            self.options = list(TRUE_FALSE_OPTIONS)

        options = [option.strip() for option in self.options]
        if any(not option for option in options):
            raise ValueError("Options cannot be blank")
        if len(set(options)) != len(options):
            raise ValueError("Options must be unique")
        self.options = options

        if self.type == QuestionType.TRUE_FALSE and sorted(options) != sorted(TRUE_FALSE_OPTIONS):
            raise ValueError("True/false questions must have exactly the options 'True' and 'False'")
        if len(options) < 2:
            raise ValueError("A question needs at least two options")

        if self.type == QuestionType.MULTIPLE_SELECT:
            if self.correct_answer is not None:
                raise ValueError("multiple-select questions use correct_answers")
            if not self.correct_answers:
                raise ValueError("multiple-select questions need at least one correct answer")
            if len(set(self.correct_answers)) != len(self.correct_answers):
                raise ValueError("Correct answers must be unique")
            missing = [answer for answer in self.correct_answers if answer not in options]
            if missing:
                raise ValueError(f"Correct answers not among options: {missing}")
        else:
            if self.correct_answers:
                raise ValueError(f"{self.type.value} questions use correct_answer")
            if self.correct_answer not in options:
                raise ValueError("Correct answer must be one of the options")
        return self


class QuestionRead(CamelModel):
    id: str
    type: QuestionType
    text: str
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[str] = None
    correct_answers: List[str] = Field(default_factory=list)

    def to_document(self) -> dict:
        """Embedded form stored in Quiz.questions."""
        document = self.model_dump(mode="json", by_alias=True)
        if self.type == QuestionType.MULTIPLE_SELECT:
            document.pop("correctAnswer", None)
        else:
            document.pop("correctAnswers", None)
        return document


class QuizCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)


class QuizUpdate(PatchModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)


class QuizRead(CamelModel):
    id: str
    tier: ContentTier
    brand_id: Optional[str] = None
    title: str
    questions: List[QuestionRead] = Field(default_factory=list)
    question_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
