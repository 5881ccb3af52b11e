"""
coursecore/orm/content.py
Programs, courses, lessons and quizzes in both content tiers

Each entity kind exists twice with an identical shape:
- global library: programs, courses, lessons, quizzes
- brand library:  brand_courses, brand_lessons, brand_quizzes (scoped by brand_id)

Array fields of the original documents (curriculum, modules, questions,
course ids) are JSON columns. Writers always assign a new list/dict, never
mutate in place, so the ORM sees the change.

Courses and quizzes carry an optimistic version counter: whole-array rewrites
(curriculum replace, cleanup batches, question splicing) fail with
StaleDataError when another writer committed first.
"""
from sqlalchemy import Column, String, Text, Boolean, Integer

from coursecore.core.db_types import UniversalJSON
from coursecore.core.item_reference import ContentTier
from coursecore.orm.base import Base, DocumentMixin, SoftDeleteMixin


PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x350.png?text={title}"


class Program(DocumentMixin, SoftDeleteMixin, Base):
    """
    A purchasable bundle of global courses.

    Pricing is stored as display strings ("$499", "$29/mo") exactly as entered.
    """
    __tablename__ = "programs"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(String(64), nullable=False, default="")
    first_subscription_price = Column(String(64), nullable=True)
    second_subscription_price = Column(String(64), nullable=True)
    course_ids = Column(UniversalJSON, nullable=False, default=list)


class CourseColumns(DocumentMixin, SoftDeleteMixin):
    """Columns shared by global and brand courses."""
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    long_description = Column(Text, nullable=False, default="")
    image_url = Column(String(1024), nullable=True)
    featured_image_url = Column(String(1024), nullable=True)
    level = Column(String(32), nullable=False, default="Beginner")
    duration = Column(String(128), nullable=False, default="")

    # Ordered "{kind}-{id}" references; the progress denominator
    curriculum = Column(UniversalJSON, nullable=False, default=list)
    modules = Column(UniversalJSON, nullable=False, default=list)
    module_assignments = Column(UniversalJSON, nullable=False, default=dict)


class Course(CourseColumns, Base):
    __tablename__ = "courses"
    tier = ContentTier.GLOBAL
    brand_id = None

    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class BrandCourse(CourseColumns, Base):
    __tablename__ = "brand_courses"
    tier = ContentTier.BRAND

    brand_id = Column(String(64), nullable=False, index=True)
    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class LessonColumns(DocumentMixin, SoftDeleteMixin):
    """Columns shared by global and brand lessons."""
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    video_url = Column(String(1024), nullable=True)
    featured_image_url = Column(String(1024), nullable=True)
    exercise_files_info = Column(Text, nullable=True)
    is_preview_available = Column(Boolean, nullable=False, default=False)
    playback_time = Column(String(64), nullable=True)


class Lesson(LessonColumns, Base):
    __tablename__ = "lessons"
    tier = ContentTier.GLOBAL
    is_quiz = False
    brand_id = None


class BrandLesson(LessonColumns, Base):
    __tablename__ = "brand_lessons"
    tier = ContentTier.BRAND
    is_quiz = False

    brand_id = Column(String(64), nullable=False, index=True)


class QuizColumns(DocumentMixin, SoftDeleteMixin):
    """Columns shared by global and brand quizzes."""
    title = Column(String(255), nullable=False)

    # Embedded question records; only ever rewritten as a whole array
    questions = Column(UniversalJSON, nullable=False, default=list)

    @property
    def question_count(self) -> int:
        return len(self.questions or [])


class Quiz(QuizColumns, Base):
    __tablename__ = "quizzes"
    tier = ContentTier.GLOBAL
    is_quiz = True
    brand_id = None

    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


class BrandQuiz(QuizColumns, Base):
    __tablename__ = "brand_quizzes"
    tier = ContentTier.BRAND
    is_quiz = True

    brand_id = Column(String(64), nullable=False, index=True)
    version_id = Column(Integer, nullable=False)
    __mapper_args__ = {"version_id_col": version_id}


COURSE_MODELS = {ContentTier.GLOBAL: Course, ContentTier.BRAND: BrandCourse}
LESSON_MODELS = {ContentTier.GLOBAL: Lesson, ContentTier.BRAND: BrandLesson}
QUIZ_MODELS = {ContentTier.GLOBAL: Quiz, ContentTier.BRAND: BrandQuiz}
