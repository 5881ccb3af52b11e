"""
coursecore/orm/__init__.py
Import every model so Base.metadata is complete before create_all
"""
from coursecore.orm.base import Base
from coursecore.orm.content import (
    Program,
    Course,
    BrandCourse,
    Lesson,
    BrandLesson,
    Quiz,
    BrandQuiz,
    COURSE_MODELS,
    LESSON_MODELS,
    QUIZ_MODELS,
)
from coursecore.orm.user import User, UserRole, CourseProgress, CompletedItem

__all__ = [
    "Base",
    "Program",
    "Course",
    "BrandCourse",
    "Lesson",
    "BrandLesson",
    "Quiz",
    "BrandQuiz",
    "COURSE_MODELS",
    "LESSON_MODELS",
    "QUIZ_MODELS",
    "User",
    "UserRole",
    "CourseProgress",
    "CompletedItem",
]
