"""
Content repository tests: creation defaults, partial updates, soft-delete
visibility and brand scoping
"""
import pytest
from pydantic import ValidationError
from sqlalchemy import select

from coursecore.errors import NotFoundError
from coursecore.orm.content import Course, Lesson
from coursecore.schemas.content import CourseCreate, CourseUpdate, LessonCreate, LessonUpdate, QuizCreate
from coursecore.core.item_reference import ContentTier
from coursecore.services.content_repository import ContentRepository, placeholder_image_url


class TestCourses:

    async def test_create_defaults(self, services):
        course = await services.content.create_course(CourseCreate(title="Wine 101", number_of_modules=3))
        assert course.modules == ["Module 1", "Module 2", "Module 3"]
        assert course.curriculum == []
        assert course.module_assignments == {}
        assert course.image_url == "https://placehold.co/600x350.png?text=Wine%20101"
        assert course.is_deleted is False

    async def test_explicit_image_kept(self, services):
        course = await services.content.create_course(
            CourseCreate(title="Wine 101", image_url="  https://cdn.example.com/w.png ")
        )
        assert course.image_url == "https://cdn.example.com/w.png"

    async def test_partial_update_touches_only_given_fields(self, services):
        course = await services.content.create_course(
            CourseCreate(title="Wine 101", description="old", duration="2h")
        )
        updated = await services.content.update_course(course.id, CourseUpdate(description="new"))
        assert updated.description == "new"
        assert updated.duration == "2h"
        assert updated.title == "Wine 101"

    async def test_clearing_image_falls_back_to_placeholder(self, services):
        course = await services.content.create_course(
            CourseCreate(title="Beer", image_url="https://cdn.example.com/b.png", featured_image_url="https://x/f.png")
        )
        updated = await services.content.update_course(
            course.id, CourseUpdate(clear={"imageUrl", "featured_image_url"})
        )
        assert updated.image_url == placeholder_image_url("Beer")
        assert updated.featured_image_url is None

    async def test_soft_delete_hides_but_keeps_row(self, services, session_factory):
        keep = await services.content.create_course(CourseCreate(title="Keep"))
        gone = await services.content.create_course(CourseCreate(title="Gone"))

        await services.content.delete_course(gone.id)

        assert await services.content.get_course(gone.id) is None
        assert [c.id for c in await services.content.list_courses()] == [keep.id]
        async with session_factory() as session:
            row = await session.get(Course, gone.id)
            assert row is not None
            assert row.is_deleted is True
            assert row.deleted_at is not None

    async def test_update_deleted_course_is_not_found(self, services):
        course = await services.content.create_course(CourseCreate(title="Gone"))
        await services.content.delete_course(course.id)
        with pytest.raises(NotFoundError):
            await services.content.update_course(course.id, CourseUpdate(title="Back"))
        with pytest.raises(NotFoundError):
            await services.content.delete_course(course.id)

    async def test_get_missing_returns_none(self, services):
        assert await services.content.get_course("does-not-exist") is None


class TestLessons:

    async def test_blank_optional_fields_are_absent_on_create(self, services):
        lesson = await services.content.create_lesson(LessonCreate(title="Intro", video_url="   "))
        assert lesson.video_url is None

    async def test_clear_is_explicit(self, services):
        lesson = await services.content.create_lesson(
            LessonCreate(title="Intro", video_url="https://v/1", playback_time="5:00")
        )
        updated = await services.content.update_lesson(lesson.id, LessonUpdate(clear={"video_url"}))
        assert updated.video_url is None
        assert updated.playback_time == "5:00"

    def test_null_is_not_a_clear(self):
        with pytest.raises(ValidationError):
            LessonUpdate(video_url=None)

    def test_blank_string_is_not_a_clear(self):
        with pytest.raises(ValidationError):
            LessonUpdate(videoUrl="  ")

    def test_only_clearable_fields_may_be_cleared(self):
        with pytest.raises(ValidationError):
            LessonUpdate(clear={"title"})

    def test_set_and_clear_conflict(self):
        with pytest.raises(ValidationError):
            LessonUpdate(video_url="https://v/2", clear={"video_url"})

    async def test_soft_deleted_lesson_filtered_from_list(self, services, session_factory):
        a = await services.content.create_lesson(LessonCreate(title="A"))
        b = await services.content.create_lesson(LessonCreate(title="B"))
        await services.content.soft_delete_lesson(a.id)

        assert [lesson.id for lesson in await services.content.list_lessons()] == [b.id]
        async with session_factory() as session:
            rows = (await session.execute(select(Lesson))).scalars().all()
            assert len(rows) == 2


class TestBrandScoping:

    async def test_brand_sees_only_its_own_content(self, services):
        acme = services.brand_content("acme")
        globex = services.brand_content("globex")
        course = await acme.create_course(CourseCreate(title="Acme onboarding"))

        assert course.brand_id == "acme"
        assert (await acme.get_course(course.id)).id == course.id
        assert await globex.get_course(course.id) is None
        assert await globex.list_courses() == []
        assert await services.content.get_course(course.id) is None

    async def test_brand_cannot_update_foreign_lesson(self, services):
        lesson = await services.brand_content("acme").create_lesson(LessonCreate(title="Secret"))
        with pytest.raises(NotFoundError):
            await services.brand_content("globex").update_lesson(lesson.id, LessonUpdate(title="Mine"))

    def test_brand_repository_needs_brand(self, services):
        with pytest.raises(ValueError):
            ContentRepository(services.session_factory, services.executor, ContentTier.BRAND)

    async def test_reference_for_uses_tier_prefix(self, services, brand_repo):
        lesson = await brand_repo.create_lesson(LessonCreate(title="x"))
        quiz = await services.content.create_quiz(QuizCreate(title="q"))
        assert str(brand_repo.reference_for(lesson)) == f"brandLesson-{lesson.id}"
        assert str(services.content.reference_for(quiz)) == f"quiz-{quiz.id}"
