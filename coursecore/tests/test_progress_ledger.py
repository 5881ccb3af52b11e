"""
Progress ledger: completion recording, recompute-on-read, degraded reads
"""
import asyncio

import pytest

from coursecore.core.item_reference import ItemRef
from coursecore.errors import ErrorCode, InvalidStateError, NotFoundError
from coursecore.orm.content import Lesson
from coursecore.orm.user import CourseProgress
from coursecore.schemas.content import CourseCreate
from coursecore.services.progress_ledger import ProgressLedger
from coursecore.state_machines.progress_status import ProgressStatus


@pytest.fixture
def assigned(services, make_user, make_course, make_lesson, make_quiz):
    """A user assigned a course whose curriculum is [lesson, quiz]."""
    async def factory():
        lesson, lesson_ref = await make_lesson("Lesson 1")
        quiz, quiz_ref = await make_quiz("Quiz 1")
        course = await make_course(curriculum=[lesson_ref, quiz_ref])
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id])
        return user, course, lesson_ref, quiz_ref
    return factory


class TestRecordCompletion:

    async def test_walkthrough_scenario(self, services, assigned):
        user, course, lesson_ref, quiz_ref = await assigned()

        record = await services.ledger.get_progress(user.id, course.id)
        assert (record.progress, record.status) == (0, ProgressStatus.NOT_STARTED)

        record = await services.ledger.record_item_completion(user.id, course.id, 0)
        assert (record.progress, record.status) == (50, ProgressStatus.IN_PROGRESS)
        assert record.completed_items == [lesson_ref]

        record = await services.ledger.record_item_completion(user.id, course.id, 1)
        assert (record.progress, record.status) == (100, ProgressStatus.COMPLETED)

        await services.cleanup.delete_item(ItemRef.parse(lesson_ref))

        assert (await services.content.get_course(course.id)).curriculum == [quiz_ref]
        record = await services.ledger.get_progress(user.id, course.id)
        assert (record.progress, record.status) == (100, ProgressStatus.COMPLETED)
        assert record.completed_items == [quiz_ref]

    async def test_recording_twice_is_idempotent(self, services, assigned):
        user, course, _, _ = await assigned()
        first = await services.ledger.record_item_completion(user.id, course.id, 0)
        second = await services.ledger.record_item_completion(user.id, course.id, 0)
        assert first.completed_items == second.completed_items
        assert (second.progress, second.status) == (50, ProgressStatus.IN_PROGRESS)

    @pytest.mark.parametrize("index", [-1, 2, 99])
    async def test_index_out_of_range(self, services, assigned, index):
        user, course, _, _ = await assigned()
        with pytest.raises(InvalidStateError) as exc_info:
            await services.ledger.record_item_completion(user.id, course.id, index)
        assert exc_info.value.code == ErrorCode.ITEM_INDEX_OUT_OF_RANGE

    async def test_unknown_user_and_course(self, services, assigned):
        user, course, _, _ = await assigned()
        with pytest.raises(NotFoundError):
            await services.ledger.record_item_completion("ghost", course.id, 0)
        with pytest.raises(NotFoundError):
            await services.ledger.record_item_completion(user.id, "ghost", 0)

    async def test_stale_entry_is_skipped(self, services, session_factory, assigned):
        user, course, lesson_ref, _ = await assigned()
        async with session_factory() as session:
            async with session.begin():
                (await session.get(Lesson, ItemRef.parse(lesson_ref).id)).mark_deleted()

        record = await services.ledger.record_item_completion(user.id, course.id, 0)

        assert record.completed_items == []
        assert record.status == ProgressStatus.NOT_STARTED

    async def test_view_position_completes_that_item(self, services, assigned):
        user, course, lesson_ref, quiz_ref = await assigned()
        await services.content.soft_delete_lesson(ItemRef.parse(lesson_ref).id)

        view = await services.composer.get_curriculum(course.id)
        assert [(item.position, item.reference) for item in view.items] == [(1, quiz_ref)]

        record = await services.ledger.record_item_completion(user.id, course.id, view.items[0].position)
        assert record.completed_items == [quiz_ref]
        assert (record.progress, record.status) == (100, ProgressStatus.COMPLETED)

    async def test_rounding_half_up(self, services, make_user, make_course, make_lesson):
        refs = [(await make_lesson(f"L{i}"))[1] for i in range(8)]
        course = await make_course(curriculum=refs)
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id])

        record = await services.ledger.record_item_completion(user.id, course.id, 3)
        assert record.progress == 13


class TestConcurrentCompletion:

    async def test_different_items_are_all_kept(self, services, make_user, make_course, make_lesson):
        refs = [(await make_lesson(f"L{i}"))[1] for i in range(4)]
        course = await make_course(curriculum=refs)
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id])

        await asyncio.gather(*(
            services.ledger.record_item_completion(user.id, course.id, index) for index in range(4)
        ))

        record = await services.ledger.get_progress(user.id, course.id)
        assert sorted(record.completed_items) == sorted(refs)
        assert (record.progress, record.status) == (100, ProgressStatus.COMPLETED)

    async def test_stored_row_reflects_every_completion(
        self, services, session_factory, make_user, make_course, make_lesson
    ):
        refs = [(await make_lesson(f"L{i}"))[1] for i in range(2)]
        course = await make_course(curriculum=refs)
        user = await make_user()

        await asyncio.gather(
            services.ledger.record_item_completion(user.id, course.id, 0),
            services.ledger.record_item_completion(user.id, course.id, 1),
        )

        async with session_factory() as session:
            row = await session.get(CourseProgress, (user.id, course.id))
            assert (row.progress, row.status) == (100, ProgressStatus.COMPLETED.value)


class TestReads:

    async def test_curriculum_growth_regresses_completed(self, services, make_lesson, assigned):
        user, course, lesson_ref, quiz_ref = await assigned()
        await services.ledger.record_item_completion(user.id, course.id, 0)
        await services.ledger.record_item_completion(user.id, course.id, 1)

        _, extra_ref = await make_lesson("Bonus")
        await services.composer.replace_curriculum(course.id, [lesson_ref, quiz_ref, extra_ref])

        record = await services.ledger.get_progress(user.id, course.id)
        assert (record.progress, record.status) == (67, ProgressStatus.IN_PROGRESS)

    async def test_reads_do_not_write(self, services, session_factory, make_lesson, assigned):
        user, course, lesson_ref, quiz_ref = await assigned()
        await services.ledger.record_item_completion(user.id, course.id, 0)
        _, extra_ref = await make_lesson("Bonus")
        await services.composer.replace_curriculum(course.id, [lesson_ref, quiz_ref, extra_ref])

        await services.ledger.get_progress(user.id, course.id)

        async with session_factory() as session:
            row = await session.get(CourseProgress, (user.id, course.id))
            assert row.progress == 50

    async def test_deleted_course_returns_stored_values(self, services, assigned):
        user, course, _, _ = await assigned()
        await services.ledger.record_item_completion(user.id, course.id, 0)
        await services.content.delete_course(course.id)

        record = await services.ledger.get_progress(user.id, course.id)
        assert (record.progress, record.status) == (50, ProgressStatus.IN_PROGRESS)

    async def test_empty_curriculum_returns_stored_values(self, services, make_user):
        course = await services.content.create_course(CourseCreate(title="Empty"))
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id])
        record = await services.ledger.get_progress(user.id, course.id)
        assert (record.progress, record.status) == (0, ProgressStatus.NOT_STARTED)

    async def test_unknown_user_gets_default(self, services, assigned):
        _, course, _, _ = await assigned()
        record = await services.ledger.get_progress("ghost", course.id)
        assert record.to_wire() == {
            "completedItems": [],
            "status": "Not Started",
            "progress": 0,
            "lastUpdated": None,
        }

    async def test_store_failure_degrades_to_default(self, session_factory, executor, assigned):
        user, course, _, _ = await assigned()

        def broken_factory():
            raise ConnectionError("store unreachable")

        ledger = ProgressLedger(broken_factory, executor)
        record = await ledger.get_progress(user.id, course.id)
        assert record.status == ProgressStatus.NOT_STARTED
        assert record.progress == 0

    async def test_legacy_started_reads_as_in_progress(self, services, session_factory, assigned):
        user, course, _, _ = await assigned()
        await services.ledger.record_item_completion(user.id, course.id, 0)
        async with session_factory() as session:
            async with session.begin():
                (await session.get(CourseProgress, (user.id, course.id))).status = "Started"

        record = await services.ledger.get_progress(user.id, course.id)
        assert record.status == ProgressStatus.IN_PROGRESS
