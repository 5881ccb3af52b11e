"""
User course assignment and dashboard aggregation
"""
import pytest
from sqlalchemy import select

from coursecore.errors import NotFoundError
from coursecore.orm.user import CompletedItem, CourseProgress
from coursecore.schemas.user import UserUpdate
from coursecore.services.progress_aggregation import ProgressAggregation
from coursecore.state_machines.progress_status import ProgressStatus


class TestUserService:

    async def test_assign_creates_not_started_record(self, services, session_factory, make_user, make_course):
        user = await make_user()
        course = await make_course()

        user = await services.users.assign_courses(user.id, [course.id, course.id])

        assert user.assigned_course_ids == [course.id]
        async with session_factory() as session:
            row = await session.get(CourseProgress, (user.id, course.id))
            assert row.status == ProgressStatus.NOT_STARTED.value
            assert row.progress == 0

    async def test_reassign_keeps_progress(self, services, make_user, make_course, make_lesson):
        _, ref = await make_lesson()
        course = await make_course(curriculum=[ref])
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id])
        await services.ledger.record_item_completion(user.id, course.id, 0)

        await services.users.assign_courses(user.id, [course.id])

        record = await services.ledger.get_progress(user.id, course.id)
        assert record.status == ProgressStatus.COMPLETED

    async def test_unassign_removes_record_and_items(
        self, services, session_factory, make_user, make_course, make_lesson
    ):
        _, ref = await make_lesson()
        course = await make_course(curriculum=[ref])
        other = await make_course("Other")
        user = await make_user()
        await services.users.assign_courses(user.id, [course.id, other.id])
        await services.ledger.record_item_completion(user.id, course.id, 0)

        user = await services.users.unassign_courses(user.id, [course.id])

        assert user.assigned_course_ids == [other.id]
        async with session_factory() as session:
            assert await session.get(CourseProgress, (user.id, course.id)) is None
            assert await session.get(CourseProgress, (user.id, other.id)) is not None
            items = (await session.execute(select(CompletedItem))).scalars().all()
            assert items == []

    async def test_list_by_company_and_location(self, services, make_user):
        a = await make_user("Ana", company_id="acme", location_ids=["north"])
        b = await make_user("Ben", company_id="acme", location_ids=["south"])
        await make_user("Cy", company_id="globex")

        assert {u.id for u in await services.users.list_users("acme")} == {a.id, b.id}
        assert [u.id for u in await services.users.list_users("acme", "south")] == [b.id]

    async def test_update_and_soft_delete(self, services, make_user):
        user = await make_user()
        user = await services.users.update_user(user.id, UserUpdate(name="Dana S."))
        assert user.name == "Dana S."

        await services.users.delete_user(user.id)
        assert await services.users.get_user(user.id) is None
        with pytest.raises(NotFoundError):
            await services.users.assign_courses(user.id, ["c1"])


class TestAggregation:

    async def test_overall_excludes_deleted_course(self, services, make_user, make_course, make_lesson):
        refs = [(await make_lesson(f"L{i}"))[1] for i in range(4)]
        live = await make_course("Live", curriculum=refs)
        doomed_ref = (await make_lesson("D"))[1]
        doomed = await make_course("Doomed", curriculum=[doomed_ref])
        user = await make_user()
        await services.users.assign_courses(user.id, [live.id, doomed.id])
        await services.ledger.record_item_completion(user.id, live.id, 0)
        await services.ledger.record_item_completion(user.id, live.id, 1)

        await services.content.delete_course(doomed.id)

        assert await services.aggregation.get_user_overall_progress(user.id) == 50

    async def test_overall_sums_across_courses(self, services, make_user, make_course, make_lesson):
        a_refs = [(await make_lesson(f"A{i}"))[1] for i in range(2)]
        b_refs = [(await make_lesson(f"B{i}"))[1] for i in range(4)]
        a = await make_course("A", curriculum=a_refs)
        b = await make_course("B", curriculum=b_refs)
        user = await make_user()
        await services.users.assign_courses(user.id, [a.id, b.id, "never-existed"])
        await services.ledger.record_item_completion(user.id, a.id, 0)
        await services.ledger.record_item_completion(user.id, a.id, 1)

        # 2 of 6 live items
        assert await services.aggregation.get_user_overall_progress(user.id) == 33

        summary = await services.aggregation.get_user_progress_summary(user.id)
        assert summary.overall_progress == 33
        assert (summary.completed_courses, summary.in_progress_courses, summary.not_started_courses) == (1, 0, 2)
        assert [entry.course_id for entry in summary.courses] == [a.id, b.id, "never-existed"]

    async def test_nothing_resolvable_is_zero(self, services, make_user):
        user = await make_user()
        assert await services.aggregation.get_user_overall_progress(user.id) == 0
        assert await services.aggregation.get_user_overall_progress("ghost") == 0

    async def test_team_progress(self, services, make_user, make_course, make_lesson):
        refs = [(await make_lesson(f"L{i}"))[1] for i in range(2)]
        course = await make_course(curriculum=refs)
        done = await make_user("Ana", location_ids=["north"])
        half = await make_user("Ben", location_ids=["south"])
        await make_user("Cy", location_ids=["north"])
        for user in (done, half):
            await services.users.assign_courses(user.id, [course.id])
        await services.ledger.record_item_completion(done.id, course.id, 0)
        await services.ledger.record_item_completion(done.id, course.id, 1)
        await services.ledger.record_item_completion(half.id, course.id, 0)

        team = await services.aggregation.get_team_progress("acme")
        assert team.member_count == 3
        assert team.average_progress == 75
        assert team.completed_courses == 1

        north = await services.aggregation.get_team_progress("acme", "north")
        assert north.member_count == 2
        assert north.average_progress == 100

    async def test_store_failure_degrades_to_empty(self, executor):
        def broken_factory():
            raise ConnectionError("store unreachable")

        aggregation = ProgressAggregation(broken_factory, executor)
        assert await aggregation.get_user_overall_progress("u") == 0
        team = await aggregation.get_team_progress("acme")
        assert team.member_count == 0
        assert team.members == []
