"""
Integrity CLI tests
"""
import asyncio

from coursecore.cli import create_parser, main
from coursecore.database import close_db, create_engine, create_session_factory, init_db
from coursecore.orm.content import Course, Lesson


class TestCLIParser:

    def test_integrity_check_parsing(self):
        args = create_parser().parse_args(["integrity", "check", "--course", "c1"])
        assert args.command == "integrity"
        assert args.integrity_action == "check"
        assert args.course == "c1"

    def test_global_options(self):
        args = create_parser().parse_args(["--dry-run", "--log-level", "DEBUG", "integrity", "repair"])
        assert args.dry_run is True
        assert args.log_level == "DEBUG"

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()


def seed_dangling(url: str) -> str:
    """One course whose only lesson was soft-deleted without cleanup."""
    async def seed():
        engine = create_engine(url)
        try:
            await init_db(engine)
            session_factory = create_session_factory(engine)
            async with session_factory() as session:
                async with session.begin():
                    lesson = Lesson(title="Gone", is_deleted=True)
                    session.add(lesson)
                    await session.flush()
                    course = Course(title="Course", curriculum=[f"lesson-{lesson.id}"])
                    session.add(course)
            return course.id
        finally:
            await close_db(engine)

    return asyncio.run(seed())


class TestIntegrityCommands:

    def test_check_repair_cycle(self, tmp_path, capsys):
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"
        course_id = seed_dangling(url)

        assert main(["--database-url", url, "integrity", "check"]) == 1
        assert course_id in capsys.readouterr().out

        assert main(["--database-url", url, "--dry-run", "integrity", "repair"]) == 0
        assert "[DRY RUN]" in capsys.readouterr().out
        assert main(["--database-url", url, "integrity", "check"]) == 1

        assert main(["--database-url", url, "integrity", "repair"]) == 0
        assert main(["--database-url", url, "integrity", "check"]) == 0
        assert "No dangling references" in capsys.readouterr().out

    def test_db_init_dry_run(self, tmp_path, capsys):
        url = f"sqlite+aiosqlite:///{tmp_path / 'init.db'}"
        assert main(["--database-url", url, "--dry-run", "db", "init"]) == 0
        assert not (tmp_path / "init.db").exists()
