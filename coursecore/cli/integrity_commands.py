"""
coursecore/cli/integrity_commands.py
Database and curriculum integrity commands

Exit codes for `integrity check`: 0 clean, 1 dangling references found.
"""
import asyncio
import logging

from coursecore.config.settings import Settings
from coursecore.database import close_db, create_engine, create_session_factory, init_db
from coursecore.services.registry import build_services

logger = logging.getLogger(__name__)


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, settings: Settings, dry_run: bool = False):
        self.settings = settings
        self.dry_run = dry_run

    def execute(self, args) -> int:
        if args.db_action == "init":
            return asyncio.run(self._init())
        print("Error: Unknown database action")
        return 1

    async def _init(self) -> int:
        print("=== Database Init ===")
        if self.dry_run:
            print(f"[DRY RUN] Would create missing tables on {self.settings.to_dict()['database_backend']}")
            return 0
        engine = create_engine(self.settings.database_url)
        try:
            await init_db(engine)
        finally:
            await close_db(engine)
        print("✓ Tables verified")
        return 0


class IntegrityCommand:
    """Dangling curriculum reference check and repair."""

    def __init__(self, settings: Settings, dry_run: bool = False):
        self.settings = settings
        self.dry_run = dry_run

    def execute(self, args) -> int:
        if args.integrity_action == "check":
            return asyncio.run(self._run(args.course, repair=False))
        elif args.integrity_action == "repair":
            return asyncio.run(self._run(args.course, repair=True))
        print("Error: Unknown integrity action")
        return 1

    async def _run(self, course_id, repair: bool) -> int:
        engine = create_engine(self.settings.database_url)
        try:
            if self.settings.auto_create_tables:
                await init_db(engine)
            services = build_services(create_session_factory(engine), settings=self.settings)
            reports = await services.composer.find_dangling_references(course_id)

            print("=== Dangling Curriculum References ===")
            if not reports:
                print("✓ No dangling references")
                return 0
            for report in reports:
                scope = f"brand {report.brand_id}" if report.brand_id else report.tier.value
                print(f"  course {report.course_id} ({scope}): {', '.join(report.references)}")

            if not repair:
                return 1
            if self.dry_run:
                total = sum(len(report.references) for report in reports)
                print(f"[DRY RUN] Would remove {total} reference(s) from {len(reports)} course(s)")
                return 0

            results = await services.cleanup.repair(reports)
            repaired = sum(1 for result in results if result.courses_updated)
            print(f"✓ Removed {repaired} reference(s)")
            logger.info(f"Integrity repair removed {repaired} reference(s)")
            return 0
        finally:
            await close_db(engine)
