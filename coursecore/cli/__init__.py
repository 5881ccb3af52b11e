#!/usr/bin/env python3
"""
Coursecore operations CLI

Usage:
    python -m coursecore.cli <command> [options]

Commands:
    db          Database operations (init)
    integrity   Curriculum integrity (check, repair)

Environment:
    DATABASE_URL    SQLAlchemy async URL (default: sqlite+aiosqlite:///./coursecore.db)
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from dotenv import load_dotenv

from coursecore import __version__
from coursecore.cli.integrity_commands import DbCommand, IntegrityCommand
from coursecore.config.settings import load_settings


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="coursecore",
        description="Curriculum and progress engine operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s integrity check
  %(prog)s integrity check --course 4f1c...
  %(prog)s --dry-run integrity repair
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: LOG_LEVEL or INFO)"
    )

    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")
    db_subparsers.add_parser("init", help="Create missing tables")

    # Integrity commands
    integrity_parser = subparsers.add_parser("integrity", help="Curriculum integrity")
    integrity_subparsers = integrity_parser.add_subparsers(dest="integrity_action")

    check_parser = integrity_subparsers.add_parser("check", help="List dangling curriculum references")
    check_parser.add_argument("--course", help="Check one course only")

    repair_parser = integrity_subparsers.add_parser("repair", help="Remove dangling curriculum references")
    repair_parser.add_argument("--course", help="Repair one course only")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    load_dotenv()
    settings = load_settings(parsed.database_url)
    setup_logging(parsed.log_level or settings.log_level)

    command_map = {
        "db": DbCommand,
        "integrity": IntegrityCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](settings, dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
