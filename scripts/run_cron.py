#!/usr/bin/env python3
"""Run the maintenance sweeps directly against the database (for system cron).

Usage:
    uv run python scripts/run_cron.py process-schedules [--date YYYY-MM-DD]
    uv run python scripts/run_cron.py mark-overdue [--date YYYY-MM-DD]
    uv run python scripts/run_cron.py cleanup-activities
    uv run python scripts/run_cron.py all [--date YYYY-MM-DD]
"""

import asyncio
import logging
import sys
from datetime import date

from src.core import db_client
from src.services import activity_service, overdue_service, schedule_service


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

COMMANDS = ["process-schedules", "mark-overdue", "cleanup-activities", "all"]


async def process_schedules(today: date | None) -> bool:
    """Materialize due schedules. Returns False if any schedule failed."""
    summary = await schedule_service.materialize_due_schedules(today=today)
    logger.info(
        f"Processed {summary.processed} schedules: {summary.tasks_created} tasks created, "
        f"{summary.skipped} skipped, {len(summary.errors)} errors"
    )
    for failure in summary.errors:
        logger.info(f"  schedule {failure.schedule_id}: {failure.error}")
    return not summary.errors


async def mark_overdue(today: date | None) -> bool:
    """Flag overdue tasks."""
    result = await overdue_service.mark_overdue_tasks(today=today)
    logger.info(f"Marked {result.tasks_updated} tasks overdue")
    return True


async def cleanup_activities() -> bool:
    """Delete activity entries past the retention window."""
    result = await activity_service.cleanup_old_activity()
    logger.info(f"Deleted {result.deleted_count} activity entries created before {result.cutoff.isoformat()}")
    return True


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def main() -> int:
    """Main entry point."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args or args[0] not in COMMANDS:
        print_usage()
        return 2

    command = args[0]
    today = None
    if "--date" in args:
        date_index = args.index("--date")
        if date_index + 1 >= len(args):
            print_usage()
            return 2
        try:
            today = date.fromisoformat(args[date_index + 1])
        except ValueError:
            logger.info(f"Invalid date: {args[date_index + 1]}")
            return 2

    await db_client.init_db()
    try:
        ok = True
        if command in ("process-schedules", "all"):
            ok = await process_schedules(today) and ok
        if command in ("mark-overdue", "all"):
            ok = await mark_overdue(today) and ok
        if command in ("cleanup-activities", "all"):
            ok = await cleanup_activities() and ok
    finally:
        await db_client.close_connection()

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
