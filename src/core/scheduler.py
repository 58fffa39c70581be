"""In-process scheduler for the daily maintenance sweeps."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import settings
from src.core.scheduler_tracker import retry_job_with_backoff
from src.services import activity_service, overdue_service, schedule_service


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")

PROCESS_SCHEDULES_JOB = "process_schedules"
MARK_OVERDUE_JOB = "mark_overdue"
CLEANUP_ACTIVITIES_JOB = "cleanup_activities"
JOB_NAMES = [PROCESS_SCHEDULES_JOB, MARK_OVERDUE_JOB, CLEANUP_ACTIVITIES_JOB]


async def run_process_schedules() -> None:
    """Materialize due schedules into tasks.

    A run that hit its deadline is raised as a failure so the retry wrapper
    picks up the remaining schedules.
    """
    summary = await schedule_service.materialize_due_schedules()
    if summary.timed_out:
        msg = f"Materializer deadline exceeded with {len(summary.errors)} schedules unprocessed"
        raise TimeoutError(msg)


async def run_mark_overdue() -> None:
    """Flag pending tasks past their due date."""
    await overdue_service.mark_overdue_tasks()


async def run_cleanup_activities() -> None:
    """Drop activity entries past the retention window."""
    await activity_service.cleanup_old_activity()


def start_scheduler() -> None:
    """Start the scheduler and register all jobs.

    This should be called during FastAPI app startup. Does nothing unless
    ENABLE_SCHEDULER is set.
    """
    if not settings.enable_scheduler:
        logger.info("In-process scheduler disabled")
        return

    logger.info("Starting scheduler")

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_process_schedules, PROCESS_SCHEDULES_JOB],
        trigger=CronTrigger(hour=settings.scheduler_hour, minute=0),
        id=PROCESS_SCHEDULES_JOB,
        name="Materialize Due Schedules",
        replace_existing=True,
    )
    logger.info(f"Scheduled process schedules job: daily at {settings.scheduler_hour}:00 UTC")

    # Sweep after materializing
    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_mark_overdue, MARK_OVERDUE_JOB],
        trigger=CronTrigger(hour=settings.scheduler_hour, minute=5),
        id=MARK_OVERDUE_JOB,
        name="Mark Overdue Tasks",
        replace_existing=True,
    )
    logger.info(f"Scheduled mark overdue job: daily at {settings.scheduler_hour}:05 UTC")

    scheduler.add_job(
        retry_job_with_backoff,
        args=[run_cleanup_activities, CLEANUP_ACTIVITIES_JOB],
        trigger=CronTrigger(hour=settings.scheduler_hour, minute=10),
        id=CLEANUP_ACTIVITIES_JOB,
        name="Clean Up Activity Logs",
        replace_existing=True,
    )
    logger.info(f"Scheduled activity cleanup job: daily at {settings.scheduler_hour}:10 UTC")

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return

    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
