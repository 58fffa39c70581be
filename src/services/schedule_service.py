"""Recurring schedule service: materializing due cycles into tasks and schedule management."""

import asyncio
import logging
from datetime import date
from typing import Any

from src.core import db_client
from src.core.config import constants, settings
from src.core.db_client import UniqueConstraintError
from src.core.logging import span
from src.core.recurrence import calculate_next_due_date, format_frequency, utc_today
from src.domain.create_models import TaskCreate
from src.domain.schedule import Frequency, RecurringSchedule
from src.domain.task import Priority, TaskStatus
from src.models.service_models import MaterializeSummary, ScheduleFailure, ScheduleView


logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"


async def _list_due_schedules(*, today: date) -> list[dict[str, Any]]:
    """Read every active schedule due on or before today, oldest first."""
    filter_query = f'is_active = "true" && next_due_date <= "{today.isoformat()}"'
    per_page = constants.MAX_PER_PAGE_LIMIT
    schedules: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await db_client.list_records(
            collection="recurring_schedules",
            filter_query=filter_query,
            sort="+next_due_date,+id",
            page=page,
            per_page=per_page,
        )
        schedules.extend(batch)
        if len(batch) < per_page:
            return schedules
        page += 1


async def _claim_cycle(*, schedule_id: str, due_date: str, next_due_date: date) -> bool:
    """Advance a schedule past one cycle if nobody else has.

    Compare-and-set on next_due_date: returns False when another run already
    moved the schedule on (or deactivated it).
    """
    claimed = await db_client.update_records(
        collection="recurring_schedules",
        filter_query=f'id = "{db_client.sanitize_param(schedule_id)}" && next_due_date = "{due_date}" && is_active = "true"',
        data={"next_due_date": next_due_date.isoformat()},
    )
    return claimed > 0


async def _materialize_schedule(schedule: dict[str, Any]) -> bool:
    """Create the task for one due schedule cycle and advance the schedule.

    Returns:
        True if a task was created, False if the cycle was already handled

    Raises:
        InvalidFrequencyError: If the schedule's frequency data is unusable
        RecordNotFoundError: If the schedule's template or asset no longer exists
        DatabaseError: If a write fails
    """
    schedule_id = schedule["id"]
    due_date = schedule["next_due_date"]

    # Cadence is anchored to the missed due date, never to the run date
    next_due_date = calculate_next_due_date(
        date.fromisoformat(due_date),
        schedule["frequency"],
        schedule.get("custom_frequency_days"),
    )

    template = await db_client.get_record(collection="maintenance_templates", record_id=schedule["template_id"])
    asset = await db_client.get_record(collection="assets", record_id=schedule["asset_id"])

    task = TaskCreate(
        home_id=asset["home_id"],
        asset_id=schedule["asset_id"],
        template_id=schedule["template_id"],
        schedule_id=schedule_id,
        title=template["name"],
        description=template["description"],
        due_date=date.fromisoformat(due_date),
        priority=Priority(constants.DEFAULT_TASK_PRIORITY),
        status=TaskStatus.PENDING,
        notes=f"{constants.SCHEDULED_TASK_NOTE_PREFIX}: {template['name']}",
    )

    try:
        async with db_client.transaction():
            if not await _claim_cycle(schedule_id=schedule_id, due_date=due_date, next_due_date=next_due_date):
                logger.info("Schedule cycle already claimed", extra={"schedule_id": schedule_id, "due_date": due_date})
                return False
            created = await db_client.create_record(collection="tasks", data=task.model_dump(mode="json"))
    except UniqueConstraintError:
        # A task already exists for this cycle; move the schedule on without a duplicate
        logger.warning(
            "Task already exists for schedule cycle, advancing schedule",
            extra={"schedule_id": schedule_id, "due_date": due_date},
        )
        await _claim_cycle(schedule_id=schedule_id, due_date=due_date, next_due_date=next_due_date)
        return False

    logger.info(
        "Materialized schedule cycle",
        extra={
            "schedule_id": schedule_id,
            "task_id": created["id"],
            "due_date": due_date,
            "next_due_date": next_due_date.isoformat(),
        },
    )
    return True


async def materialize_due_schedules(
    *,
    today: date | None = None,
    timeout_seconds: float | None = None,
) -> MaterializeSummary:
    """Create one task per due cycle of every active schedule.

    Each schedule is handled in its own transaction; a failing schedule is
    reported in the summary and does not stop the others. The run stops at
    the batch deadline and reports the schedules it did not reach.

    Args:
        today: Run date (defaults to the current UTC date)
        timeout_seconds: Deadline for the run (defaults to settings.batch_timeout_seconds)

    Returns:
        MaterializeSummary with counts and per-schedule errors

    Raises:
        DatabaseError: If the due schedules cannot be read
    """
    with span("schedule_service.materialize_due_schedules"):
        today = today or utc_today()
        timeout = settings.batch_timeout_seconds if timeout_seconds is None else timeout_seconds

        due_schedules = await _list_due_schedules(today=today)
        summary = MaterializeSummary(processed=len(due_schedules))
        logger.info("Found due schedules", extra={"count": len(due_schedules), "today": today.isoformat()})

        next_index = 0
        try:
            async with asyncio.timeout(timeout):
                for schedule in due_schedules:
                    try:
                        created = await _materialize_schedule(schedule)
                    except Exception as e:
                        logger.error(
                            "Failed to materialize schedule",
                            extra={"schedule_id": schedule["id"], "error": str(e)},
                        )
                        summary.errors.append(ScheduleFailure(schedule_id=schedule["id"], error=str(e)))
                    else:
                        if created:
                            summary.tasks_created += 1
                        else:
                            summary.skipped += 1
                    next_index += 1
        except TimeoutError:
            summary.timed_out = True
            unreached = due_schedules[next_index:]
            summary.errors.extend(ScheduleFailure(schedule_id=s["id"], error=DEADLINE_EXCEEDED) for s in unreached)
            logger.warning(
                "Materializer deadline exceeded",
                extra={"timeout_seconds": timeout, "unprocessed": len(unreached)},
            )

        logger.info(
            "Materializer run complete",
            extra={
                "processed": summary.processed,
                "tasks_created": summary.tasks_created,
                "skipped": summary.skipped,
                "errors": len(summary.errors),
                "timed_out": summary.timed_out,
            },
        )
        return summary


def _to_view(record: dict[str, Any]) -> ScheduleView:
    return ScheduleView(
        **record,
        frequency_label=format_frequency(record["frequency"], record.get("custom_frequency_days")),
    )


async def get_schedule(*, schedule_id: str) -> ScheduleView:
    """Get a schedule by ID.

    Raises:
        RecordNotFoundError: If the schedule does not exist
    """
    with span("schedule_service.get_schedule"):
        record = await db_client.get_record(collection="recurring_schedules", record_id=schedule_id)
        return _to_view(record)


async def list_schedules(
    *,
    asset_id: str | None = None,
    include_inactive: bool = False,
    page: int = 1,
    per_page: int = constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[ScheduleView]:
    """List schedules ordered by next due date.

    Args:
        asset_id: Only schedules of this asset
        include_inactive: Include deactivated schedules
        page: Page number (1-indexed)
        per_page: Page size, capped at MAX_PER_PAGE_LIMIT

    Returns:
        List of schedules, soonest due first
    """
    with span("schedule_service.list_schedules"):
        filters = []
        if asset_id:
            filters.append(f'asset_id = "{db_client.sanitize_param(asset_id)}"')
        if not include_inactive:
            filters.append('is_active = "true"')

        records = await db_client.list_records(
            collection="recurring_schedules",
            filter_query=" && ".join(filters),
            sort="+next_due_date,+id",
            page=page,
            per_page=min(per_page, constants.MAX_PER_PAGE_LIMIT),
        )
        return [_to_view(r) for r in records]


async def update_schedule(
    *,
    schedule_id: str,
    frequency: Frequency | None = None,
    custom_frequency_days: int | None = None,
    is_active: bool | None = None,
    today: date | None = None,
) -> ScheduleView:
    """Update a schedule's recurrence or active flag.

    Changing the frequency (or the custom day count) recomputes next_due_date
    from the last completion, or from today when the schedule was never completed.

    Raises:
        RecordNotFoundError: If the schedule does not exist
        InvalidFrequencyError: If the result would be CUSTOM without a day count
    """
    with span("schedule_service.update_schedule"):
        current = RecurringSchedule(**await db_client.get_record(collection="recurring_schedules", record_id=schedule_id))
        data: dict[str, Any] = {}

        if frequency is not None or custom_frequency_days is not None:
            new_frequency = frequency or current.frequency
            new_custom_days = (
                custom_frequency_days if custom_frequency_days is not None else current.custom_frequency_days
            )
            if new_frequency != Frequency.CUSTOM:
                new_custom_days = None
            start = current.last_completed_date or today or utc_today()
            data["frequency"] = new_frequency
            data["custom_frequency_days"] = new_custom_days
            data["next_due_date"] = calculate_next_due_date(start, new_frequency, new_custom_days)

        if is_active is not None:
            data["is_active"] = is_active

        if not data:
            return _to_view(current.model_dump(mode="json"))

        updated = await db_client.update_record(collection="recurring_schedules", record_id=schedule_id, data=data)
        logger.info("Updated schedule", extra={"schedule_id": schedule_id, "fields": sorted(data)})
        return _to_view(updated)


async def deactivate_schedule(*, schedule_id: str) -> ScheduleView:
    """Soft-delete a schedule. Existing tasks are left untouched.

    Raises:
        RecordNotFoundError: If the schedule does not exist
    """
    with span("schedule_service.deactivate_schedule"):
        updated = await db_client.update_record(
            collection="recurring_schedules",
            record_id=schedule_id,
            data={"is_active": False},
        )
        logger.info("Deactivated schedule", extra={"schedule_id": schedule_id})
        return _to_view(updated)
