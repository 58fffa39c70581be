"""Task service for CRUD operations and lifecycle actions."""

import logging
from datetime import date, datetime
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.core.recurrence import utc_today
from src.domain.create_models import TaskCreate
from src.domain.task import Priority, Task, TaskStatus
from src.models.service_models import TaskView
from src.services import activity_service, task_state_machine
from src.services.overdue_service import is_task_overdue


logger = logging.getLogger(__name__)


def _to_view(record: dict[str, Any], today: date | None = None) -> TaskView:
    task = Task(**record)
    return TaskView(**task.model_dump(), is_overdue=is_task_overdue(task, today))


async def create_task(
    *,
    home_id: str,
    title: str,
    due_date: date,
    description: str | None = None,
    asset_id: str | None = None,
    priority: Priority = Priority.MEDIUM,
    notes: str | None = None,
) -> TaskView:
    """Create a one-off task.

    Raises:
        RecordNotFoundError: If the home (or asset) does not exist
    """
    with span("task_service.create_task"):
        await db_client.get_record(collection="homes", record_id=home_id)
        if asset_id:
            await db_client.get_record(collection="assets", record_id=asset_id)

        task_data = TaskCreate(
            home_id=home_id,
            asset_id=asset_id,
            title=title,
            description=description,
            due_date=due_date,
            priority=priority,
            notes=notes,
        )
        record = await db_client.create_record(collection="tasks", data=task_data.model_dump(mode="json"))
        logger.info("Created task", extra={"task_id": record["id"], "home_id": home_id})
        return _to_view(record)


async def get_task(*, task_id: str, today: date | None = None) -> TaskView:
    """Get a task by ID.

    Raises:
        RecordNotFoundError: If the task does not exist
    """
    with span("task_service.get_task"):
        return _to_view(await db_client.get_record(collection="tasks", record_id=task_id), today)


async def list_tasks(
    *,
    home_id: str | None = None,
    status: TaskStatus | None = None,
    asset_id: str | None = None,
    schedule_id: str | None = None,
    page: int = 1,
    per_page: int = constants.DEFAULT_PER_PAGE_LIMIT,
) -> list[TaskView]:
    """List tasks ordered by due date, with optional filters."""
    with span("task_service.list_tasks"):
        filters = []
        if home_id:
            filters.append(f'home_id = "{db_client.sanitize_param(home_id)}"')
        if status:
            filters.append(f'status = "{status}"')
        if asset_id:
            filters.append(f'asset_id = "{db_client.sanitize_param(asset_id)}"')
        if schedule_id:
            filters.append(f'schedule_id = "{db_client.sanitize_param(schedule_id)}"')

        records = await db_client.list_records(
            collection="tasks",
            filter_query=" && ".join(filters),
            sort="+due_date,+id",
            page=page,
            per_page=min(per_page, constants.MAX_PER_PAGE_LIMIT),
        )
        today = utc_today()
        return [_to_view(r, today) for r in records]


async def start_task(*, task_id: str) -> TaskView:
    """Move a pending or overdue task to IN_PROGRESS.

    Raises:
        RecordNotFoundError: If the task does not exist
        InvalidStateTransitionError: If the task cannot be started
    """
    with span("task_service.start_task"):
        return _to_view(await task_state_machine.transition_to_in_progress(task_id=task_id))


async def complete_task(
    *,
    task_id: str,
    completion_notes: str | None = None,
    now: datetime | None = None,
) -> TaskView:
    """Complete a task and stamp its schedule's last completion date.

    Raises:
        RecordNotFoundError: If the task does not exist
        InvalidStateTransitionError: If the task is already completed or cancelled
    """
    with span("task_service.complete_task"):
        record = await task_state_machine.transition_to_completed(
            task_id=task_id,
            completion_notes=completion_notes,
            now=now,
        )
        await activity_service.log_task_completed(home_id=record["home_id"], task_id=task_id, task_title=record["title"])
        return _to_view(record)


async def reopen_task(*, task_id: str) -> TaskView:
    """Reopen a completed or cancelled task as PENDING.

    Raises:
        RecordNotFoundError: If the task does not exist
        InvalidStateTransitionError: If the task is neither completed nor cancelled
    """
    with span("task_service.reopen_task"):
        return _to_view(await task_state_machine.transition_to_pending(task_id=task_id))


async def cancel_task(*, task_id: str) -> TaskView:
    """Cancel a task. Tasks are never deleted.

    Raises:
        RecordNotFoundError: If the task does not exist
        InvalidStateTransitionError: If the task is completed or already cancelled
    """
    with span("task_service.cancel_task"):
        return _to_view(await task_state_machine.transition_to_cancelled(task_id=task_id))
