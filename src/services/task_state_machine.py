"""Pure state transition functions for task lifecycle management."""

import logging
from datetime import UTC, datetime
from typing import Any

from src.core import db_client
from src.core.errors import InvalidStateTransitionError
from src.core.logging import span
from src.domain.task import TaskStatus


logger = logging.getLogger(__name__)


# action -> statuses it may start from, and the status it leads to
TRANSITIONS: dict[str, tuple[frozenset[TaskStatus], TaskStatus]] = {
    "start": (frozenset({TaskStatus.PENDING, TaskStatus.OVERDUE}), TaskStatus.IN_PROGRESS),
    "complete": (
        frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE}),
        TaskStatus.COMPLETED,
    ),
    "reopen": (frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED}), TaskStatus.PENDING),
    "cancel": (
        frozenset({TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.OVERDUE}),
        TaskStatus.CANCELLED,
    ),
}


def can_transition(current_status: TaskStatus | str, action: str) -> bool:
    """Whether an action is allowed from a status."""
    allowed_from, _ = TRANSITIONS[action]
    return TaskStatus(current_status) in allowed_from


async def _transition(*, task_id: str, action: str, extra_data: dict[str, Any] | None = None) -> dict[str, Any]:
    task = await db_client.get_record(collection="tasks", record_id=task_id)

    if not can_transition(task["status"], action):
        raise InvalidStateTransitionError(task_id=task_id, current_status=task["status"], action=action)

    _, target_status = TRANSITIONS[action]
    updated_record = await db_client.update_record(
        collection="tasks",
        record_id=task_id,
        data={"status": target_status, **(extra_data or {})},
    )

    logger.info(f"Transitioned task {task_id} from {task['status']} to {target_status}")
    return updated_record


async def transition_to_in_progress(*, task_id: str) -> dict[str, Any]:
    """Transition task to IN_PROGRESS state."""
    with span("task_state_machine.transition_to_in_progress"):
        return await _transition(task_id=task_id, action="start")


async def transition_to_completed(
    *,
    task_id: str,
    completion_notes: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Transition task to COMPLETED state and record the schedule's last completion.

    The task update and the schedule's last_completed_date move together in
    one transaction.
    """
    with span("task_state_machine.transition_to_completed"):
        completed_at = now or datetime.now(UTC)

        async with db_client.transaction():
            updated_record = await _transition(
                task_id=task_id,
                action="complete",
                extra_data={"completed_at": completed_at.isoformat(), "completion_notes": completion_notes},
            )

            schedule_id = updated_record.get("schedule_id")
            if schedule_id:
                touched = await db_client.update_records(
                    collection="recurring_schedules",
                    filter_query=f'id = "{schedule_id}" && is_active = "true"',
                    data={"last_completed_date": completed_at.date().isoformat()},
                )
                if touched:
                    logger.info(
                        "Recorded schedule completion",
                        extra={"schedule_id": schedule_id, "task_id": task_id},
                    )

        return updated_record


async def transition_to_pending(*, task_id: str) -> dict[str, Any]:
    """Reopen a completed or cancelled task."""
    with span("task_state_machine.transition_to_pending"):
        return await _transition(
            task_id=task_id,
            action="reopen",
            extra_data={"completed_at": None, "completion_notes": None},
        )


async def transition_to_cancelled(*, task_id: str) -> dict[str, Any]:
    """Cancel a task (soft delete)."""
    with span("task_state_machine.transition_to_cancelled"):
        return await _transition(task_id=task_id, action="cancel")
