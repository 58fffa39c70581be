"""Overdue sweep: flag pending tasks whose due date has passed."""

import logging
from datetime import UTC, date, datetime

from src.core import db_client
from src.core.logging import span
from src.core.recurrence import utc_today
from src.domain.task import Task, TaskStatus
from src.models.service_models import OverdueSweepResult


logger = logging.getLogger(__name__)


def is_task_overdue(task: Task, today: date | None = None) -> bool:
    """Whether a task would be flagged by the overdue sweep.

    Only PENDING tasks due strictly before today qualify; a task due today is not overdue.
    """
    today = today or utc_today()
    return task.status == TaskStatus.PENDING and task.due_date < today


async def mark_overdue_tasks(*, today: date | None = None) -> OverdueSweepResult:
    """Move every PENDING task due before today to OVERDUE in one statement.

    Idempotent: a second run with no intervening changes updates nothing.

    Args:
        today: Sweep date (defaults to the current UTC date)

    Returns:
        OverdueSweepResult with the number of tasks updated

    Raises:
        DatabaseError: If the update fails
    """
    with span("overdue_service.mark_overdue_tasks"):
        today = today or utc_today()
        updated = await db_client.update_records(
            collection="tasks",
            filter_query=f'status = "{TaskStatus.PENDING}" && due_date < "{today.isoformat()}"',
            data={"status": TaskStatus.OVERDUE},
        )

        logger.info("Marked tasks overdue", extra={"tasks_updated": updated, "today": today.isoformat()})
        return OverdueSweepResult(tasks_updated=updated, swept_at=datetime.now(UTC))
