"""Activity log service: best-effort audit trail for homes."""

import logging
from datetime import datetime, timedelta
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.core.recurrence import format_frequency
from src.domain.activity import ActivityLog, ActivityType
from src.domain.schedule import Frequency
from src.models.service_models import ActivityCleanupResult


logger = logging.getLogger(__name__)


async def log_activity(
    *,
    home_id: str | None,
    activity_type: ActivityType,
    entity_type: str,
    entity_id: str,
    entity_name: str,
    description: str,
    metadata: dict[str, Any] | None = None,
) -> ActivityLog | None:
    """Write an activity log entry.

    Auditing must never break the operation being audited, so failures are
    logged and None is returned.
    """
    with span("activity_service.log_activity"):
        try:
            record = await db_client.create_record(
                collection="activity_logs",
                data={
                    "home_id": home_id,
                    "activity_type": activity_type,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "entity_name": entity_name,
                    "description": description,
                    "metadata": metadata,
                },
            )
        except Exception as e:
            logger.error(
                "Failed to log activity",
                extra={"activity_type": activity_type, "entity_id": entity_id, "error": str(e)},
            )
            return None

        return ActivityLog(**record)


async def log_template_applied(
    *,
    home_id: str,
    template_id: str,
    template_name: str,
    asset_id: str | None,
    asset_name: str | None,
) -> ActivityLog | None:
    """Record that a template was applied to an asset or the whole home."""
    target = asset_name or constants.WHOLE_HOME_LABEL
    return await log_activity(
        home_id=home_id,
        activity_type=ActivityType.TEMPLATE_APPLIED,
        entity_type="template",
        entity_id=template_id,
        entity_name=template_name,
        description=f'Applied "{template_name}" to {target}',
        metadata={"asset_id": asset_id, "asset_name": target},
    )


async def log_schedule_created(
    *,
    home_id: str,
    schedule_id: str,
    template_name: str,
    asset_name: str,
    frequency: Frequency,
    custom_frequency_days: int | None = None,
) -> ActivityLog | None:
    """Record that a recurring schedule was created or reactivated."""
    label = format_frequency(frequency, custom_frequency_days)
    return await log_activity(
        home_id=home_id,
        activity_type=ActivityType.SCHEDULE_CREATED,
        entity_type="schedule",
        entity_id=schedule_id,
        entity_name=template_name,
        description=f'Scheduled "{template_name}" for {asset_name} ({label.lower()})',
        metadata={"frequency": frequency, "asset_name": asset_name},
    )


async def log_task_completed(*, home_id: str, task_id: str, task_title: str) -> ActivityLog | None:
    """Record that a task was completed."""
    return await log_activity(
        home_id=home_id,
        activity_type=ActivityType.TASK_COMPLETED,
        entity_type="task",
        entity_id=task_id,
        entity_name=task_title,
        description=f'Completed "{task_title}"',
    )


async def list_activity(*, home_id: str, limit: int = 50) -> list[ActivityLog]:
    """Most recent activity for a home, newest first."""
    records = await db_client.list_records(
        collection="activity_logs",
        filter_query=f'home_id = "{db_client.sanitize_param(home_id)}"',
        sort="-created,-id",
        per_page=min(limit, constants.MAX_PER_PAGE_LIMIT),
    )
    return [ActivityLog(**r) for r in records]


async def cleanup_old_activity(
    *,
    older_than_days: int = constants.ACTIVITY_RETENTION_DAYS,
    now: datetime | None = None,
) -> ActivityCleanupResult:
    """Delete activity entries created before the retention cutoff in one statement.

    Args:
        older_than_days: Retention window in days
        now: Reference time for the cutoff (defaults to the current time)

    Returns:
        ActivityCleanupResult with the number of entries deleted and the cutoff used

    Raises:
        DatabaseError: If the delete fails
    """
    with span("activity_service.cleanup_old_activity"):
        cutoff = (now or datetime.now()) - timedelta(days=older_than_days)
        deleted = await db_client.delete_records(
            collection="activity_logs",
            filter_query=f'created < "{cutoff.isoformat()}"',
        )

        logger.info(
            "Cleaned up activity logs",
            extra={"deleted_count": deleted, "cutoff": cutoff.isoformat(), "older_than_days": older_than_days},
        )
        return ActivityCleanupResult(deleted_count=deleted, cutoff=cutoff)
