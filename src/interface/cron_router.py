"""Cron trigger endpoints for the scheduled maintenance sweeps."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.core.errors import classify_error_with_response
from src.interface.security import verify_cron_secret
from src.models.service_models import CronRunSummary
from src.services import activity_service, overdue_service, schedule_service


router = APIRouter(prefix="/api/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])
logger = logging.getLogger(__name__)


def _systemic_failure(job: str, error: Exception) -> JSONResponse:
    response = classify_error_with_response(error)
    logger.error("Cron job failed", extra={"job": job, "error": str(error), "code": response.code})
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": f"Failed to run {job}", "code": response.code, "message": str(error)},
    )


@router.api_route("/mark-overdue", methods=["GET", "POST"], response_model=None)
async def mark_overdue() -> dict[str, object] | JSONResponse:
    """Flag every pending task past its due date as overdue."""
    try:
        result = await overdue_service.mark_overdue_tasks()
    except Exception as e:
        return _systemic_failure("mark-overdue", e)

    return {
        "success": True,
        "updated_count": result.tasks_updated,
        "timestamp": result.swept_at.isoformat(),
    }


@router.api_route("/process-schedules", methods=["GET", "POST"], response_model=None)
async def process_schedules() -> dict[str, object] | JSONResponse:
    """Materialize due schedules into tasks, then sweep overdue tasks.

    Per-schedule failures are reported in the body; only failures of the
    run as a whole return 500.
    """
    try:
        summary = await schedule_service.materialize_due_schedules()
        sweep = await overdue_service.mark_overdue_tasks()
    except Exception as e:
        return _systemic_failure("process-schedules", e)

    run = CronRunSummary(
        schedules_processed=summary.processed,
        tasks_created=summary.tasks_created,
        skipped=summary.skipped,
        overdue_tasks_marked=sweep.tasks_updated,
        errors=len(summary.errors),
        error_details=summary.errors,
        timed_out=summary.timed_out,
    )
    return {"success": True, "summary": run.model_dump(mode="json")}


@router.api_route("/cleanup-activities", methods=["GET", "POST"], response_model=None)
async def cleanup_activities() -> dict[str, object] | JSONResponse:
    """Delete activity log entries older than the retention window."""
    try:
        result = await activity_service.cleanup_old_activity()
    except Exception as e:
        return _systemic_failure("cleanup-activities", e)

    return {
        "success": True,
        "deleted_count": result.deleted_count,
        "cutoff_date": result.cutoff.isoformat(),
    }
