"""REST endpoints for homes, assets, templates, tasks, schedules and activity."""

import logging
from datetime import date
from typing import Any, NoReturn

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from src.core.config import constants
from src.core.errors import classify_error_with_response, http_status_for
from src.domain.home import AssetCategory
from src.domain.schedule import Frequency
from src.domain.task import Priority, TaskStatus
from src.services import activity_service, home_service, schedule_service, task_service, template_service


router = APIRouter(prefix="/api", tags=["api"])
logger = logging.getLogger(__name__)


class HomeCreateRequest(BaseModel):
    """Body of a home creation request."""

    userId: str = Field(..., min_length=1)  # noqa: N815
    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH)
    address: str | None = None


class AssetCreateRequest(BaseModel):
    """Body of an asset creation request."""

    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH)
    category: AssetCategory = AssetCategory.OTHER
    manufacturer: str | None = None
    modelNumber: str | None = None  # noqa: N815


class TaskCreateRequest(BaseModel):
    """Body of a one-off task creation request."""

    homeId: str  # noqa: N815
    title: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH)
    dueDate: date  # noqa: N815
    description: str | None = Field(None, max_length=constants.MAX_DESCRIPTION_LENGTH)
    assetId: str | None = None  # noqa: N815
    priority: Priority = Priority.MEDIUM
    notes: str | None = None


class PackApplyRequest(BaseModel):
    """Body of a template pack apply request."""

    assetId: str | None = None  # noqa: N815
    homeId: str | None = None  # noqa: N815
    isWholeHome: bool = False  # noqa: N815


class TemplateApplyRequest(BaseModel):
    """Body of a single template apply request."""

    templateId: str  # noqa: N815
    assetId: str | None = None  # noqa: N815
    homeId: str | None = None  # noqa: N815
    isWholeHome: bool = False  # noqa: N815
    frequency: Frequency | None = None
    customFrequencyDays: int | None = Field(None, gt=0, le=constants.MAX_CUSTOM_FREQUENCY_DAYS)  # noqa: N815
    startDate: date | None = None  # noqa: N815


class TaskCompleteRequest(BaseModel):
    """Body of a task completion request."""

    completionNotes: str | None = Field(None, max_length=constants.MAX_DESCRIPTION_LENGTH)  # noqa: N815


class ScheduleUpdateRequest(BaseModel):
    """Body of a schedule update request."""

    frequency: Frequency | None = None
    customFrequencyDays: int | None = Field(None, gt=0, le=constants.MAX_CUSTOM_FREQUENCY_DAYS)  # noqa: N815
    isActive: bool | None = None  # noqa: N815


def _raise_http_error(error: Exception, *, operation: str) -> NoReturn:
    """Translate a service exception into an HTTPException with an ErrorResponse body."""
    response = classify_error_with_response(error)
    status_code = http_status_for(response)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{operation} failed", extra={"error": str(error), "code": response.code})
    else:
        logger.info(f"{operation} rejected", extra={"error": str(error), "code": response.code})
    raise HTTPException(status_code=status_code, detail=response.model_dump(mode="json")) from error


@router.post("/homes", status_code=status.HTTP_201_CREATED)
async def create_home(body: HomeCreateRequest) -> dict[str, Any]:
    """Create a home."""
    try:
        home = await home_service.create_home(user_id=body.userId, name=body.name, address=body.address)
    except Exception as e:
        _raise_http_error(e, operation="create_home")
    return home.model_dump(mode="json")


@router.get("/homes/{home_id}")
async def get_home(home_id: str) -> dict[str, Any]:
    """Get a home."""
    try:
        home = await home_service.get_home(home_id=home_id)
    except Exception as e:
        _raise_http_error(e, operation="get_home")
    return home.model_dump(mode="json")


@router.post("/homes/{home_id}/assets", status_code=status.HTTP_201_CREATED)
async def create_asset(home_id: str, body: AssetCreateRequest) -> dict[str, Any]:
    """Add an asset to a home."""
    try:
        asset = await home_service.create_asset(
            home_id=home_id,
            name=body.name,
            category=body.category,
            manufacturer=body.manufacturer,
            model_number=body.modelNumber,
        )
    except Exception as e:
        _raise_http_error(e, operation="create_asset")
    return asset.model_dump(mode="json")


@router.get("/homes/{home_id}/assets")
async def list_assets(home_id: str, category: AssetCategory | None = None) -> list[dict[str, Any]]:
    """List a home's assets by name."""
    try:
        assets = await home_service.list_assets(home_id=home_id, category=category)
    except Exception as e:
        _raise_http_error(e, operation="list_assets")
    return [a.model_dump(mode="json") for a in assets]


@router.get("/homes/{home_id}/activity")
async def list_activity(
    home_id: str,
    limit: int = Query(50, gt=0, le=constants.MAX_PER_PAGE_LIMIT),
) -> list[dict[str, Any]]:
    """Recent activity for a home, newest first."""
    try:
        entries = await activity_service.list_activity(home_id=home_id, limit=limit)
    except Exception as e:
        _raise_http_error(e, operation="list_activity")
    return [entry.model_dump(mode="json") for entry in entries]


@router.get("/assets/{asset_id}")
async def get_asset(asset_id: str) -> dict[str, Any]:
    """Get an asset."""
    try:
        asset = await home_service.get_asset(asset_id=asset_id)
    except Exception as e:
        _raise_http_error(e, operation="get_asset")
    return asset.model_dump(mode="json")


@router.get("/templates")
async def list_templates(category: AssetCategory | None = None, packId: str | None = None) -> list[dict[str, Any]]:  # noqa: N803
    """List active templates, most relevant first."""
    try:
        templates = await template_service.list_templates(category=category, pack_id=packId)
    except Exception as e:
        _raise_http_error(e, operation="list_templates")
    return [t.model_dump(mode="json") for t in templates]


@router.get("/templates/packs")
async def list_packs() -> list[dict[str, Any]]:
    """List active template packs."""
    try:
        packs = await template_service.list_packs()
    except Exception as e:
        _raise_http_error(e, operation="list_packs")
    return [p.model_dump(mode="json") for p in packs]


@router.get("/templates/packs/{pack_id}")
async def get_pack(pack_id: str) -> dict[str, Any]:
    """Get a pack with its active templates."""
    try:
        pack = await template_service.get_pack(pack_id=pack_id)
        templates = await template_service.list_templates(pack_id=pack_id)
    except Exception as e:
        _raise_http_error(e, operation="get_pack")
    return {**pack.model_dump(mode="json"), "templates": [t.model_dump(mode="json") for t in templates]}


@router.post("/templates/packs/{pack_id}/apply", status_code=status.HTTP_201_CREATED)
async def apply_template_pack(pack_id: str, body: PackApplyRequest) -> dict[str, Any]:
    """Apply every template of a pack to an asset or to the whole home."""
    try:
        result = await template_service.apply_template_pack(
            pack_id=pack_id,
            asset_id=body.assetId,
            home_id=body.homeId,
            is_whole_home=body.isWholeHome,
        )
    except Exception as e:
        _raise_http_error(e, operation="apply_template_pack")
    return result.model_dump(mode="json")


@router.post("/templates/apply", status_code=status.HTTP_201_CREATED)
async def apply_template(body: TemplateApplyRequest) -> dict[str, Any]:
    """Apply one template; 409 if the asset already has it scheduled."""
    try:
        result = await template_service.apply_template(
            template_id=body.templateId,
            asset_id=body.assetId,
            home_id=body.homeId,
            is_whole_home=body.isWholeHome,
            frequency=body.frequency,
            custom_frequency_days=body.customFrequencyDays,
            start_date=body.startDate,
        )
    except Exception as e:
        _raise_http_error(e, operation="apply_template")

    message = "Template applied successfully" if result.schedule_id else "Template applied successfully (whole-home task)"
    return {"message": message, **result.model_dump(mode="json")}


@router.get("/templates/{template_id}")
async def get_template(template_id: str) -> dict[str, Any]:
    """Get a template."""
    try:
        template = await template_service.get_template(template_id=template_id)
    except Exception as e:
        _raise_http_error(e, operation="get_template")
    return template.model_dump(mode="json")


@router.get("/tasks")
async def list_tasks(
    homeId: str | None = None,  # noqa: N803
    status_filter: TaskStatus | None = Query(None, alias="status"),
    assetId: str | None = None,  # noqa: N803
) -> list[dict[str, Any]]:
    """List tasks by due date."""
    try:
        tasks = await task_service.list_tasks(home_id=homeId, status=status_filter, asset_id=assetId)
    except Exception as e:
        _raise_http_error(e, operation="list_tasks")
    return [t.model_dump(mode="json") for t in tasks]


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskCreateRequest) -> dict[str, Any]:
    """Create a one-off task."""
    try:
        task = await task_service.create_task(
            home_id=body.homeId,
            title=body.title,
            due_date=body.dueDate,
            description=body.description,
            asset_id=body.assetId,
            priority=body.priority,
            notes=body.notes,
        )
    except Exception as e:
        _raise_http_error(e, operation="create_task")
    return task.model_dump(mode="json")


@router.get("/tasks/{task_id}")
async def get_task(task_id: str) -> dict[str, Any]:
    """Get a task."""
    try:
        task = await task_service.get_task(task_id=task_id)
    except Exception as e:
        _raise_http_error(e, operation="get_task")
    return task.model_dump(mode="json")


@router.post("/tasks/{task_id}/start")
async def start_task(task_id: str) -> dict[str, Any]:
    """Start a pending or overdue task."""
    try:
        task = await task_service.start_task(task_id=task_id)
    except Exception as e:
        _raise_http_error(e, operation="start_task")
    return task.model_dump(mode="json")


@router.post("/tasks/{task_id}/complete")
async def complete_task(task_id: str, body: TaskCompleteRequest | None = None) -> dict[str, Any]:
    """Complete a task."""
    try:
        task = await task_service.complete_task(
            task_id=task_id,
            completion_notes=body.completionNotes if body else None,
        )
    except Exception as e:
        _raise_http_error(e, operation="complete_task")
    return task.model_dump(mode="json")


@router.post("/tasks/{task_id}/reopen")
async def reopen_task(task_id: str) -> dict[str, Any]:
    """Reopen a completed or cancelled task."""
    try:
        task = await task_service.reopen_task(task_id=task_id)
    except Exception as e:
        _raise_http_error(e, operation="reopen_task")
    return task.model_dump(mode="json")


@router.delete("/tasks/{task_id}")
async def cancel_task(task_id: str) -> dict[str, Any]:
    """Cancel a task (tasks are never hard-deleted)."""
    try:
        task = await task_service.cancel_task(task_id=task_id)
    except Exception as e:
        _raise_http_error(e, operation="cancel_task")
    return task.model_dump(mode="json")


@router.get("/schedules")
async def list_schedules(assetId: str | None = None, includeInactive: bool = False) -> list[dict[str, Any]]:  # noqa: N803
    """List schedules, soonest due first."""
    try:
        schedules = await schedule_service.list_schedules(asset_id=assetId, include_inactive=includeInactive)
    except Exception as e:
        _raise_http_error(e, operation="list_schedules")
    return [s.model_dump(mode="json") for s in schedules]


@router.put("/schedules/{schedule_id}")
async def update_schedule(schedule_id: str, body: ScheduleUpdateRequest) -> dict[str, Any]:
    """Change a schedule's frequency or active flag."""
    try:
        schedule = await schedule_service.update_schedule(
            schedule_id=schedule_id,
            frequency=body.frequency,
            custom_frequency_days=body.customFrequencyDays,
            is_active=body.isActive,
        )
    except Exception as e:
        _raise_http_error(e, operation="update_schedule")
    return schedule.model_dump(mode="json")


@router.delete("/schedules/{schedule_id}")
async def deactivate_schedule(schedule_id: str) -> dict[str, Any]:
    """Deactivate a schedule; its tasks are kept."""
    try:
        schedule = await schedule_service.deactivate_schedule(schedule_id=schedule_id)
    except Exception as e:
        _raise_http_error(e, operation="deactivate_schedule")
    return schedule.model_dump(mode="json")
