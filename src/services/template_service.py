"""Maintenance template service: catalogue, single apply and pack batch apply."""

import asyncio
import logging
from datetime import date, datetime

from src.core import db_client
from src.core.config import constants, settings
from src.core.db_client import RecordNotFoundError, UniqueConstraintError
from src.core.errors import ScheduleConflictError
from src.core.logging import span
from src.core.recurrence import calculate_next_due_date, frequency_days, utc_today
from src.domain.create_models import ScheduleCreate, TaskCreate, TemplateCreate, TemplatePackCreate
from src.domain.home import Asset, AssetCategory
from src.domain.schedule import Frequency
from src.domain.task import Priority, TaskStatus
from src.domain.template import Difficulty, MaintenanceTemplate, TemplatePack
from src.models.service_models import (
    ApplyFailureReason,
    BatchApplyResult,
    BatchOutcome,
    TemplateApplied,
    TemplateApplyFailed,
    TemplateApplyResult,
)
from src.services import activity_service


logger = logging.getLogger(__name__)

ALREADY_APPLIED_MESSAGE = "Already applied to this asset"
DEADLINE_EXCEEDED_MESSAGE = "deadline exceeded"

_DIFFICULTY_ORDER = {difficulty: index for index, difficulty in enumerate(Difficulty)}


def sort_by_relevance(
    templates: list[MaintenanceTemplate],
    asset_category: AssetCategory | None = None,
) -> list[MaintenanceTemplate]:
    """Order templates for display: matching category, then easier, then more frequent, then by name."""
    return sorted(
        templates,
        key=lambda t: (
            asset_category is not None and t.category != asset_category,
            _DIFFICULTY_ORDER.get(t.difficulty, len(_DIFFICULTY_ORDER)),
            frequency_days(t.default_frequency),
            t.name.lower(),
        ),
    )


async def create_pack(
    *,
    name: str,
    description: str | None = None,
    category: AssetCategory | None = None,
    is_active: bool = True,
) -> TemplatePack:
    """Create a template pack.

    Raises:
        UniqueConstraintError: If a pack with the same name exists
    """
    with span("template_service.create_pack"):
        pack_data = TemplatePackCreate(name=name, description=description, category=category, is_active=is_active)
        record = await db_client.create_record(collection="template_packs", data=pack_data.model_dump(mode="json"))
        logger.info("Created template pack", extra={"pack_id": record["id"], "pack_name": name})
        return TemplatePack(**record)


async def get_pack(*, pack_id: str) -> TemplatePack:
    """Get a template pack by ID.

    Raises:
        RecordNotFoundError: If the pack does not exist
    """
    with span("template_service.get_pack"):
        return TemplatePack(**await db_client.get_record(collection="template_packs", record_id=pack_id))


async def list_packs(*, include_inactive: bool = False) -> list[TemplatePack]:
    """List template packs by name."""
    with span("template_service.list_packs"):
        records = await db_client.list_records(
            collection="template_packs",
            filter_query="" if include_inactive else 'is_active = "true"',
            sort="+name",
            per_page=constants.MAX_PER_PAGE_LIMIT,
        )
        return [TemplatePack(**r) for r in records]


async def create_template(
    *,
    name: str,
    default_frequency: Frequency,
    description: str = "",
    category: AssetCategory = AssetCategory.OTHER,
    difficulty: Difficulty = Difficulty.EASY,
    estimated_duration_minutes: int | None = None,
    instructions: list[str] | None = None,
    required_tools: list[str] | None = None,
    safety_notes: list[str] | None = None,
    pack_id: str | None = None,
    is_active: bool = True,
) -> MaintenanceTemplate:
    """Create a maintenance template, optionally inside a pack.

    Raises:
        RecordNotFoundError: If pack_id does not exist
    """
    with span("template_service.create_template"):
        if pack_id:
            await db_client.get_record(collection="template_packs", record_id=pack_id)

        template_data = TemplateCreate(
            name=name,
            description=description,
            category=category,
            default_frequency=default_frequency,
            estimated_duration_minutes=estimated_duration_minutes,
            difficulty=difficulty,
            instructions=instructions or [],
            required_tools=required_tools or [],
            safety_notes=safety_notes or [],
            pack_id=pack_id,
            is_active=is_active,
        )
        record = await db_client.create_record(
            collection="maintenance_templates",
            data=template_data.model_dump(mode="json"),
        )
        logger.info("Created template", extra={"template_id": record["id"], "pack_id": pack_id})
        return MaintenanceTemplate(**record)


async def get_template(*, template_id: str) -> MaintenanceTemplate:
    """Get a template by ID.

    Raises:
        RecordNotFoundError: If the template does not exist
    """
    with span("template_service.get_template"):
        return MaintenanceTemplate(**await db_client.get_record(collection="maintenance_templates", record_id=template_id))


async def list_templates(
    *,
    category: AssetCategory | None = None,
    pack_id: str | None = None,
    asset_category: AssetCategory | None = None,
) -> list[MaintenanceTemplate]:
    """List active templates sorted by relevance.

    Args:
        category: Only templates of this category
        pack_id: Only templates of this pack
        asset_category: Category to rank first (defaults to category)
    """
    with span("template_service.list_templates"):
        filters = ['is_active = "true"']
        if category:
            filters.append(f'category = "{category}"')
        if pack_id:
            filters.append(f'pack_id = "{db_client.sanitize_param(pack_id)}"')

        records = await db_client.list_records(
            collection="maintenance_templates",
            filter_query=" && ".join(filters),
            per_page=constants.MAX_PER_PAGE_LIMIT,
        )
        templates = [MaintenanceTemplate(**r) for r in records]
        return sort_by_relevance(templates, asset_category or category)


async def _apply_to_whole_home(
    *,
    template: MaintenanceTemplate,
    home_id: str,
    due_date: date,
    notes: str,
) -> TemplateApplied:
    """Create a standalone task (no schedule) for a whole-home template."""
    task = TaskCreate(
        home_id=home_id,
        template_id=template.id,
        title=template.name,
        description=template.description,
        due_date=due_date,
        priority=Priority(constants.DEFAULT_TASK_PRIORITY),
        status=TaskStatus.PENDING,
        notes=notes,
    )
    created = await db_client.create_record(collection="tasks", data=task.model_dump(mode="json"))
    return TemplateApplied(
        template_id=template.id,
        template_name=template.name,
        task_id=created["id"],
        next_due_date=due_date,
    )


async def _apply_to_asset(
    *,
    template: MaintenanceTemplate,
    asset: Asset,
    frequency: Frequency,
    custom_frequency_days: int | None,
    due_date: date,
    notes: str,
) -> TemplateApplied:
    """Create or reactivate the (asset, template) schedule together with its seed task.

    The seed task covers the schedule's first cycle, so the schedule's
    next_due_date is set one step after it.

    Raises:
        ScheduleConflictError: If an active schedule already exists for the pair
        InvalidFrequencyError: If frequency is CUSTOM without a day count
    """
    existing = await db_client.get_first_record(
        collection="recurring_schedules",
        filter_query=f'asset_id = "{asset.id}" && template_id = "{template.id}"',
    )
    if existing and existing["is_active"]:
        raise ScheduleConflictError(asset_id=asset.id, template_id=template.id)

    following_due = calculate_next_due_date(due_date, frequency, custom_frequency_days)
    schedule_data = {
        "frequency": frequency,
        "custom_frequency_days": custom_frequency_days if frequency == Frequency.CUSTOM else None,
        "next_due_date": following_due,
        "is_active": True,
    }

    try:
        async with db_client.transaction():
            if existing:
                schedule = await db_client.update_record(
                    collection="recurring_schedules",
                    record_id=existing["id"],
                    data=schedule_data,
                )
                seed_task = await db_client.get_first_record(
                    collection="tasks",
                    filter_query=f'schedule_id = "{schedule["id"]}" && due_date = "{due_date.isoformat()}"',
                )
                if seed_task and seed_task["status"] == TaskStatus.CANCELLED:
                    seed_task = await db_client.update_record(
                        collection="tasks",
                        record_id=seed_task["id"],
                        data={"status": TaskStatus.PENDING, "notes": notes},
                    )
            else:
                new_schedule = ScheduleCreate(asset_id=asset.id, template_id=template.id, **schedule_data)
                schedule = await db_client.create_record(
                    collection="recurring_schedules",
                    data=new_schedule.model_dump(mode="json"),
                )
                seed_task = None

            if seed_task is None:
                task = TaskCreate(
                    home_id=asset.home_id,
                    asset_id=asset.id,
                    template_id=template.id,
                    schedule_id=schedule["id"],
                    title=template.name,
                    description=template.description,
                    due_date=due_date,
                    priority=Priority(constants.DEFAULT_TASK_PRIORITY),
                    status=TaskStatus.PENDING,
                    notes=notes,
                )
                seed_task = await db_client.create_record(collection="tasks", data=task.model_dump(mode="json"))
    except UniqueConstraintError as e:
        # Lost a race with a concurrent apply of the same pair
        raise ScheduleConflictError(asset_id=asset.id, template_id=template.id) from e

    logger.info(
        "Applied template to asset",
        extra={
            "template_id": template.id,
            "asset_id": asset.id,
            "schedule_id": schedule["id"],
            "reactivated": existing is not None,
        },
    )

    return TemplateApplied(
        template_id=template.id,
        template_name=template.name,
        task_id=seed_task["id"],
        schedule_id=schedule["id"],
        next_due_date=due_date,
    )


async def _log_applied(
    *,
    applied: TemplateApplied,
    home_id: str,
    asset: Asset | None,
    frequency: Frequency,
    custom_frequency_days: int | None,
) -> None:
    """Write the activity entries for an apply that has already committed."""
    await activity_service.log_template_applied(
        home_id=home_id,
        template_id=applied.template_id,
        template_name=applied.template_name,
        asset_id=asset.id if asset else None,
        asset_name=asset.name if asset else None,
    )
    if asset is not None and applied.schedule_id:
        await activity_service.log_schedule_created(
            home_id=home_id,
            schedule_id=applied.schedule_id,
            template_name=applied.template_name,
            asset_name=asset.name,
            frequency=frequency,
            custom_frequency_days=custom_frequency_days,
        )


async def _resolve_target(
    *,
    asset_id: str | None,
    home_id: str | None,
    is_whole_home: bool,
) -> tuple[Asset | None, str]:
    """Resolve the apply target to (asset or None for whole-home, home_id).

    Raises:
        RecordNotFoundError: If the asset or home does not exist
        ValueError: If a whole-home apply has no home_id
    """
    if is_whole_home or not asset_id:
        if not home_id:
            msg = "home_id is required for whole-home maintenance"
            raise ValueError(msg)
        await db_client.get_record(collection="homes", record_id=home_id)
        return None, home_id

    asset = Asset(**await db_client.get_record(collection="assets", record_id=asset_id))
    if home_id and home_id != asset.home_id:
        logger.warning(
            "Ignoring home_id that does not own the asset",
            extra={"asset_id": asset.id, "home_id": home_id, "asset_home_id": asset.home_id},
        )
    return asset, asset.home_id


async def apply_template(
    *,
    template_id: str,
    asset_id: str | None = None,
    home_id: str | None = None,
    is_whole_home: bool = False,
    frequency: Frequency | None = None,
    custom_frequency_days: int | None = None,
    start_date: date | datetime | None = None,
) -> TemplateApplied:
    """Apply one template to an asset (recurring) or to the whole home (one-off task).

    Args:
        template_id: Template to apply
        asset_id: Target asset; omitted means whole-home
        home_id: Target home, required for whole-home
        is_whole_home: Force a whole-home task even when asset_id is given
        frequency: Override of the template's default frequency
        custom_frequency_days: Day count for CUSTOM frequency
        start_date: Date the first cycle is computed from (defaults to today)

    Returns:
        TemplateApplied describing the created task (and schedule)

    Raises:
        RecordNotFoundError: If the template, asset or home does not exist
        ScheduleConflictError: If the asset already has an active schedule for the template
        InvalidFrequencyError: If frequency is CUSTOM without a day count
    """
    with span("template_service.apply_template"):
        template = MaintenanceTemplate(
            **await db_client.get_record(collection="maintenance_templates", record_id=template_id)
        )
        if not template.is_active:
            msg = f"Template not found: {template_id}"
            raise RecordNotFoundError(msg)

        asset, target_home_id = await _resolve_target(asset_id=asset_id, home_id=home_id, is_whole_home=is_whole_home)

        if asset and template.category not in (asset.category, AssetCategory.OTHER):
            logger.warning(
                "Applying template to asset of a different category",
                extra={
                    "template_id": template.id,
                    "template_category": template.category,
                    "asset_id": asset.id,
                    "asset_category": asset.category,
                },
            )

        schedule_frequency = frequency or template.default_frequency
        due_date = calculate_next_due_date(start_date or utc_today(), schedule_frequency, custom_frequency_days)

        if asset is None:
            applied = await _apply_to_whole_home(
                template=template,
                home_id=target_home_id,
                due_date=due_date,
                notes=f"{constants.WHOLE_HOME_TASK_NOTE_PREFIX}: {template.name}",
            )
        else:
            applied = await _apply_to_asset(
                template=template,
                asset=asset,
                frequency=schedule_frequency,
                custom_frequency_days=custom_frequency_days,
                due_date=due_date,
                notes=f"{constants.SCHEDULED_TASK_NOTE_PREFIX}: {template.name}",
            )

        await _log_applied(
            applied=applied,
            home_id=target_home_id,
            asset=asset,
            frequency=schedule_frequency,
            custom_frequency_days=custom_frequency_days,
        )
        return applied


async def _apply_pack_template(
    *,
    template: MaintenanceTemplate,
    pack: TemplatePack,
    asset: Asset | None,
    home_id: str,
    start: date | datetime,
) -> TemplateApplyResult:
    """Apply one template of a pack, converting per-item failures into results."""
    try:
        due_date = calculate_next_due_date(start, template.default_frequency)
        if asset is None:
            return await _apply_to_whole_home(
                template=template,
                home_id=home_id,
                due_date=due_date,
                notes=f"{constants.WHOLE_HOME_TASK_NOTE_PREFIX} (Pack: {pack.name}): {template.name}",
            )
        return await _apply_to_asset(
            template=template,
            asset=asset,
            frequency=template.default_frequency,
            custom_frequency_days=None,
            due_date=due_date,
            notes=f"{constants.SCHEDULED_TASK_NOTE_PREFIX} (Pack: {pack.name}): {template.name}",
        )
    except ScheduleConflictError:
        logger.info(
            "Template already applied to asset",
            extra={"template_id": template.id, "asset_id": asset.id if asset else None, "pack_id": pack.id},
        )
        return TemplateApplyFailed(
            template_id=template.id,
            template_name=template.name,
            reason=ApplyFailureReason.ALREADY_APPLIED,
            error=ALREADY_APPLIED_MESSAGE,
        )
    except Exception as e:
        logger.error(
            "Failed to apply template from pack",
            extra={"template_id": template.id, "pack_id": pack.id, "error": str(e)},
        )
        return TemplateApplyFailed(
            template_id=template.id,
            template_name=template.name,
            reason=ApplyFailureReason.APPLY_FAILED,
            error=f"Failed to apply template: {e}",
        )


async def apply_template_pack(
    *,
    pack_id: str,
    asset_id: str | None = None,
    home_id: str | None = None,
    is_whole_home: bool = False,
    now: date | datetime | None = None,
    timeout_seconds: float | None = None,
) -> BatchApplyResult:
    """Apply every active template of a pack to an asset or to the whole home.

    Each template succeeds or fails on its own: a template already scheduled
    on the asset, or one that errors, is reported and the rest continue.
    Templates not reached before the batch deadline are reported as
    DEADLINE_EXCEEDED. Activity entries for applied templates are written after
    the batch, outside the deadline.

    Args:
        pack_id: Pack to apply
        asset_id: Target asset; omitted means whole-home
        home_id: Target home, required for whole-home
        is_whole_home: Force whole-home tasks even when asset_id is given
        now: Start date for due date computation (defaults to today)
        timeout_seconds: Deadline for the batch (defaults to settings.batch_timeout_seconds)

    Returns:
        BatchApplyResult with one result per template

    Raises:
        RecordNotFoundError: If the pack (or an inactive pack), asset or home does not exist
        ValueError: If the pack has no active templates or a whole-home apply has no home_id
    """
    with span("template_service.apply_template_pack"):
        pack = TemplatePack(**await db_client.get_record(collection="template_packs", record_id=pack_id))
        if not pack.is_active:
            msg = f"Template pack not found: {pack_id}"
            raise RecordNotFoundError(msg)

        asset, target_home_id = await _resolve_target(asset_id=asset_id, home_id=home_id, is_whole_home=is_whole_home)

        records = await db_client.list_records(
            collection="maintenance_templates",
            filter_query=f'pack_id = "{pack.id}" && is_active = "true"',
            sort="+id",
            per_page=constants.MAX_PER_PAGE_LIMIT,
        )
        templates = [MaintenanceTemplate(**r) for r in records]
        if not templates:
            msg = "No active templates in this pack"
            raise ValueError(msg)

        start = now or utc_today()
        timeout = settings.batch_timeout_seconds if timeout_seconds is None else timeout_seconds
        results: list[TemplateApplyResult] = []

        try:
            async with asyncio.timeout(timeout):
                for template in templates:
                    results.append(
                        await _apply_pack_template(
                            template=template,
                            pack=pack,
                            asset=asset,
                            home_id=target_home_id,
                            start=start,
                        )
                    )
        except TimeoutError:
            unreached = templates[len(results) :]
            logger.warning(
                "Template pack deadline exceeded",
                extra={"pack_id": pack.id, "timeout_seconds": timeout, "unprocessed": len(unreached)},
            )
            results.extend(
                TemplateApplyFailed(
                    template_id=t.id,
                    template_name=t.name,
                    reason=ApplyFailureReason.DEADLINE_EXCEEDED,
                    error=DEADLINE_EXCEEDED_MESSAGE,
                )
                for t in unreached
            )

        for template, result in zip(templates, results, strict=True):
            if isinstance(result, TemplateApplied):
                await _log_applied(
                    applied=result,
                    home_id=target_home_id,
                    asset=asset,
                    frequency=template.default_frequency,
                    custom_frequency_days=None,
                )

        success_count = sum(1 for r in results if isinstance(r, TemplateApplied))
        fail_count = len(results) - success_count
        if fail_count == 0:
            outcome = BatchOutcome.SUCCESS
        elif success_count == 0:
            outcome = BatchOutcome.FAILURE
        else:
            outcome = BatchOutcome.PARTIAL

        logger.info(
            "Applied template pack",
            extra={
                "pack_id": pack.id,
                "asset_id": asset.id if asset else None,
                "home_id": target_home_id,
                "success_count": success_count,
                "fail_count": fail_count,
                "outcome": outcome,
            },
        )

        return BatchApplyResult(
            message=f"Applied {success_count} of {len(templates)} templates",
            pack_id=pack.id,
            pack_name=pack.name,
            asset_name=asset.name if asset else constants.WHOLE_HOME_LABEL,
            total_templates=len(templates),
            success_count=success_count,
            fail_count=fail_count,
            results=results,
            outcome=outcome,
        )
