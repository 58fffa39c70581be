"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from datetime import date, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from src.domain.schedule import RecurringSchedule
from src.domain.task import Task


class ScheduleFailure(BaseModel):
    """A schedule the materializer could not process."""

    schedule_id: str
    error: str


class MaterializeSummary(BaseModel):
    """Outcome of one materializer run."""

    processed: int = 0
    tasks_created: int = 0
    skipped: int = 0
    errors: list[ScheduleFailure] = Field(default_factory=list)
    timed_out: bool = False


class OverdueSweepResult(BaseModel):
    """Outcome of one overdue sweep."""

    tasks_updated: int
    swept_at: datetime


class ActivityCleanupResult(BaseModel):
    """Outcome of one activity log retention pass."""

    deleted_count: int
    cutoff: datetime


class CronRunSummary(BaseModel):
    """Combined outcome of the process-schedules trigger (materialize then sweep)."""

    schedules_processed: int
    tasks_created: int
    skipped: int
    overdue_tasks_marked: int
    errors: int
    error_details: list[ScheduleFailure]
    timed_out: bool


class ApplyFailureReason(StrEnum):
    """Why a template in a batch was not applied."""

    ALREADY_APPLIED = "ALREADY_APPLIED"
    APPLY_FAILED = "APPLY_FAILED"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


class TemplateApplied(BaseModel):
    """A template that was applied successfully."""

    kind: Literal["applied"] = "applied"
    template_id: str
    template_name: str
    task_id: str
    schedule_id: str | None = None  # None for whole-home tasks
    next_due_date: date


class TemplateApplyFailed(BaseModel):
    """A template that could not be applied."""

    kind: Literal["failed"] = "failed"
    template_id: str
    template_name: str
    reason: ApplyFailureReason
    error: str


TemplateApplyResult = Annotated[TemplateApplied | TemplateApplyFailed, Field(discriminator="kind")]


class BatchOutcome(StrEnum):
    """Aggregate outcome of a batch apply."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


class BatchApplyResult(BaseModel):
    """Per-template results of applying a template pack."""

    message: str
    pack_id: str
    pack_name: str
    asset_name: str
    total_templates: int
    success_count: int
    fail_count: int
    results: list[TemplateApplyResult]
    outcome: BatchOutcome


class TaskView(Task):
    """Task enriched with derived display fields."""

    is_overdue: bool


class ScheduleView(RecurringSchedule):
    """Schedule enriched with derived display fields."""

    frequency_label: str
