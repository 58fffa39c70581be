"""Recurring schedule domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


class Frequency(StrEnum):
    """How often a maintenance template recurs."""

    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    SEMIANNUAL = "SEMIANNUAL"
    ANNUAL = "ANNUAL"
    CUSTOM = "CUSTOM"  # Requires custom_frequency_days


class RecurringSchedule(BaseModel):
    """Binding of one maintenance template to one asset with a recurrence."""

    id: str = Field(..., description="Unique schedule ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    asset_id: str = Field(..., description="Asset the schedule maintains")
    template_id: str = Field(..., description="Template the schedule materializes")
    frequency: Frequency = Field(..., description="Recurrence frequency")
    custom_frequency_days: int | None = Field(default=None, description="Day count for CUSTOM frequency")
    next_due_date: date = Field(..., description="Date of the next cycle to materialize")
    last_completed_date: date | None = Field(default=None, description="Date a task of this schedule was last completed")
    is_active: bool = Field(default=True, description="Inactive schedules never materialize")
