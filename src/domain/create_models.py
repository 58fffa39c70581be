"""Pydantic models for creating records in database."""

from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from src.core.config import constants
from src.domain.home import AssetCategory
from src.domain.schedule import Frequency
from src.domain.task import Priority, TaskStatus
from src.domain.template import Difficulty


class HomeCreate(BaseModel):
    """Pydantic model for creating a home record."""

    user_id: str = Field(..., min_length=1, description="Owning user")
    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH, description="Home name")
    address: str | None = Field(None, description="Street address")


class AssetCreate(BaseModel):
    """Pydantic model for creating an asset record."""

    home_id: str = Field(..., description="Home the asset belongs to")
    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH, description="Asset name")
    category: AssetCategory = Field(default=AssetCategory.OTHER, description="Asset category")
    manufacturer: str | None = Field(None, description="Manufacturer")
    model_number: str | None = Field(None, description="Model number")


class TemplatePackCreate(BaseModel):
    """Pydantic model for creating a template pack record."""

    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH, description="Pack name")
    description: str | None = Field(None, max_length=constants.MAX_DESCRIPTION_LENGTH, description="Pack description")
    category: AssetCategory | None = Field(None, description="Category the pack focuses on")
    is_active: bool = Field(default=True, description="Whether the pack can be applied")


class TemplateCreate(BaseModel):
    """Pydantic model for creating a maintenance template record."""

    name: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH, description="Template name")
    description: str = Field(default="", max_length=constants.MAX_DESCRIPTION_LENGTH, description="Description")
    category: AssetCategory = Field(default=AssetCategory.OTHER, description="Target asset category")
    default_frequency: Frequency = Field(..., description="Frequency used when applying the template")
    estimated_duration_minutes: int | None = Field(None, gt=0, description="Expected time to complete")
    difficulty: Difficulty = Field(default=Difficulty.EASY, description="Skill level required")
    instructions: list[str] = Field(default_factory=list, description="Ordered steps")
    required_tools: list[str] = Field(default_factory=list, description="Tools needed")
    safety_notes: list[str] = Field(default_factory=list, description="Safety warnings")
    pack_id: str | None = Field(None, description="Pack the template belongs to")
    is_active: bool = Field(default=True, description="Whether the template can be applied")


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    home_id: str = Field(..., description="Home the task belongs to")
    asset_id: str | None = Field(None, description="Asset the task maintains")
    template_id: str | None = Field(None, description="Template the task came from")
    schedule_id: str | None = Field(None, description="Schedule that generated the task")
    title: str = Field(..., min_length=1, max_length=constants.MAX_TITLE_LENGTH, description="Task title")
    description: str | None = Field(None, max_length=constants.MAX_DESCRIPTION_LENGTH, description="Description")
    due_date: date = Field(..., description="Date the task is due")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Initial status")
    notes: str | None = Field(None, description="Free-form notes")


class ScheduleCreate(BaseModel):
    """Pydantic model for creating a recurring schedule record."""

    asset_id: str = Field(..., description="Asset the schedule maintains")
    template_id: str = Field(..., description="Template the schedule materializes")
    frequency: Frequency = Field(..., description="Recurrence frequency")
    custom_frequency_days: int | None = Field(
        None, gt=0, le=constants.MAX_CUSTOM_FREQUENCY_DAYS, description="Day count for CUSTOM frequency"
    )
    next_due_date: date = Field(..., description="First cycle to materialize")
    is_active: bool = Field(default=True, description="Whether the schedule materializes")

    @model_validator(mode="after")
    def validate_custom_days(self) -> "ScheduleCreate":
        """Require a day count for CUSTOM frequency."""
        if self.frequency == Frequency.CUSTOM and self.custom_frequency_days is None:
            msg = "Custom frequency requires custom_frequency_days"
            raise ValueError(msg)
        return self

    @field_validator("asset_id", "template_id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Validate ids are numeric record ids."""
        if not v.isdigit():
            msg = f"Invalid record id: {v}"
            raise ValueError(msg)
        return v
