"""Task domain models and enums."""

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, Field


class TaskStatus(StrEnum):
    """Task lifecycle state."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"  # Soft delete


class Priority(StrEnum):
    """Task priority."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class Task(BaseModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    home_id: str = Field(..., description="Home the task belongs to")
    asset_id: str | None = Field(default=None, description="Asset the task maintains (None for whole-home)")
    template_id: str | None = Field(default=None, description="Template the task was created from")
    schedule_id: str | None = Field(default=None, description="Schedule that generated the task")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    due_date: date = Field(..., description="Date the task is due")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Current lifecycle state")
    notes: str | None = Field(default=None, description="Free-form notes")
    completed_at: str | None = Field(default=None, description="Completion timestamp (ISO format)")
    completion_notes: str | None = Field(default=None, description="Notes recorded on completion")
