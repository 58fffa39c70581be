"""Activity log domain models."""

import json
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ActivityType(StrEnum):
    """Kind of audited action."""

    TEMPLATE_APPLIED = "TEMPLATE_APPLIED"
    SCHEDULE_CREATED = "SCHEDULE_CREATED"
    TASK_COMPLETED = "TASK_COMPLETED"


class ActivityLog(BaseModel):
    """Audit trail entry for a home."""

    id: str = Field(..., description="Unique log ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    home_id: str | None = Field(default=None, description="Home the action happened in")
    activity_type: ActivityType = Field(..., description="Kind of action")
    entity_type: str = Field(..., description="Type of the affected entity (e.g., 'task')")
    entity_id: str = Field(..., description="ID of the affected entity")
    entity_name: str = Field(..., description="Display name of the affected entity")
    description: str = Field(..., description="Human-readable summary")
    metadata: dict[str, Any] | None = Field(default=None, description="Structured details")

    @field_validator("metadata", mode="before")
    @classmethod
    def decode_metadata(cls, v: object) -> object:
        """Decode metadata stored as JSON text."""
        if isinstance(v, str):
            return json.loads(v)
        return v
