"""Maintenance template and template pack domain models."""

import json
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from src.domain.home import AssetCategory
from src.domain.schedule import Frequency


class Difficulty(StrEnum):
    """Skill level a template requires, easiest first."""

    EASY = "EASY"
    MODERATE = "MODERATE"
    HARD = "HARD"
    PROFESSIONAL = "PROFESSIONAL"


class MaintenanceTemplate(BaseModel):
    """Reusable definition of a maintenance action."""

    id: str = Field(..., description="Unique template ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    name: str = Field(..., description="Template name (e.g., 'Replace HVAC filter')")
    description: str = Field(default="", description="What the maintenance involves")
    category: AssetCategory = Field(default=AssetCategory.OTHER, description="Asset category the template targets")
    default_frequency: Frequency = Field(..., description="Frequency used when applying the template")
    estimated_duration_minutes: int | None = Field(default=None, description="Expected time to complete")
    difficulty: Difficulty = Field(default=Difficulty.EASY, description="Skill level required")
    instructions: list[str] = Field(default_factory=list, description="Ordered steps")
    required_tools: list[str] = Field(default_factory=list, description="Tools needed")
    safety_notes: list[str] = Field(default_factory=list, description="Safety warnings")
    pack_id: str | None = Field(default=None, description="Pack the template belongs to")
    is_active: bool = Field(default=True, description="Inactive templates are never applied")

    @field_validator("instructions", "required_tools", "safety_notes", mode="before")
    @classmethod
    def decode_json_list(cls, v: object) -> object:
        """Decode list columns stored as JSON text."""
        if isinstance(v, str):
            return json.loads(v) if v else []
        if v is None:
            return []
        return v


class TemplatePack(BaseModel):
    """Named group of templates applied together."""

    id: str = Field(..., description="Unique pack ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    name: str = Field(..., description="Pack name (e.g., 'New Homeowner Essentials')")
    description: str | None = Field(default=None, description="Pack description")
    category: AssetCategory | None = Field(default=None, description="Category the pack focuses on")
    is_active: bool = Field(default=True, description="Inactive packs cannot be applied")
