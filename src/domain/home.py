"""Home and asset domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class AssetCategory(StrEnum):
    """Category shared by assets, templates and template packs."""

    HVAC = "HVAC"
    PLUMBING = "PLUMBING"
    ELECTRICAL = "ELECTRICAL"
    APPLIANCE = "APPLIANCE"
    EXTERIOR = "EXTERIOR"
    INTERIOR = "INTERIOR"
    LANDSCAPING = "LANDSCAPING"
    SAFETY = "SAFETY"
    OTHER = "OTHER"


class Home(BaseModel):
    """Home data transfer object."""

    id: str = Field(..., description="Unique home ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    user_id: str = Field(..., description="Owning user")
    name: str = Field(..., description="Home name (e.g., 'Lake House')")
    address: str | None = Field(default=None, description="Street address")


class Asset(BaseModel):
    """Maintainable item in a home (e.g., furnace, water heater)."""

    id: str = Field(..., description="Unique asset ID from database")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
    home_id: str = Field(..., description="Home the asset belongs to")
    name: str = Field(..., description="Asset name")
    category: AssetCategory = Field(default=AssetCategory.OTHER, description="Asset category")
    manufacturer: str | None = Field(default=None, description="Manufacturer")
    model_number: str | None = Field(default=None, description="Model number")
