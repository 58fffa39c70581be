"""Domain models and DTOs."""

from src.domain.activity import ActivityLog, ActivityType
from src.domain.create_models import (
    AssetCreate,
    HomeCreate,
    ScheduleCreate,
    TaskCreate,
    TemplateCreate,
    TemplatePackCreate,
)
from src.domain.home import Asset, AssetCategory, Home
from src.domain.schedule import Frequency, RecurringSchedule
from src.domain.task import Priority, Task, TaskStatus
from src.domain.template import Difficulty, MaintenanceTemplate, TemplatePack


__all__ = [
    "ActivityLog",
    "ActivityType",
    "Asset",
    "AssetCategory",
    "AssetCreate",
    "Difficulty",
    "Frequency",
    "Home",
    "HomeCreate",
    "MaintenanceTemplate",
    "Priority",
    "RecurringSchedule",
    "ScheduleCreate",
    "Task",
    "TaskCreate",
    "TaskStatus",
    "TemplateCreate",
    "TemplatePack",
    "TemplatePackCreate",
]
