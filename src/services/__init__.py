from src.services import (
    activity_service,
    home_service,
    overdue_service,
    schedule_service,
    task_service,
    task_state_machine,
    template_service,
)


__all__ = [
    "activity_service",
    "home_service",
    "overdue_service",
    "schedule_service",
    "task_service",
    "task_state_machine",
    "template_service",
]
