"""Tests for the overdue sweep."""

from datetime import date

import pytest

from src.domain.home import Home
from src.domain.task import TaskStatus
from src.services import overdue_service, task_service


TODAY = date(2024, 3, 10)


@pytest.mark.unit
class TestMarkOverdueTasks:
    """Tests for mark_overdue_tasks."""

    async def test_flags_only_pending_tasks_due_before_today(self, home: Home, make_task):
        """PENDING tasks due yesterday are flagged; today, future and other statuses are not."""
        late = await make_task(home_id=home.id, due_date=date(2024, 3, 9))
        due_today = await make_task(home_id=home.id, due_date=TODAY)
        future = await make_task(home_id=home.id, due_date=date(2024, 3, 20))
        in_progress = await make_task(home_id=home.id, due_date=date(2024, 3, 1), status="IN_PROGRESS")
        completed = await make_task(home_id=home.id, due_date=date(2024, 3, 1), status="COMPLETED")

        result = await overdue_service.mark_overdue_tasks(today=TODAY)

        assert result.tasks_updated == 1
        assert (await task_service.get_task(task_id=late["id"])).status == TaskStatus.OVERDUE
        assert (await task_service.get_task(task_id=due_today["id"])).status == TaskStatus.PENDING
        assert (await task_service.get_task(task_id=future["id"])).status == TaskStatus.PENDING
        assert (await task_service.get_task(task_id=in_progress["id"])).status == TaskStatus.IN_PROGRESS
        assert (await task_service.get_task(task_id=completed["id"])).status == TaskStatus.COMPLETED

    async def test_sweep_is_idempotent(self, home: Home, make_task):
        """A second sweep with no changes in between updates nothing."""
        for day in (1, 2, 3):
            await make_task(home_id=home.id, due_date=date(2024, 3, day))

        first = await overdue_service.mark_overdue_tasks(today=TODAY)
        second = await overdue_service.mark_overdue_tasks(today=TODAY)

        assert first.tasks_updated == 3
        assert second.tasks_updated == 0

    async def test_empty_database(self, db):
        """Sweeping with no tasks reports zero."""
        result = await overdue_service.mark_overdue_tasks(today=TODAY)

        assert result.tasks_updated == 0
        assert result.swept_at is not None


@pytest.mark.unit
class TestIsTaskOverdue:
    """Tests for the derived is_overdue flag."""

    async def test_derived_flag(self, home: Home, make_task):
        """Only PENDING tasks due strictly before today are overdue."""
        late = await task_service.get_task(task_id=(await make_task(home_id=home.id, due_date=date(2024, 3, 9)))["id"])
        today = await task_service.get_task(task_id=(await make_task(home_id=home.id, due_date=TODAY))["id"])
        started = await task_service.get_task(
            task_id=(await make_task(home_id=home.id, due_date=date(2024, 3, 1), status="IN_PROGRESS"))["id"]
        )

        assert overdue_service.is_task_overdue(late, TODAY) is True
        assert overdue_service.is_task_overdue(today, TODAY) is False
        assert overdue_service.is_task_overdue(started, TODAY) is False
