"""Tests for the in-process scheduler wiring."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core import scheduler as scheduler_module
from src.core.config import settings
from src.core.scheduler_tracker import retry_job_with_backoff
from src.models.service_models import MaterializeSummary, ScheduleFailure


@pytest.mark.unit
class TestStartScheduler:
    """Tests for start_scheduler and stop_scheduler."""

    def test_disabled_by_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """No jobs are registered unless ENABLE_SCHEDULER is set."""
        monkeypatch.setattr(settings, "enable_scheduler", False)

        with patch.object(scheduler_module, "scheduler") as mock_scheduler:
            scheduler_module.start_scheduler()

        mock_scheduler.add_job.assert_not_called()
        mock_scheduler.start.assert_not_called()

    def test_registers_daily_jobs(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The sweeps and the activity cleanup run daily through the retry wrapper, materializer first."""
        monkeypatch.setattr(settings, "enable_scheduler", True)
        monkeypatch.setattr(settings, "scheduler_hour", 3)

        with patch.object(scheduler_module, "scheduler") as mock_scheduler:
            scheduler_module.start_scheduler()

        calls = mock_scheduler.add_job.call_args_list
        assert [c.kwargs["id"] for c in calls] == ["process_schedules", "mark_overdue", "cleanup_activities"]
        assert all(c.args[0] is retry_job_with_backoff for c in calls)
        assert calls[0].kwargs["args"] == [scheduler_module.run_process_schedules, "process_schedules"]
        assert calls[1].kwargs["args"] == [scheduler_module.run_mark_overdue, "mark_overdue"]
        assert calls[2].kwargs["args"] == [scheduler_module.run_cleanup_activities, "cleanup_activities"]
        assert str(calls[0].kwargs["trigger"].fields[5]) == "3"
        mock_scheduler.start.assert_called_once()

    def test_stop_when_not_running(self) -> None:
        """Stopping an idle scheduler is a no-op."""
        mock_scheduler = MagicMock(running=False)

        with patch.object(scheduler_module, "scheduler", mock_scheduler):
            scheduler_module.stop_scheduler()

        mock_scheduler.shutdown.assert_not_called()


@pytest.mark.unit
class TestJobs:
    """Tests for the scheduled job bodies."""

    async def test_timed_out_run_raises(self) -> None:
        """A run that hit its deadline is reported as a failure for retry."""
        summary = MaterializeSummary(
            processed=2,
            timed_out=True,
            errors=[ScheduleFailure(schedule_id="1", error="deadline exceeded")],
        )

        with patch(
            "src.core.scheduler.schedule_service.materialize_due_schedules",
            new=AsyncMock(return_value=summary),
        ):
            with pytest.raises(TimeoutError, match="1 schedules unprocessed"):
                await scheduler_module.run_process_schedules()

    async def test_item_errors_do_not_fail_the_job(self) -> None:
        """Per-schedule errors are reported, not retried."""
        summary = MaterializeSummary(processed=1, errors=[ScheduleFailure(schedule_id="1", error="boom")])

        with patch(
            "src.core.scheduler.schedule_service.materialize_due_schedules",
            new=AsyncMock(return_value=summary),
        ):
            await scheduler_module.run_process_schedules()
