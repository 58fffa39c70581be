"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator
from datetime import date
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from src.core import db_client
from src.core.config import settings
from src.core.scheduler_tracker import job_tracker
from src.domain.home import Asset, AssetCategory, Home
from src.domain.schedule import Frequency
from src.domain.template import Difficulty, MaintenanceTemplate, TemplatePack
from src.main import app
from src.services import home_service, template_service


TEST_CRON_SECRET = "test-cron-secret"


@pytest.fixture
async def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[None]:
    """Fresh SQLite database file with the full schema for each test."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "homekeep-test.db"))
    await db_client.init_db()
    yield
    await db_client.close_connection()


@pytest.fixture(autouse=True)
def reset_job_tracker() -> None:
    """Forget scheduler job history between tests."""
    job_tracker.reset()


@pytest.fixture
def cron_secret(monkeypatch: pytest.MonkeyPatch) -> str:
    """Configure the cron shared secret."""
    monkeypatch.setattr(settings, "cron_secret", TEST_CRON_SECRET)
    return TEST_CRON_SECRET


@pytest.fixture
async def api_client(db: None) -> AsyncIterator[AsyncClient]:
    """HTTP client bound to the app on the test's event loop."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def home(db: None) -> Home:
    """A home owned by a test user."""
    return await home_service.create_home(user_id="user-1", name="Main House", address="1 Elm St")


@pytest.fixture
async def furnace(home: Home) -> Asset:
    """An HVAC asset in the test home."""
    return await home_service.create_asset(home_id=home.id, name="Furnace", category=AssetCategory.HVAC)


@pytest.fixture
async def filter_template(db: None) -> MaintenanceTemplate:
    """A monthly HVAC template outside any pack."""
    return await template_service.create_template(
        name="Replace HVAC filter",
        description="Swap the return air filter",
        category=AssetCategory.HVAC,
        default_frequency=Frequency.MONTHLY,
        difficulty=Difficulty.EASY,
        instructions=["Turn off system", "Replace filter"],
    )


@pytest.fixture
async def hvac_pack(db: None) -> tuple[TemplatePack, list[MaintenanceTemplate]]:
    """An active pack with five HVAC templates of mixed frequencies."""
    pack = await template_service.create_pack(name="HVAC Essentials", category=AssetCategory.HVAC)
    specs = [
        ("Replace filter", Frequency.MONTHLY),
        ("Clean vents", Frequency.QUARTERLY),
        ("Inspect ductwork", Frequency.ANNUAL),
        ("Check thermostat", Frequency.SEMIANNUAL),
        ("Clear condensate line", Frequency.QUARTERLY),
    ]
    templates = [
        await template_service.create_template(
            name=name,
            category=AssetCategory.HVAC,
            default_frequency=frequency,
            pack_id=pack.id,
        )
        for name, frequency in specs
    ]
    return pack, templates


@pytest.fixture
def make_schedule():
    """Factory inserting a recurring schedule row directly."""

    async def _make(
        *,
        asset: Asset,
        template: MaintenanceTemplate,
        next_due_date: date,
        frequency: Frequency = Frequency.WEEKLY,
        custom_frequency_days: int | None = None,
        is_active: bool = True,
    ) -> dict:
        return await db_client.create_record(
            collection="recurring_schedules",
            data={
                "asset_id": asset.id,
                "template_id": template.id,
                "frequency": frequency,
                "custom_frequency_days": custom_frequency_days,
                "next_due_date": next_due_date,
                "is_active": is_active,
            },
        )

    return _make


@pytest.fixture
def make_task():
    """Factory inserting a task row directly."""

    async def _make(*, home_id: str, due_date: date, status: str = "PENDING", **fields: object) -> dict:
        return await db_client.create_record(
            collection="tasks",
            data={
                "home_id": home_id,
                "title": fields.pop("title", "Test task"),
                "due_date": due_date,
                "status": status,
                "priority": "MEDIUM",
                **fields,
            },
        )

    return _make
