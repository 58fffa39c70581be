"""End-to-end tests for the home, template, task, schedule and activity endpoints."""

from datetime import date

from httpx import AsyncClient

from src.domain.home import Asset, Home


async def test_list_templates_and_packs(api_client: AsyncClient, hvac_pack, filter_template):
    """Catalogue endpoints list active entries."""
    pack, _ = hvac_pack

    templates = await api_client.get("/api/templates", params={"packId": pack.id})
    packs = await api_client.get("/api/templates/packs")

    assert templates.status_code == 200
    assert len(templates.json()) == 5
    assert [p["name"] for p in packs.json()] == ["HVAC Essentials"]


async def test_apply_pack(api_client: AsyncClient, furnace: Asset, hvac_pack):
    """Applying a pack returns 201 with per-template results."""
    pack, _ = hvac_pack

    response = await api_client.post(f"/api/templates/packs/{pack.id}/apply", json={"assetId": furnace.id})

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Applied 5 of 5 templates"
    assert body["outcome"] == "success"
    assert {r["kind"] for r in body["results"]} == {"applied"}


async def test_apply_pack_twice_reports_already_applied(api_client: AsyncClient, furnace: Asset, hvac_pack):
    """The second batch is still 201, with every template marked already applied."""
    pack, _ = hvac_pack
    await api_client.post(f"/api/templates/packs/{pack.id}/apply", json={"assetId": furnace.id})

    response = await api_client.post(f"/api/templates/packs/{pack.id}/apply", json={"assetId": furnace.id})

    assert response.status_code == 201
    body = response.json()
    assert body["outcome"] == "failure"
    assert {r["reason"] for r in body["results"]} == {"ALREADY_APPLIED"}


async def test_apply_missing_pack(api_client: AsyncClient, furnace: Asset):
    """Unknown packs are 404."""
    response = await api_client.post("/api/templates/packs/999/apply", json={"assetId": furnace.id})

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "ERR_NOT_FOUND"


async def test_apply_template_conflict(api_client: AsyncClient, furnace: Asset, filter_template):
    """Applying the same template twice to an asset is a 409."""
    payload = {"templateId": filter_template.id, "assetId": furnace.id, "startDate": "2024-03-01"}

    first = await api_client.post("/api/templates/apply", json=payload)
    second = await api_client.post("/api/templates/apply", json=payload)

    assert first.status_code == 201
    assert first.json()["message"] == "Template applied successfully"
    assert first.json()["next_due_date"] == "2024-04-01"
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "ERR_SCHEDULE_CONFLICT"


async def test_apply_template_whole_home(api_client: AsyncClient, home: Home, filter_template):
    """Whole-home applies report no schedule."""
    response = await api_client.post(
        "/api/templates/apply", json={"templateId": filter_template.id, "homeId": home.id, "isWholeHome": True}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Template applied successfully (whole-home task)"
    assert body["schedule_id"] is None


async def test_apply_template_validation_errors(api_client: AsyncClient, furnace: Asset, filter_template):
    """Bad frequency data and missing targets are client errors."""
    no_days = await api_client.post(
        "/api/templates/apply",
        json={"templateId": filter_template.id, "assetId": furnace.id, "frequency": "CUSTOM"},
    )
    no_home = await api_client.post("/api/templates/apply", json={"templateId": filter_template.id})
    zero_days = await api_client.post(
        "/api/templates/apply",
        json={"templateId": filter_template.id, "assetId": furnace.id, "frequency": "CUSTOM", "customFrequencyDays": 0},
    )

    assert no_days.status_code == 400
    assert no_days.json()["detail"]["code"] == "ERR_INVALID_FREQUENCY"
    assert no_home.status_code == 400
    assert no_home.json()["detail"]["code"] == "ERR_VALIDATION"
    assert zero_days.status_code == 422


async def test_task_lifecycle(api_client: AsyncClient, home: Home, make_task):
    """Start, complete, reopen and cancel through the API."""
    task = await make_task(home_id=home.id, due_date=date(2024, 3, 1))
    task_id = task["id"]

    started = await api_client.post(f"/api/tasks/{task_id}/start")
    completed = await api_client.post(f"/api/tasks/{task_id}/complete", json={"completionNotes": "Done"})
    again = await api_client.post(f"/api/tasks/{task_id}/complete")
    reopened = await api_client.post(f"/api/tasks/{task_id}/reopen")
    cancelled = await api_client.delete(f"/api/tasks/{task_id}")
    fetched = await api_client.get(f"/api/tasks/{task_id}")

    assert started.json()["status"] == "IN_PROGRESS"
    assert completed.json()["status"] == "COMPLETED"
    assert completed.json()["completion_notes"] == "Done"
    assert again.status_code == 400
    assert again.json()["detail"]["code"] == "ERR_INVALID_STATE_TRANSITION"
    assert reopened.json()["status"] == "PENDING"
    assert cancelled.json()["status"] == "CANCELLED"
    assert fetched.json()["status"] == "CANCELLED"


async def test_get_missing_task(api_client: AsyncClient):
    """Unknown tasks are 404."""
    response = await api_client.get("/api/tasks/404")

    assert response.status_code == 404


async def test_schedule_endpoints(api_client: AsyncClient, furnace: Asset, filter_template):
    """List, update and deactivate schedules."""
    applied = await api_client.post(
        "/api/templates/apply",
        json={"templateId": filter_template.id, "assetId": furnace.id, "startDate": "2024-03-01"},
    )
    schedule_id = applied.json()["schedule_id"]

    listed = await api_client.get("/api/schedules", params={"assetId": furnace.id})
    updated = await api_client.put(
        f"/api/schedules/{schedule_id}", json={"frequency": "CUSTOM", "customFrequencyDays": 21}
    )
    deactivated = await api_client.delete(f"/api/schedules/{schedule_id}")
    active = await api_client.get("/api/schedules", params={"assetId": furnace.id})
    everything = await api_client.get("/api/schedules", params={"assetId": furnace.id, "includeInactive": True})

    assert [s["id"] for s in listed.json()] == [schedule_id]
    assert listed.json()[0]["frequency_label"] == "Monthly"
    assert updated.status_code == 200
    assert updated.json()["frequency_label"] == "Every 21 days"
    assert deactivated.json()["is_active"] is False
    assert active.json() == []
    assert len(everything.json()) == 1


async def test_update_missing_schedule(api_client: AsyncClient):
    """Unknown schedules are 404."""
    response = await api_client.put("/api/schedules/999", json={"isActive": False})

    assert response.status_code == 404


async def test_home_and_asset_endpoints(api_client: AsyncClient, db):
    """Homes and assets can be created and read back."""
    created = await api_client.post("/api/homes", json={"userId": "user-9", "name": "Cabin"})
    home_id = created.json()["id"]

    furnace = await api_client.post(f"/api/homes/{home_id}/assets", json={"name": "Furnace", "category": "HVAC"})
    await api_client.post(f"/api/homes/{home_id}/assets", json={"name": "Deck", "category": "EXTERIOR"})

    assert created.status_code == 201
    assert (await api_client.get(f"/api/homes/{home_id}")).json()["name"] == "Cabin"
    assert furnace.status_code == 201
    assert (await api_client.get(f"/api/assets/{furnace.json()['id']}")).json()["category"] == "HVAC"
    hvac = await api_client.get(f"/api/homes/{home_id}/assets", params={"category": "HVAC"})
    assert [a["name"] for a in hvac.json()] == ["Furnace"]


async def test_asset_for_missing_home(api_client: AsyncClient, db):
    """Assets cannot be added to unknown homes."""
    response = await api_client.post("/api/homes/999/assets", json={"name": "Furnace"})

    assert response.status_code == 404


async def test_create_home_validation(api_client: AsyncClient, db):
    """Blank home names are rejected by the request model."""
    response = await api_client.post("/api/homes", json={"userId": "user-9", "name": ""})

    assert response.status_code == 422


async def test_create_and_list_tasks(api_client: AsyncClient, home: Home, furnace: Asset):
    """One-off tasks are created and listed by due date with filters."""
    later = await api_client.post(
        "/api/tasks", json={"homeId": home.id, "title": "Paint fence", "dueDate": "2099-06-01"}
    )
    sooner = await api_client.post(
        "/api/tasks",
        json={"homeId": home.id, "title": "Bleed radiators", "dueDate": "2099-01-15", "assetId": furnace.id},
    )

    assert later.status_code == 201
    assert sooner.json()["priority"] == "MEDIUM"
    all_tasks = await api_client.get("/api/tasks", params={"homeId": home.id})
    assert [t["title"] for t in all_tasks.json()] == ["Bleed radiators", "Paint fence"]
    by_asset = await api_client.get("/api/tasks", params={"assetId": furnace.id, "status": "PENDING"})
    assert [t["title"] for t in by_asset.json()] == ["Bleed radiators"]


async def test_create_task_for_missing_home(api_client: AsyncClient, db):
    """Tasks for unknown homes are 404."""
    response = await api_client.post("/api/tasks", json={"homeId": "999", "title": "X", "dueDate": "2099-01-01"})

    assert response.status_code == 404


async def test_get_template_and_pack(api_client: AsyncClient, hvac_pack, filter_template):
    """Single template and pack lookups, with the pack's templates."""
    pack, templates = hvac_pack

    template = await api_client.get(f"/api/templates/{filter_template.id}")
    pack_response = await api_client.get(f"/api/templates/packs/{pack.id}")
    missing = await api_client.get("/api/templates/packs/999")

    assert template.json()["instructions"] == ["Turn off system", "Replace filter"]
    assert pack_response.json()["name"] == "HVAC Essentials"
    assert {t["id"] for t in pack_response.json()["templates"]} == {t.id for t in templates}
    assert missing.status_code == 404


async def test_activity_feed(api_client: AsyncClient, furnace: Asset, filter_template):
    """Applying a template shows up in the home's activity feed."""
    await api_client.post("/api/templates/apply", json={"templateId": filter_template.id, "assetId": furnace.id})

    response = await api_client.get(f"/api/homes/{furnace.home_id}/activity", params={"limit": 1})

    assert response.status_code == 200
    assert [e["activity_type"] for e in response.json()] == ["SCHEDULE_CREATED"]
