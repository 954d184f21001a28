"""Medication and reminder endpoint tests."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest
from httpx import AsyncClient

from medreminder.integrations.notifier import NotificationClientError

pytestmark = pytest.mark.asyncio


def _today() -> date:
    return datetime.now(UTC).date()


async def _create_medication(client: AsyncClient, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "name": "Aspirin",
        "form": "tablet",
        "start_date": _today().isoformat(),
        "times_list": ["09:00", "21:00"],
    }
    payload.update(overrides)
    response = await client.post("/api/v1/medications", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_medication_schedules_reminders(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]

    created = await _create_medication(client)
    assert created["schedule_type"] == "daily"
    assert created["synced"] is False

    triggers = (await client.get("/api/v1/schedule/triggers")).json()
    assert len(triggers) == 2
    assert {item["data"]["time_of_day"] for item in triggers} == {"09:00", "21:00"}
    assert all(item["data"]["medication_id"] == created["id"] for item in triggers)
    assert triggers[0]["title"] == "Time for Aspirin"


async def test_invalid_medication_payloads_are_rejected(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    base = {
        "name": "Aspirin",
        "form": "tablet",
        "start_date": _today().isoformat(),
        "times_list": ["09:00"],
    }
    invalid = [
        {"times_list": ["9:00"]},
        {"times_list": []},
        {"schedule_type": "weekly_days"},
        {"schedule_type": "weekly_days", "weekly_days": ["MO"]},
        {"schedule_type": "every_x_days", "interval_days": 31},
        {"end_date": (_today() - timedelta(days=1)).isoformat()},
        {"name": "   "},
    ]
    for overrides in invalid:
        response = await client.post("/api/v1/medications", json={**base, **overrides})
        assert response.status_code == 422, overrides


async def test_update_and_list_medications(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    created = await _create_medication(client)

    response = await client.patch(
        f"/api/v1/medications/{created['id']}",
        json={
            "schedule_type": "weekly_days",
            "weekly_days": ["ПН", "ВТ", "СР", "ЧТ", "ПТ", "СБ", "ВС"],
            "times_list": ["10:00"],
        },
    )
    assert response.status_code == 200, response.text
    assert response.json()["weekly_days"] == ["ПН", "ВТ", "СР", "ЧТ", "ПТ", "СБ", "ВС"]

    bad = await client.patch(
        f"/api/v1/medications/{created['id']}", json={"interval_days": 3}
    )
    assert bad.status_code == 400

    listed = (await client.get("/api/v1/medications")).json()
    assert [item["id"] for item in listed] == [created["id"]]

    triggers = (await client.get("/api/v1/schedule/triggers")).json()
    assert {item["data"]["time_of_day"] for item in triggers} == {"10:00"}
    assert len(triggers) >= 55


async def test_delete_medication_clears_reminders(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    created = await _create_medication(client)

    response = await client.delete(f"/api/v1/medications/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {
        "local_deleted": True,
        "remote_deleted": None,
        "warning": None,
        "triggers_scheduled": 0,
    }
    assert (await client.get("/api/v1/schedule/triggers")).json() == []
    missing = await client.get(f"/api/v1/medications/{created['id']}")
    assert missing.status_code == 404


async def test_resync_reports_cancel_failure(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    notifier = app_context["notifier"]
    await _create_medication(client)

    async def _refuse() -> None:
        raise NotificationClientError("permission revoked")

    notifier.cancel_all = _refuse
    response = await client.post("/api/v1/schedule/resync")
    assert response.status_code == 503


async def test_resync_returns_current_triggers(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    await _create_medication(client, schedule_type="every_x_days", interval_days=7)

    first = (await client.post("/api/v1/schedule/resync")).json()
    second = (await client.post("/api/v1/schedule/resync")).json()

    assert first["scheduled"] == second["scheduled"] == len(second["triggers"])
    assert [item["fire_at"] for item in first["triggers"]] == [
        item["fire_at"] for item in second["triggers"]
    ]


async def test_server_id_marks_medication_synced(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    first = await _create_medication(client)
    second = await _create_medication(client, name="Vitamin D")

    linked = await client.put(
        f"/api/v1/medications/{first['id']}/server-id", json={"server_id": 42}
    )
    assert linked.status_code == 200, linked.text
    assert (linked.json()["server_id"], linked.json()["synced"]) == (42, True)

    taken = await client.put(
        f"/api/v1/medications/{second['id']}/server-id", json={"server_id": 42}
    )
    assert taken.status_code == 409
    missing = await client.put("/api/v1/medications/999/server-id", json={"server_id": 7})
    assert missing.status_code == 404
    invalid = await client.put(
        f"/api/v1/medications/{second['id']}/server-id", json={"server_id": 0}
    )
    assert invalid.status_code == 422

    edited = await client.patch(f"/api/v1/medications/{first['id']}", json={"name": "Aspirin C"})
    assert edited.json()["server_id"] == 42
    assert edited.json()["synced"] is False
