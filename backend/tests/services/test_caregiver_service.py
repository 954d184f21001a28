"""Tests for the local identity and the med friend view."""

from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo

import httpx
import pytest

from medreminder.db.session import get_sessionmaker
from medreminder.integrations.sync_client import SyncClientError
from medreminder.services import caregiver_service, local_user_service

pytestmark = pytest.mark.asyncio

UTC_ZONE = ZoneInfo("UTC")
MONDAY = date(2025, 6, 2)

REMOTE_MEDICATIONS = [
    {
        "id": 11,
        "name": "Metformin",
        "form": "tablet",
        "start_date": "2025-05-01",
        "schedule_type": "weekly_days",
        "week_days": [1, 3],
        "times_per_day": ["20:00:00"],
    },
    {
        "id": 12,
        "name": "Eye drops",
        "form": "drop",
        "start_date": "2025-05-01",
        "schedule_type": "daily",
        "times_per_day": ["07:30:15", "19:00"],
    },
    {
        "id": 13,
        "name": "Vitamin B12",
        "form": "other",
        "start_date": "2025-06-01",
        "schedule_type": "every_x_days",
        "interval_days": 2,
        "times_per_day": ["12:00"],
    },
]

REMOTE_INTAKES = [
    {
        "id": 1,
        "medication_id": 12,
        "scheduled_time": "2025-06-02T07:30:00.000Z",
        "taken_time": "2025-06-02T07:41:00.000Z",
        "status": "taken",
    },
    {
        "id": 2,
        "medication_id": 11,
        "scheduled_time": "2025-06-01T20:00:00.000Z",
        "taken_time": "2025-06-01T20:05:00.000Z",
        "status": "skipped",
    },
]


async def test_evaluate_patient_day_uses_local_rules() -> None:
    entries = caregiver_service.evaluate_patient_day(
        REMOTE_MEDICATIONS, REMOTE_INTAKES, MONDAY, tz=UTC_ZONE
    )

    assert [entry.medication.name for entry in entries] == ["Eye drops", "Metformin"]
    drops, metformin = entries
    assert drops.times == ["07:30", "19:00"]
    assert (drops.status.status, drops.status.time) == ("taken", "07:41")
    assert metformin.medication.weekly_days == ["ПН", "СР"]
    assert metformin.status.status == "pending"


async def test_load_patient_day_reads_remote_records(make_sync_client, sync_recorder) -> None:
    responses = sync_recorder["responses"]
    responses["GET /friends/get-patient"] = httpx.Response(
        200, json={"uuid": "p-1", "username": "Grandma"}
    )
    responses["GET /medicines/get_medications_for_current_friend"] = httpx.Response(
        200, json=REMOTE_MEDICATIONS
    )
    responses["GET /intake/get_intakes_for_current_friend"] = httpx.Response(
        200, json=REMOTE_INTAKES
    )

    day = await caregiver_service.load_patient_day(
        make_sync_client(), date(2025, 6, 3), tz=UTC_ZONE
    )

    assert day.patient["username"] == "Grandma"
    assert [entry.medication.server_id for entry in day.entries] == [12, 13]


async def test_local_user_round_trip(reset_database, db_url: str) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        assert await local_user_service.get_local_user(session) is None
        assert local_user_service.build_sync_client(None) is None
        with pytest.raises(ValueError, match="Local user not found"):
            await local_user_service.save_med_friend(session, "friend-1")

        user = await local_user_service.save_local_user(
            session, patient_uuid="UUID-abc", patient_password="pw"
        )
        await local_user_service.save_med_friend(session, "friend-1")
        assert await local_user_service.get_med_friend_uuid(session) == "friend-1"

        again = await local_user_service.save_local_user(
            session, patient_uuid="UUID-abc", patient_password="pw2"
        )
        assert again.id == user.id
        assert again.relation_uuid == "friend-1"

        await local_user_service.remove_med_friend(session)
        assert await local_user_service.get_med_friend_uuid(session) is None
        assert local_user_service.build_sync_client(again) is not None


async def test_link_and_unlink_med_friend(
    reset_database, db_url: str, make_sync_client, sync_recorder
) -> None:
    responses = sync_recorder["responses"]
    responses["POST /friends/add"] = httpx.Response(200, json={"success": True})
    responses["GET /friends/get-med-friend"] = httpx.Response(
        200, json={"uuid": "friend-9", "username": "Alex"}
    )
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await local_user_service.save_local_user(
            session, patient_uuid="UUID-abc", patient_password="pw"
        )
        client = make_sync_client()

        user = await caregiver_service.link_med_friend(session, client, "123456")
        assert user.relation_uuid == "friend-9"

        await caregiver_service.unlink_med_friend(session, client, role="patient")
        assert await local_user_service.get_med_friend_uuid(session) is None

    paths = [request.url.path for request in sync_recorder["requests"]]
    assert paths == ["/friends/add", "/friends/get-med-friend", "/friends/remove-for-patient"]


async def test_failed_unlink_keeps_local_relation(
    reset_database, db_url: str, make_sync_client, sync_recorder
) -> None:
    sync_recorder["responses"]["POST /friends/unsubscribe-from-patient"] = httpx.Response(
        404, json={"detail": "No patient"}
    )
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        await local_user_service.save_local_user(
            session, patient_uuid="UUID-abc", patient_password="pw"
        )
        await local_user_service.save_med_friend(session, "patient-1")

        with pytest.raises(SyncClientError):
            await caregiver_service.unlink_med_friend(
                session, make_sync_client(), role="friend"
            )
        assert await local_user_service.get_med_friend_uuid(session) == "patient-1"
