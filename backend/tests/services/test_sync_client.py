"""Tests for the sync service client."""

from __future__ import annotations

import base64
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from medreminder.integrations.sync_client import SyncClientError, to_utc_iso

UTC_ZONE = ZoneInfo("UTC")
BERLIN = ZoneInfo("Europe/Berlin")
TODAY = date(2025, 6, 2)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("08:00", "2025-06-02T06:00:00.000Z"),
        ("08:00:15", "2025-06-02T06:00:15.000Z"),
        ("2025-06-03 21:30", "2025-06-03T19:30:00.000Z"),
        ("2025-06-03T21:30:00Z", "2025-06-03T21:30:00.000Z"),
        ("2025-06-03T21:30:00+03:00", "2025-06-03T18:30:00.000Z"),
    ],
)
def test_to_utc_iso_normalises_inputs(value: str, expected: str) -> None:
    assert to_utc_iso(value, tz=BERLIN, today=TODAY) == expected


def test_to_utc_iso_accepts_datetimes() -> None:
    aware = datetime(2025, 6, 2, 8, 0, 0, 123456, tzinfo=UTC)
    assert to_utc_iso(aware, tz=BERLIN, today=TODAY) == "2025-06-02T08:00:00.123Z"
    naive = datetime(2025, 1, 15, 8, 0)
    assert to_utc_iso(naive, tz=BERLIN, today=TODAY) == "2025-01-15T07:00:00.000Z"


def test_to_utc_iso_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        to_utc_iso("tomorrow-ish", tz=UTC_ZONE, today=TODAY)


@pytest.mark.asyncio
async def test_error_detail_becomes_message(make_sync_client, sync_recorder) -> None:
    sync_recorder["responses"]["POST /friends/add"] = httpx.Response(
        400, json={"detail": "Code expired"}
    )
    client = make_sync_client()
    with pytest.raises(SyncClientError) as excinfo:
        await client.add_friend("123456")
    assert str(excinfo.value) == "Code expired"
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_error_without_detail_uses_status_code(make_sync_client, sync_recorder) -> None:
    sync_recorder["responses"]["GET /friends/get-patient"] = httpx.Response(502, text="bad")
    with pytest.raises(SyncClientError, match="Error 502"):
        await make_sync_client().get_patient()


@pytest.mark.asyncio
async def test_timeouts_become_sync_errors(make_sync_client, sync_recorder) -> None:
    def _timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    sync_recorder["responses"]["POST /intake/add_or_update"] = _timeout
    with pytest.raises(SyncClientError, match="timed out"):
        await make_sync_client().post_intake({"medication_id": 1})


@pytest.mark.asyncio
async def test_requests_use_basic_auth_and_base_url(make_sync_client, sync_recorder) -> None:
    sync_recorder["responses"]["GET /medicines/get_medications_for_current_friend"] = (
        httpx.Response(200, json=[{"id": 1}])
    )
    client = make_sync_client(username="uuid-1", password="pw")
    assert await client.get_friend_medications() == [{"id": 1}]

    request = sync_recorder["requests"][0]
    assert request.url.host == "sync.test"
    expected = "Basic " + base64.b64encode(b"uuid-1:pw").decode()
    assert request.headers["Authorization"] == expected
