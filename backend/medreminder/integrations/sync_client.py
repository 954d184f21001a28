"""HTTP client for the remote sync service."""

from __future__ import annotations

import logging
import re
from datetime import UTC, date, datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from medreminder.core.config import get_settings

logger = logging.getLogger(__name__)

_BARE_TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")


class SyncClientError(RuntimeError):
    """Raised when the sync service cannot be reached or rejects a call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def to_utc_iso(value: str | datetime, *, tz: ZoneInfo, today: date) -> str:
    """Normalise a timestamp to ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Accepts aware or naive datetimes (naive means local), bare ``HH:MM`` or
    ``HH:MM:SS`` local times (expanded with ``today``), ``YYYY-MM-DD HH:MM``
    and ISO 8601 strings with or without offsets.
    """

    if isinstance(value, datetime):
        moment = value
    else:
        raw = value.strip()
        if _BARE_TIME_RE.match(raw):
            hour, _, rest = raw.partition(":")
            raw = f"{today.isoformat()}T{int(hour):02d}:{rest}"
        raw = raw.replace(" ", "T", 1)
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid date: {value}") from exc
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=tz)
    moment = moment.astimezone(UTC)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class SyncClient:
    """Thin async wrapper around the sync service REST API."""

    def __init__(
        self,
        *,
        username: str,
        password: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.sync_api_base_url).rstrip("/")
        self._auth = httpx.BasicAuth(username, password)
        self._timeout = httpx.Timeout(
            timeout if timeout is not None else settings.sync_timeout_seconds
        )
        self._transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any | None = None,
    ) -> Any:
        url = f"{self._base_url}{endpoint}"
        logger.debug("%s %s", method, url)
        try:
            async with httpx.AsyncClient(
                auth=self._auth, timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.request(method, url, json=json)
        except httpx.TimeoutException as exc:
            raise SyncClientError(f"Sync service timed out: {method} {endpoint}") from exc
        except httpx.HTTPError as exc:
            raise SyncClientError(f"Sync service unreachable: {exc}") from exc

        if response.is_error:
            message = f"Error {response.status_code}"
            try:
                detail = response.json().get("detail")
            except (ValueError, AttributeError):
                detail = None
            if detail:
                message = str(detail)
            raise SyncClientError(message, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    # ------------------------------------------------------------------
    # Intake and medication records
    # ------------------------------------------------------------------
    async def post_intake(self, payload: dict[str, Any]) -> dict[str, Any] | None:
        result = await self._request("POST", "/intake/add_or_update", json=payload)
        return result if isinstance(result, dict) else None

    async def delete_medication(self, server_id: int) -> None:
        await self._request("DELETE", f"/medicines/{server_id}")

    # ------------------------------------------------------------------
    # Caregiver relation
    # ------------------------------------------------------------------
    async def get_med_friend(self) -> dict[str, Any]:
        return await self._request("GET", "/friends/get-med-friend") or {}

    async def get_patient(self) -> dict[str, Any]:
        return await self._request("GET", "/friends/get-patient") or {}

    async def add_friend(self, code: str) -> dict[str, Any]:
        return await self._request("POST", "/friends/add", json={"code": code}) or {}

    async def create_invitation(self) -> dict[str, Any]:
        return await self._request("POST", "/friends/invitation", json={}) or {}

    async def remove_for_patient(self) -> None:
        await self._request("POST", "/friends/remove-for-patient", json={})

    async def unsubscribe_from_patient(self) -> None:
        await self._request("POST", "/friends/unsubscribe-from-patient", json={})

    async def get_friend_medications(self) -> list[dict[str, Any]]:
        result = await self._request(
            "GET", "/medicines/get_medications_for_current_friend"
        )
        return result if isinstance(result, list) else []

    async def get_friend_intakes(self) -> list[dict[str, Any]]:
        result = await self._request("GET", "/intake/get_intakes_for_current_friend")
        return result if isinstance(result, list) else []


__all__ = ["SyncClient", "SyncClientError", "to_utc_iso"]
