"""Intake recording, rescheduling and best-effort sync."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from medreminder.core.config import get_settings
from medreminder.integrations.sync_client import SyncClient, SyncClientError, to_utc_iso
from medreminder.models.intake_event import IntakeEvent
from medreminder.models.medication import Medication
from medreminder.services.recurrence_service import matches
from medreminder.services.schedule_service import Occurrence
from medreminder.services.trigger_service import (
    as_local,
    local_today,
    occurrence_instant,
    parse_slot_key,
    parse_time_of_day,
    resolve_timezone,
)

logger = logging.getLogger(__name__)

RESCHEDULED_TO = "rescheduled to"
RESCHEDULED_FROM = "rescheduled from"


class IntakeDecision(str, enum.Enum):
    TAKEN = "taken"
    SKIPPED = "skipped"


@dataclass(slots=True, frozen=True)
class IntakeOutcome:
    """Local id of the recorded event plus the soft sync result."""

    intake_id: int
    synced: bool
    warning: str | None = None


@dataclass(slots=True, frozen=True)
class RescheduleOutcome:
    original_id: int
    moved_id: int


def _default_tz(tz: ZoneInfo | None) -> ZoneInfo:
    return tz or resolve_timezone(get_settings().local_timezone)


def _slot_key(occurs_on: date, time_of_day: str) -> str:
    return f"{occurs_on.isoformat()} {time_of_day}"


def _resolve_planned_time(value: str, fallback_day: date) -> tuple[date, str] | None:
    """Resolve ``HH:MM`` (on ``fallback_day``) or a dated ``YYYY-MM-DD HH:MM`` key."""

    if parse_time_of_day(value) is not None:
        return fallback_day, value
    return parse_slot_key(value)


async def _load_medication(session: AsyncSession, medication_id: int) -> Medication:
    medication = await session.get(Medication, medication_id)
    if medication is None:
        raise ValueError("Medication not found")
    return medication


def build_sync_payload(
    event: IntakeEvent,
    medication: Medication,
    *,
    tz: ZoneInfo,
) -> dict[str, Any]:
    """Translate a local event into the sync service's intake record."""

    if medication.server_id is None:
        raise ValueError("Medication is not known to the sync service")
    event_day = as_local(event.recorded_at, tz).date()
    payload: dict[str, Any] = {
        "medication_id": medication.server_id,
        "scheduled_time": to_utc_iso(event.planned_time, tz=tz, today=event_day),
        "taken_time": to_utc_iso(event.recorded_at, tz=tz, today=event_day),
        "status": IntakeDecision.TAKEN.value if event.taken else IntakeDecision.SKIPPED.value,
    }
    if event.notes:
        payload["notes"] = event.notes
    return payload


async def _push_event(
    session: AsyncSession,
    sync_client: SyncClient,
    event: IntakeEvent,
    medication: Medication,
    *,
    tz: ZoneInfo,
) -> str | None:
    """Push one event; returns a warning message instead of raising."""

    try:
        payload = build_sync_payload(event, medication, tz=tz)
        response = await sync_client.post_intake(payload)
    except (SyncClientError, ValueError) as exc:
        logger.warning("Intake %s kept locally; sync failed: %s", event.id, exc)
        return f"Saved on this device; sync failed: {exc}"

    event.synced = True
    server_id = (response or {}).get("id")
    if isinstance(server_id, int):
        event.server_id = server_id
    await session.commit()
    return None


async def record_intake(
    session: AsyncSession,
    medication_id: int,
    planned_time: str,
    decision: IntakeDecision,
    now: datetime,
    *,
    sync_client: SyncClient | None = None,
    dose_taken: float | None = None,
    notes: str | None = None,
    tz: ZoneInfo | None = None,
) -> IntakeOutcome:
    """Persist a taken/skipped decision, then push it to the sync service.

    The local commit happens before any network call. Sync problems never
    raise; they come back as ``IntakeOutcome.warning``.
    """

    tz = _default_tz(tz)
    decision = IntakeDecision(decision)
    planned_time = planned_time.strip()
    if _resolve_planned_time(planned_time, local_today(now, tz)) is None:
        raise ValueError("Invalid time format. Use HH:MM or YYYY-MM-DD HH:MM")
    medication = await _load_medication(session, medication_id)

    event = IntakeEvent(
        medication_id=medication.id,
        planned_time=planned_time,
        recorded_at=as_local(now, tz),
        taken=decision is IntakeDecision.TAKEN,
        skipped=decision is IntakeDecision.SKIPPED,
        dose_taken=dose_taken,
        notes=notes,
        synced=False,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    logger.info(
        "Intake %s recorded as %s for medication %s", event.id, decision.value, medication.id
    )

    if medication.server_id is None or sync_client is None:
        return IntakeOutcome(intake_id=event.id, synced=False)

    warning = await _push_event(session, sync_client, event, medication, tz=tz)
    return IntakeOutcome(intake_id=event.id, synced=warning is None, warning=warning)


async def reschedule_intake(
    session: AsyncSession,
    medication_id: int,
    planned_time: str,
    new_date: date,
    new_time: str,
    now: datetime,
    *,
    tz: ZoneInfo | None = None,
) -> RescheduleOutcome:
    """Move an occurrence: mark the original slot and add a pending slot."""

    tz = _default_tz(tz)
    new_time = new_time.strip()
    slot = parse_time_of_day(new_time)
    if slot is None:
        raise ValueError("Invalid time format. Use HH:MM (08:00, 21:30)")
    today = local_today(now, tz)
    planned_time = planned_time.strip()
    original = _resolve_planned_time(planned_time, today)
    if original is None:
        raise ValueError("Invalid time format. Use HH:MM or YYYY-MM-DD HH:MM")
    medication = await _load_medication(session, medication_id)

    new_key = _slot_key(new_date, new_time)
    if new_time in (medication.times_list or []) and matches(
        medication.recurrence, new_date, medication.start_date, medication.end_date
    ):
        raise ValueError("Conflict: this medication is already scheduled at that time")
    stmt = select(IntakeEvent.id).where(
        IntakeEvent.medication_id == medication.id,
        IntakeEvent.planned_time == new_key,
    )
    if (await session.execute(stmt)).first() is not None:
        raise ValueError("Conflict: this medication is already scheduled at that time")

    original_key = _slot_key(*original)

    original_event = IntakeEvent(
        medication_id=medication.id,
        planned_time=original_key,
        recorded_at=as_local(now, tz),
        taken=False,
        skipped=False,
        notes=f"{RESCHEDULED_TO} {new_key}",
    )
    moved = IntakeEvent(
        medication_id=medication.id,
        planned_time=new_key,
        recorded_at=occurrence_instant(new_date, slot, tz),
        taken=False,
        skipped=False,
        notes=f"{RESCHEDULED_FROM} {original_key}",
    )
    session.add_all([original_event, moved])
    await session.commit()
    await session.refresh(original_event)
    await session.refresh(moved)
    logger.info(
        "Medication %s occurrence %s moved to %s", medication.id, original_key, new_key
    )
    return RescheduleOutcome(original_id=original_event.id, moved_id=moved.id)


async def pending_reschedules(
    session: AsyncSession,
    now: datetime,
    *,
    tz: ZoneInfo,
) -> list[Occurrence]:
    """Future slots created by a reschedule that still await a decision."""

    stmt: Select[tuple[IntakeEvent]] = (
        select(IntakeEvent)
        .where(
            IntakeEvent.taken.is_(False),
            IntakeEvent.skipped.is_(False),
            IntakeEvent.recorded_at > as_local(now, tz),
            IntakeEvent.notes.startswith(RESCHEDULED_FROM),
        )
        .order_by(IntakeEvent.recorded_at, IntakeEvent.id)
    )
    result = await session.execute(stmt)
    occurrences: list[Occurrence] = []
    for event in result.scalars().all():
        parsed = parse_slot_key(event.planned_time)
        if parsed is None:
            continue
        occurrences.append(Occurrence(event.medication_id, parsed[0], parsed[1]))
    return occurrences


async def moved_away_occurrences(
    session: AsyncSession,
    now: datetime,
    *,
    tz: ZoneInfo,
) -> list[Occurrence]:
    """Occurrences from local today onward that were rescheduled elsewhere.

    Their regular reminders must not fire. Bare ``HH:MM`` keys resolve to the
    local day the reschedule was recorded on.
    """

    today = local_today(now, tz)
    stmt: Select[tuple[IntakeEvent]] = (
        select(IntakeEvent)
        .where(
            IntakeEvent.taken.is_(False),
            IntakeEvent.skipped.is_(False),
            IntakeEvent.notes.startswith(RESCHEDULED_TO),
        )
        .order_by(IntakeEvent.recorded_at, IntakeEvent.id)
    )
    result = await session.execute(stmt)
    occurrences: list[Occurrence] = []
    for event in result.scalars().all():
        recorded_day = as_local(event.recorded_at, tz).date()
        parsed = _resolve_planned_time(event.planned_time, recorded_day)
        if parsed is None or parsed[0] < today:
            continue
        occurrences.append(Occurrence(event.medication_id, parsed[0], parsed[1]))
    return occurrences


async def list_intakes(
    session: AsyncSession,
    *,
    medication_id: int | None = None,
    only_unsynced: bool = False,
) -> list[IntakeEvent]:
    stmt: Select[tuple[IntakeEvent]] = select(IntakeEvent)
    if medication_id is not None:
        stmt = stmt.where(IntakeEvent.medication_id == medication_id)
    if only_unsynced:
        stmt = stmt.where(IntakeEvent.synced.is_(False)).order_by(
            IntakeEvent.recorded_at.asc(), IntakeEvent.id.asc()
        )
    else:
        stmt = stmt.order_by(IntakeEvent.recorded_at.desc(), IntakeEvent.id.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def sync_pending_intakes(
    session: AsyncSession,
    sync_client: SyncClient,
    *,
    tz: ZoneInfo | None = None,
) -> int:
    """Retry every unsynced decision of a server-known medication."""

    tz = _default_tz(tz)
    stmt: Select[tuple[IntakeEvent]] = (
        select(IntakeEvent)
        .join(Medication, IntakeEvent.medication_id == Medication.id)
        .options(selectinload(IntakeEvent.medication))
        .where(
            IntakeEvent.synced.is_(False),
            Medication.server_id.is_not(None),
            (IntakeEvent.taken.is_(True)) | (IntakeEvent.skipped.is_(True)),
        )
        .order_by(IntakeEvent.recorded_at.asc(), IntakeEvent.id.asc())
    )
    events = list((await session.execute(stmt)).scalars().all())
    synced = 0
    for event in events:
        warning = await _push_event(session, sync_client, event, event.medication, tz=tz)
        if warning is None:
            synced += 1
    if events:
        logger.info("Retried %s unsynced intakes, %s synced", len(events), synced)
    return synced


__all__ = [
    "IntakeDecision",
    "IntakeOutcome",
    "RescheduleOutcome",
    "build_sync_payload",
    "list_intakes",
    "moved_away_occurrences",
    "pending_reschedules",
    "record_intake",
    "reschedule_intake",
    "sync_pending_intakes",
]
