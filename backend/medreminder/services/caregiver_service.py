"""Med friend link and the read-only view of a linked patient's day."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.integrations.sync_client import SyncClient
from medreminder.models.intake_event import IntakeEvent
from medreminder.models.local_user import LocalUser
from medreminder.models.medication import Medication, MedicationForm
from medreminder.services import local_user_service
from medreminder.services.recurrence_service import WEEKDAY_ABBREVIATIONS, matches
from medreminder.services.status_service import IntakeStatus, resolve_status

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class PatientDayEntry:
    medication: Medication
    times: list[str]
    status: IntakeStatus


@dataclass(slots=True)
class PatientDay:
    target_date: date
    patient: dict[str, Any] = field(default_factory=dict)
    entries: list[PatientDayEntry] = field(default_factory=list)


def _trim_time(value: Any) -> str | None:
    text = str(value).strip()
    parts = text.split(":")
    if len(parts) < 2 or not all(part.isdigit() for part in parts[:2]):
        return None
    return f"{int(parts[0]):02d}:{int(parts[1]):02d}"


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _parse_instant(value: Any) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip().replace(" ", "T", 1)
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        moment = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment


def medication_from_remote(record: Mapping[str, Any]) -> Medication | None:
    """Build a transient medication from a sync service record."""

    start_date = _parse_date(record.get("start_date"))
    if start_date is None:
        logger.debug("Skipping remote medication without start_date: %r", record.get("id"))
        return None
    week_days = [
        WEEKDAY_ABBREVIATIONS[int(day) - 1]
        for day in record.get("week_days") or []
        if str(day).isdigit() and 1 <= int(day) <= 7
    ]
    times = [t for t in (_trim_time(v) for v in record.get("times_per_day") or []) if t]
    try:
        form = MedicationForm(record.get("form") or MedicationForm.OTHER.value)
    except ValueError:
        form = MedicationForm.OTHER
    server_id = record.get("server_id") or record.get("id")
    return Medication(
        id=server_id,
        server_id=server_id,
        name=str(record.get("name") or ""),
        form=form,
        instructions=record.get("instructions"),
        start_date=start_date,
        end_date=_parse_date(record.get("end_date")),
        schedule_type=str(record.get("schedule_type") or ""),
        weekly_days=week_days or None,
        interval_days=record.get("interval_days"),
        times_list=times,
        synced=True,
    )


def intake_from_remote(record: Mapping[str, Any]) -> IntakeEvent | None:
    status = record.get("status")
    recorded_at = _parse_instant(record.get("taken_time")) or _parse_instant(
        record.get("scheduled_time")
    )
    if status not in ("taken", "skipped") or recorded_at is None:
        return None
    return IntakeEvent(
        id=record.get("id"),
        server_id=record.get("id"),
        medication_id=record.get("medication_id"),
        planned_time=str(record.get("scheduled_time") or ""),
        recorded_at=recorded_at,
        taken=status == "taken",
        skipped=status == "skipped",
        notes=record.get("notes"),
        synced=True,
    )


def evaluate_patient_day(
    medications: Sequence[Mapping[str, Any]],
    intakes: Sequence[Mapping[str, Any]],
    target_date: date,
    *,
    tz: ZoneInfo,
) -> list[PatientDayEntry]:
    """Medications due on ``target_date`` with their resolved status, earliest first."""

    events_by_medication: dict[int, list[IntakeEvent]] = {}
    for record in intakes:
        event = intake_from_remote(record)
        if event is not None:
            events_by_medication.setdefault(event.medication_id, []).append(event)

    entries: list[PatientDayEntry] = []
    for record in medications:
        medication = medication_from_remote(record)
        if medication is None:
            continue
        if not matches(
            medication.recurrence, target_date, medication.start_date, medication.end_date
        ):
            continue
        status = resolve_status(
            events_by_medication.get(medication.server_id, []), target_date, tz
        )
        entries.append(
            PatientDayEntry(
                medication=medication, times=sorted(medication.times_list), status=status
            )
        )
    entries.sort(
        key=lambda entry: (entry.times[0] if entry.times else "99:99", entry.medication.name)
    )
    return entries


async def load_patient_day(
    sync_client: SyncClient,
    target_date: date,
    *,
    tz: ZoneInfo,
) -> PatientDay:
    """Fetch the linked patient's schedule and intakes; nothing is persisted."""

    patient = await sync_client.get_patient()
    medications = await sync_client.get_friend_medications()
    intakes = await sync_client.get_friend_intakes()
    entries = evaluate_patient_day(medications, intakes, target_date, tz=tz)
    logger.info(
        "Loaded %s of %s patient medications for %s",
        len(entries),
        len(medications),
        target_date.isoformat(),
    )
    return PatientDay(target_date=target_date, patient=patient, entries=entries)


LINK_ROLES = ("patient", "friend")


async def link_med_friend(
    session: AsyncSession, sync_client: SyncClient, code: str
) -> LocalUser:
    """Redeem an invitation code and remember the linked med friend."""

    response = await sync_client.add_friend(code)
    if response.get("success") is False:
        raise ValueError(response.get("message") or "Invitation code rejected")
    friend = await sync_client.get_med_friend()
    relation_uuid = friend.get("uuid")
    if not relation_uuid:
        raise ValueError("Med friend not found")
    return await local_user_service.save_med_friend(session, str(relation_uuid))


async def unlink_med_friend(
    session: AsyncSession, sync_client: SyncClient, *, role: str
) -> None:
    """Drop the relation remotely, then forget it locally.

    A patient removes their med friend; a med friend unsubscribes from the
    patient. Remote failures propagate and leave the local link intact.
    """

    if role not in LINK_ROLES:
        raise ValueError(f"Unknown role: {role}")
    if role == "patient":
        await sync_client.remove_for_patient()
    else:
        await sync_client.unsubscribe_from_patient()
    await local_user_service.remove_med_friend(session)
    logger.info("Med friend relation removed (%s side)", role)


__all__ = [
    "LINK_ROLES",
    "PatientDay",
    "PatientDayEntry",
    "evaluate_patient_day",
    "intake_from_remote",
    "link_med_friend",
    "load_patient_day",
    "medication_from_remote",
    "unlink_med_friend",
]
