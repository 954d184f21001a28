"""Resolves the displayed intake status of a medication for a day."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from typing import Literal
from zoneinfo import ZoneInfo

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.models.intake_event import IntakeEvent
from medreminder.models.medication import Medication
from medreminder.services.recurrence_service import DEFAULT_HORIZON_DAYS, matches
from medreminder.services.trigger_service import as_local

StatusValue = Literal["pending", "taken", "skipped"]


@dataclass(slots=True, frozen=True)
class IntakeStatus:
    status: StatusValue
    time: str | None = None


PENDING = IntakeStatus("pending")


def _day_bounds(target_date: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    local_start = datetime.combine(target_date, time.min, tzinfo=tz)
    local_end = local_start + timedelta(days=1)
    return local_start.astimezone(UTC), local_end.astimezone(UTC)


def resolve_status(
    events: Iterable[IntakeEvent],
    target_date: date,
    tz: ZoneInfo,
) -> IntakeStatus:
    """Return the status decided by the latest resolved event on ``target_date``.

    Events are compared on their local calendar day. Events that are neither
    taken nor skipped (reschedule markers) never decide the status.
    """

    latest: IntakeEvent | None = None
    for event in events:
        if not (event.taken or event.skipped):
            continue
        if as_local(event.recorded_at, tz).date() != target_date:
            continue
        if latest is None or (event.recorded_at, event.id or 0) > (
            latest.recorded_at,
            latest.id or 0,
        ):
            latest = event
    if latest is None:
        return PENDING
    stamp = as_local(latest.recorded_at, tz).strftime("%H:%M")
    return IntakeStatus("taken" if latest.taken else "skipped", stamp)


async def status_for(
    session: AsyncSession,
    medication_id: int,
    target_date: date,
    *,
    tz: ZoneInfo,
) -> IntakeStatus:
    start_utc, end_utc = _day_bounds(target_date, tz)
    stmt: Select[tuple[IntakeEvent]] = select(IntakeEvent).where(
        IntakeEvent.medication_id == medication_id,
        IntakeEvent.recorded_at >= start_utc,
        IntakeEvent.recorded_at < end_utc,
    )
    result = await session.execute(stmt)
    return resolve_status(result.scalars().all(), target_date, tz)



@dataclass(slots=True, frozen=True)
class DayEntry:
    medication: Medication
    times: list[str]
    status: IntakeStatus


async def day_overview(
    session: AsyncSession,
    target_date: date,
    *,
    today: date,
    tz: ZoneInfo,
    window_days: int = DEFAULT_HORIZON_DAYS,
) -> list[DayEntry]:
    """Local medications due on ``target_date`` with their status, earliest first.

    Raises ``ValueError`` when ``target_date`` lies more than ``window_days``
    away from ``today``.
    """

    if abs((target_date - today).days) > window_days:
        raise ValueError(f"Day must be within {window_days} days of today")

    result = await session.execute(select(Medication).order_by(Medication.id))
    due = [
        medication
        for medication in result.scalars().all()
        if matches(medication.recurrence, target_date, medication.start_date, medication.end_date)
    ]
    if not due:
        return []

    start_utc, end_utc = _day_bounds(target_date, tz)
    stmt: Select[tuple[IntakeEvent]] = select(IntakeEvent).where(
        IntakeEvent.medication_id.in_([medication.id for medication in due]),
        IntakeEvent.recorded_at >= start_utc,
        IntakeEvent.recorded_at < end_utc,
    )
    events_by_medication: dict[int, list[IntakeEvent]] = {}
    for event in (await session.execute(stmt)).scalars().all():
        events_by_medication.setdefault(event.medication_id, []).append(event)

    entries = [
        DayEntry(
            medication=medication,
            times=sorted(medication.times_list or []),
            status=resolve_status(events_by_medication.get(medication.id, []), target_date, tz),
        )
        for medication in due
    ]
    entries.sort(
        key=lambda entry: (entry.times[0] if entry.times else "99:99", entry.medication.name)
    )
    return entries


__all__ = [
    "DayEntry",
    "IntakeStatus",
    "PENDING",
    "day_overview",
    "resolve_status",
    "status_for",
]
