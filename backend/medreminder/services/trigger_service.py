"""Reminder trigger instants for individual occurrences."""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_LEAD_MINUTES = 10

_TIME_OF_DAY_RE = re.compile(r"([01]\d|2[0-3]):([0-5]\d)")


def resolve_timezone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):  # pragma: no cover - depends on system tz database
        return ZoneInfo("UTC")


def parse_time_of_day(value: str) -> time | None:
    """Parse a strict 24-hour ``HH:MM`` string, returning None when invalid."""

    if not isinstance(value, str):
        return None
    match = _TIME_OF_DAY_RE.fullmatch(value)
    if match is None:
        return None
    return time(int(match.group(1)), int(match.group(2)))


def parse_slot_key(value: str) -> tuple[date, str] | None:
    """Parse a dated occurrence key ``YYYY-MM-DD HH:MM``."""

    day_part, _, time_part = value.partition(" ")
    if len(day_part) != 10:
        return None
    try:
        occurs_on = date.fromisoformat(day_part)
    except ValueError:
        return None
    if parse_time_of_day(time_part) is None:
        return None
    return occurs_on, time_part


def as_local(moment: datetime, tz: ZoneInfo) -> datetime:
    """Interpret naive datetimes as local wall clock; convert aware ones."""

    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def local_today(now: datetime, tz: ZoneInfo) -> date:
    return as_local(now, tz).date()


def occurrence_instant(occurs_on: date, slot: time, tz: ZoneInfo) -> datetime:
    """Return the UTC instant of a local wall-clock occurrence.

    The offset comes from ``occurs_on`` itself, so an occurrence after a DST
    change resolves with the post-change offset.
    """

    return datetime.combine(occurs_on, slot, tzinfo=tz).astimezone(UTC)


def compute_trigger(
    occurs_on: date,
    time_of_day: str,
    lead_minutes: int,
    now: datetime,
    tz: ZoneInfo,
) -> datetime | None:
    """Return the UTC instant a reminder should fire, or None if not in the future."""

    slot = parse_time_of_day(time_of_day)
    if slot is None:
        return None
    fire_at = occurrence_instant(occurs_on, slot, tz) - timedelta(minutes=lead_minutes)
    if fire_at <= as_local(now, tz).astimezone(UTC):
        return None
    return fire_at


__all__ = [
    "DEFAULT_LEAD_MINUTES",
    "as_local",
    "compute_trigger",
    "local_today",
    "occurrence_instant",
    "parse_slot_key",
    "parse_time_of_day",
    "resolve_timezone",
]
