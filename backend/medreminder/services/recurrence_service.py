"""Recurrence rules and the date evaluator behind reminder scheduling."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Union

from dateutil.rrule import DAILY, WEEKLY, rrule

logger = logging.getLogger(__name__)

WEEKDAY_ABBREVIATIONS: tuple[str, ...] = ("ПН", "ВТ", "СР", "ЧТ", "ПТ", "СБ", "ВС")
DEFAULT_HORIZON_DAYS = 56
MAX_INTERVAL_DAYS = 30


class ScheduleType(str, enum.Enum):
    """Stored tag of a recurrence rule."""

    DAILY = "daily"
    WEEKLY_DAYS = "weekly_days"
    EVERY_X_DAYS = "every_x_days"


@dataclass(slots=True, frozen=True)
class Daily:
    """Every calendar day on or after the start date."""

    schedule_type = ScheduleType.DAILY


@dataclass(slots=True, frozen=True)
class WeeklyDays:
    """Specific weekdays, identified by their abbreviations."""

    days: frozenset[str]

    schedule_type = ScheduleType.WEEKLY_DAYS

    def __post_init__(self) -> None:
        if not self.days:
            raise ValueError("Weekly schedule requires at least one weekday")


@dataclass(slots=True, frozen=True)
class EveryXDays:
    """Every ``interval`` days counted from the start date."""

    interval: int

    schedule_type = ScheduleType.EVERY_X_DAYS

    def __post_init__(self) -> None:
        if not 1 <= self.interval <= MAX_INTERVAL_DAYS:
            raise ValueError(
                f"Interval must be between 1 and {MAX_INTERVAL_DAYS} days"
            )


@dataclass(slots=True, frozen=True)
class NeverMatches:
    """Placeholder for persisted rows whose rule data is unusable.

    ``schedule_type`` is None when the stored tag itself is unknown.
    """

    schedule_type: ScheduleType | None = None


RecurrenceRule = Union[Daily, WeeklyDays, EveryXDays, NeverMatches]


def weekday_abbreviation(target: date) -> str:
    return WEEKDAY_ABBREVIATIONS[target.weekday()]


def build_rule(
    schedule_type: ScheduleType | str,
    *,
    weekly_days: Iterable[str] | None = None,
    interval_days: int | None = None,
) -> RecurrenceRule:
    """Strictly construct a rule; raises ``ValueError`` on mismatched data."""

    kind = ScheduleType(schedule_type)
    if kind is ScheduleType.DAILY:
        if weekly_days or interval_days is not None:
            raise ValueError("Daily schedule takes no weekdays or interval")
        return Daily()
    if kind is ScheduleType.WEEKLY_DAYS:
        if interval_days is not None:
            raise ValueError("Weekly schedule takes no interval")
        days = frozenset(weekly_days or ())
        unknown = days - set(WEEKDAY_ABBREVIATIONS)
        if unknown:
            raise ValueError(f"Unknown weekday abbreviations: {sorted(unknown)}")
        return WeeklyDays(days)
    if weekly_days:
        raise ValueError("Interval schedule takes no weekdays")
    if interval_days is None:
        raise ValueError("Interval schedule requires interval_days")
    return EveryXDays(int(interval_days))


def rule_from_columns(
    schedule_type: str,
    weekly_days: Iterable[str] | None,
    interval_days: int | None,
) -> RecurrenceRule:
    """Leniently rebuild a rule from stored columns.

    Rows written before validation existed (or by another client) may carry
    unknown weekday abbreviations or a broken interval. Those never raise:
    unknown abbreviations simply never match and an unusable rule matches
    nothing at all.
    """

    try:
        kind = ScheduleType(schedule_type)
    except ValueError:
        logger.warning("Unknown schedule type %r; rule will never match", schedule_type)
        return NeverMatches()
    if kind is ScheduleType.DAILY:
        return Daily()
    if kind is ScheduleType.WEEKLY_DAYS:
        days = frozenset(day for day in (weekly_days or ()) if isinstance(day, str))
        if not days:
            return NeverMatches(kind)
        return WeeklyDays(days)
    try:
        return EveryXDays(int(interval_days))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return NeverMatches(kind)


def matches(
    rule: RecurrenceRule,
    target: date,
    start_date: date,
    end_date: date | None = None,
) -> bool:
    """Return True when ``target`` is a scheduled occurrence day."""

    if target < start_date:
        return False
    if end_date is not None and target > end_date:
        return False
    if isinstance(rule, Daily):
        return True
    if isinstance(rule, WeeklyDays):
        return weekday_abbreviation(target) in rule.days
    if isinstance(rule, EveryXDays):
        elapsed = (target - start_date).days
        return elapsed >= 0 and elapsed % rule.interval == 0
    return False


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _expand(rule: RecurrenceRule, start_date: date, until: date) -> rrule | None:
    """Map a rule onto an ``rrule`` anchored at the medication's start date."""

    dtstart = _midnight(start_date)
    if isinstance(rule, Daily):
        return rrule(DAILY, dtstart=dtstart, until=_midnight(until))
    if isinstance(rule, EveryXDays):
        return rrule(DAILY, interval=rule.interval, dtstart=dtstart, until=_midnight(until))
    if isinstance(rule, WeeklyDays):
        # Unknown abbreviations never match.
        weekdays = sorted(
            WEEKDAY_ABBREVIATIONS.index(day) for day in rule.days if day in WEEKDAY_ABBREVIATIONS
        )
        if not weekdays:
            return None
        return rrule(WEEKLY, byweekday=weekdays, dtstart=dtstart, until=_midnight(until))
    return None


def occurrences_between(
    rule: RecurrenceRule,
    first: date,
    last: date,
    start_date: date,
    end_date: date | None = None,
) -> Iterator[date]:
    """Yield matching days in the inclusive window ``[first, last]``."""

    if end_date is not None:
        last = min(last, end_date)
    first = max(first, start_date)
    if first > last:
        return
    recurrence = _expand(rule, start_date, last)
    if recurrence is None:
        return
    for moment in recurrence.between(_midnight(first), _midnight(last), inc=True):
        yield moment.date()


def next_occurrence_on_or_after(
    rule: RecurrenceRule,
    from_date: date,
    start_date: date,
    end_date: date | None = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> date | None:
    """Find the first occurrence within ``horizon_days`` of ``from_date``."""

    if horizon_days <= 0:
        return None
    last = from_date + timedelta(days=horizon_days - 1)
    return next(
        occurrences_between(rule, from_date, last, start_date, end_date), None
    )


__all__ = [
    "DEFAULT_HORIZON_DAYS",
    "Daily",
    "EveryXDays",
    "NeverMatches",
    "RecurrenceRule",
    "ScheduleType",
    "WEEKDAY_ABBREVIATIONS",
    "WeeklyDays",
    "build_rule",
    "matches",
    "next_occurrence_on_or_after",
    "occurrences_between",
    "rule_from_columns",
    "weekday_abbreviation",
]
