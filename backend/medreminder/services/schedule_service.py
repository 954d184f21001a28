"""Builds the set of pending reminder triggers for all medications."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from medreminder.models.medication import Medication
from medreminder.services.recurrence_service import (
    DEFAULT_HORIZON_DAYS,
    Daily,
    occurrences_between,
)
from medreminder.services.trigger_service import (
    DEFAULT_LEAD_MINUTES,
    compute_trigger,
    local_today,
    parse_time_of_day,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Occurrence:
    """One scheduled instance of taking a medication."""

    medication_id: int
    occurs_on: date
    time_of_day: str


@dataclass(slots=True, frozen=True)
class TriggerCandidate:
    """A reminder the notification service should hold."""

    medication_id: int
    medication_name: str
    form: str
    occurs_on: date
    time_of_day: str
    fire_at: datetime

    @property
    def occurrence(self) -> Occurrence:
        return Occurrence(self.medication_id, self.occurs_on, self.time_of_day)

    def sort_key(self) -> tuple[datetime, int, str]:
        return (self.fire_at, self.medication_id, self.time_of_day)


def _form_value(medication: Medication) -> str:
    form = medication.form
    return getattr(form, "value", form) or "other"


def _candidates_for_slot(
    medication: Medication,
    time_of_day: str,
    *,
    today: date,
    now: datetime,
    tz: ZoneInfo,
    horizon_days: int,
    lead_minutes: int,
    suppressed: frozenset[tuple[int, date, str]] = frozenset(),
) -> list[TriggerCandidate]:
    rule = medication.recurrence
    last = today + timedelta(days=horizon_days - 1)
    found: list[TriggerCandidate] = []
    for occurs_on in occurrences_between(
        rule, today, last, medication.start_date, medication.end_date
    ):
        if (medication.id, occurs_on, time_of_day) in suppressed:
            continue
        fire_at = compute_trigger(occurs_on, time_of_day, lead_minutes, now, tz)
        if fire_at is None:
            continue
        found.append(
            TriggerCandidate(
                medication_id=medication.id,
                medication_name=medication.name,
                form=_form_value(medication),
                occurs_on=occurs_on,
                time_of_day=time_of_day,
                fire_at=fire_at,
            )
        )
        # One upcoming reminder per daily slot; the next resync produces the next one.
        if isinstance(rule, Daily):
            break
    return found


def build_schedule(
    medications: Sequence[Medication],
    now: datetime,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
    *,
    tz: ZoneInfo,
    lead_minutes: int = DEFAULT_LEAD_MINUTES,
    extra_occurrences: Iterable[Occurrence] = (),
    suppressed_occurrences: Iterable[Occurrence] = (),
) -> list[TriggerCandidate]:
    """Return every pending trigger within ``horizon_days`` of local today.

    ``extra_occurrences`` add ad-hoc slots; ``suppressed_occurrences`` remove
    slots that were moved away, including from the extras.

    The result is ordered by fire time, then medication id and time of day, so
    identical inputs always produce an identical list.
    """

    if horizon_days <= 0:
        return []
    today = local_today(now, tz)
    suppressed = frozenset(
        (item.medication_id, item.occurs_on, item.time_of_day) for item in suppressed_occurrences
    )
    seen: set[tuple[int, date, str]] = set(suppressed)
    candidates: list[TriggerCandidate] = []

    def _add(candidate: TriggerCandidate) -> None:
        key = (candidate.medication_id, candidate.occurs_on, candidate.time_of_day)
        if key not in seen:
            seen.add(key)
            candidates.append(candidate)

    by_id: dict[int, Medication] = {}
    for medication in medications:
        by_id[medication.id] = medication
        for time_of_day in medication.times_list or []:
            if parse_time_of_day(time_of_day) is None:
                logger.debug(
                    "Skipping invalid time %r for medication %s", time_of_day, medication.id
                )
                continue
            for candidate in _candidates_for_slot(
                medication,
                time_of_day,
                today=today,
                now=now,
                tz=tz,
                horizon_days=horizon_days,
                lead_minutes=lead_minutes,
                suppressed=suppressed,
            ):
                _add(candidate)

    for occurrence in extra_occurrences:
        medication = by_id.get(occurrence.medication_id)
        if medication is None:
            continue
        fire_at = compute_trigger(
            occurrence.occurs_on, occurrence.time_of_day, lead_minutes, now, tz
        )
        if fire_at is None:
            continue
        _add(
            TriggerCandidate(
                medication_id=medication.id,
                medication_name=medication.name,
                form=_form_value(medication),
                occurs_on=occurrence.occurs_on,
                time_of_day=occurrence.time_of_day,
                fire_at=fire_at,
            )
        )

    candidates.sort(key=TriggerCandidate.sort_key)
    return candidates


__all__ = ["Occurrence", "TriggerCandidate", "build_schedule"]
