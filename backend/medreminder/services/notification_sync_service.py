"""Reconciles the reminder schedule with the device notification service."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.core.config import get_settings
from medreminder.integrations.notifier import (
    NotificationClient,
    NotificationClientError,
    ScheduledTrigger,
)
from medreminder.models.medication import Medication
from medreminder.services import intake_service, medication_service
from medreminder.services.schedule_service import (
    Occurrence,
    TriggerCandidate,
    build_schedule,
)
from medreminder.services.trigger_service import parse_time_of_day, resolve_timezone

logger = logging.getLogger(__name__)

_FORM_LABELS = {
    "tablet": "a tablet",
    "drop": "drops",
    "spray": "a spray",
    "other": "your medication",
}


class ResyncAbortedError(RuntimeError):
    """Existing triggers could not be cancelled; nothing new was scheduled."""


def build_reminder_message(
    candidate: TriggerCandidate, *, lead_minutes: int
) -> tuple[str, str]:
    title = f"Time for {candidate.medication_name}"
    form = _FORM_LABELS.get(candidate.form, _FORM_LABELS["other"])
    body = f"In {lead_minutes} minutes take {form} at {candidate.time_of_day}"
    return title, body


def correlation_data(candidate: TriggerCandidate) -> dict[str, Any]:
    return {
        "medication_id": candidate.medication_id,
        "time_of_day": candidate.time_of_day,
        "occurs_on": candidate.occurs_on.isoformat(),
    }


def occurrence_from_notification(data: Mapping[str, Any] | None) -> Occurrence | None:
    """Match a delivered notification's payload back to its occurrence."""

    if not data:
        return None
    try:
        medication_id = int(data["medication_id"])
        occurs_on = date.fromisoformat(str(data["occurs_on"]))
        time_of_day = str(data["time_of_day"])
    except (KeyError, TypeError, ValueError):
        return None
    if parse_time_of_day(time_of_day) is None:
        return None
    return Occurrence(medication_id, occurs_on, time_of_day)


def _log_delivered(trigger: ScheduledTrigger) -> None:
    occurrence = occurrence_from_notification(trigger.data)
    if occurrence is None:
        logger.debug("Delivered trigger %s carries no occurrence", trigger.trigger_id)
        return
    logger.info(
        "Reminder delivered for medication %s (%s %s)",
        occurrence.medication_id,
        occurrence.occurs_on.isoformat(),
        occurrence.time_of_day,
    )


def _log_opened(trigger: ScheduledTrigger) -> None:
    occurrence = occurrence_from_notification(trigger.data)
    if occurrence is None:
        logger.debug("Opened trigger %s carries no occurrence", trigger.trigger_id)
        return
    logger.info(
        "Reminder opened for medication %s (%s %s)",
        occurrence.medication_id,
        occurrence.occurs_on.isoformat(),
        occurrence.time_of_day,
    )


def register_listeners(notifier: NotificationClient) -> None:
    """Attach the received and opened handlers to ``notifier``."""

    notifier.add_received_listener(_log_delivered)
    notifier.add_opened_listener(_log_opened)


async def resync(
    notifier: NotificationClient,
    medications: Sequence[Medication],
    now: datetime,
    *,
    tz: ZoneInfo,
    horizon_days: int,
    lead_minutes: int,
    extra_occurrences: Iterable[Occurrence] = (),
    suppressed_occurrences: Iterable[Occurrence] = (),
) -> int:
    """Cancel every trigger, then schedule the freshly built set.

    Returns the number of triggers scheduled. A failed cancellation aborts
    the resync; a failure on an individual trigger is logged and skipped.
    """

    try:
        await notifier.cancel_all()
    except NotificationClientError as exc:
        logger.exception("Failed to cancel scheduled reminders; resync aborted")
        raise ResyncAbortedError("Could not cancel existing reminders") from exc

    candidates = build_schedule(
        medications,
        now,
        horizon_days,
        tz=tz,
        lead_minutes=lead_minutes,
        extra_occurrences=extra_occurrences,
        suppressed_occurrences=suppressed_occurrences,
    )
    scheduled = 0
    for candidate in candidates:
        title, body = build_reminder_message(candidate, lead_minutes=lead_minutes)
        try:
            await notifier.schedule_at(
                candidate.fire_at,
                title=title,
                body=body,
                data=correlation_data(candidate),
            )
        except NotificationClientError:
            logger.warning(
                "Failed to schedule reminder for medication %s at %s",
                candidate.medication_id,
                candidate.fire_at.isoformat(),
                exc_info=True,
            )
            continue
        scheduled += 1

    logger.info(
        "Resync scheduled %s of %s reminders for %s medications",
        scheduled,
        len(candidates),
        len(medications),
    )
    return scheduled


async def resync_from_store(
    session: AsyncSession,
    notifier: NotificationClient,
    now: datetime,
) -> int:
    """Rebuild reminders from the local store using configured defaults."""

    settings = get_settings()
    tz = resolve_timezone(settings.local_timezone)
    medications = await medication_service.list_medications(session)
    extra = await intake_service.pending_reschedules(session, now, tz=tz)
    moved_away = await intake_service.moved_away_occurrences(session, now, tz=tz)
    return await resync(
        notifier,
        medications,
        now,
        tz=tz,
        horizon_days=settings.schedule_horizon_days,
        lead_minutes=settings.reminder_lead_minutes,
        extra_occurrences=extra,
        suppressed_occurrences=moved_away,
    )


__all__ = [
    "ResyncAbortedError",
    "build_reminder_message",
    "correlation_data",
    "occurrence_from_notification",
    "register_listeners",
    "resync",
    "resync_from_store",
]
