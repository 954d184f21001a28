"""Tests for reconciling reminders with the notification service."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any
from zoneinfo import ZoneInfo

import pytest

from medreminder.integrations.notifier import (
    InMemoryNotificationClient,
    NotificationClientError,
    ScheduledTrigger,
)
from medreminder.db.session import get_sessionmaker
from medreminder.models.medication import Medication, MedicationForm
from medreminder.schemas.medication import MedicationCreate
from medreminder.services import intake_service, medication_service
from medreminder.services.notification_sync_service import (
    ResyncAbortedError,
    occurrence_from_notification,
    register_listeners,
    resync,
    resync_from_store,
)
from medreminder.services.schedule_service import Occurrence

pytestmark = pytest.mark.asyncio

UTC_ZONE = ZoneInfo("UTC")
NOW = datetime(2025, 6, 2, 8, 0, tzinfo=UTC)


class FlakyNotifier(InMemoryNotificationClient):
    """Refuses to schedule triggers whose body mentions ``refuse_at``."""

    def __init__(self, refuse_at: str | None = None, fail_cancel: bool = False) -> None:
        super().__init__()
        self.refuse_at = refuse_at
        self.fail_cancel = fail_cancel

    async def schedule_at(self, fire_at, *, title, body, data) -> str:
        if self.refuse_at and body.endswith(self.refuse_at):
            raise NotificationClientError("quota exceeded")
        return await super().schedule_at(fire_at, title=title, body=body, data=data)

    async def cancel_all(self) -> None:
        if self.fail_cancel:
            raise NotificationClientError("permission revoked")
        await super().cancel_all()


def _aspirin() -> Medication:
    return Medication(
        id=1,
        name="Aspirin",
        form=MedicationForm.TABLET,
        start_date=date(2025, 6, 2),
        schedule_type="daily",
        times_list=["09:00", "21:00"],
    )


async def _resync(notifier, medications, **kwargs: Any) -> int:
    return await resync(
        notifier,
        medications,
        NOW,
        tz=UTC_ZONE,
        horizon_days=56,
        lead_minutes=10,
        **kwargs,
    )


def _snapshot(triggers: list[ScheduledTrigger]) -> list[tuple]:
    return [(item.fire_at, item.title, item.body, item.data) for item in triggers]


async def test_resync_schedules_messages_with_correlation_data() -> None:
    notifier = InMemoryNotificationClient()
    assert await _resync(notifier, [_aspirin()]) == 2

    triggers = await notifier.list_scheduled()
    assert triggers[0].title == "Time for Aspirin"
    assert triggers[0].body == "In 10 minutes take a tablet at 09:00"
    assert triggers[0].data == {
        "medication_id": 1,
        "time_of_day": "09:00",
        "occurs_on": "2025-06-02",
    }


async def test_resync_is_idempotent() -> None:
    notifier = InMemoryNotificationClient()
    await _resync(notifier, [_aspirin()])
    once = _snapshot(await notifier.list_scheduled())
    await _resync(notifier, [_aspirin()])
    assert _snapshot(await notifier.list_scheduled()) == once


async def test_resync_removes_triggers_of_deleted_medications() -> None:
    notifier = InMemoryNotificationClient()
    await _resync(notifier, [_aspirin()])
    assert await _resync(notifier, []) == 0
    assert await notifier.list_scheduled() == []


async def test_single_schedule_failure_is_skipped() -> None:
    notifier = FlakyNotifier(refuse_at="21:00")
    assert await _resync(notifier, [_aspirin()]) == 1
    remaining = await notifier.list_scheduled()
    assert [item.data["time_of_day"] for item in remaining] == ["09:00"]


async def test_cancel_failure_aborts_before_scheduling() -> None:
    notifier = FlakyNotifier(fail_cancel=True)
    with pytest.raises(ResyncAbortedError):
        await _resync(notifier, [_aspirin()])
    assert await notifier.list_scheduled() == []


async def test_extra_occurrences_get_their_own_reminder() -> None:
    notifier = InMemoryNotificationClient()
    moved = Occurrence(1, date(2025, 6, 3), "14:00")
    assert await _resync(notifier, [_aspirin()], extra_occurrences=[moved]) == 3


async def test_delivered_notification_maps_back_to_its_occurrence() -> None:
    notifier = InMemoryNotificationClient()
    received: list[Occurrence | None] = []
    notifier.add_received_listener(
        lambda trigger: received.append(occurrence_from_notification(trigger.data))
    )
    await _resync(notifier, [_aspirin()])

    delivered = await notifier.deliver_due(datetime(2025, 6, 2, 9, 0, tzinfo=UTC))

    assert len(delivered) == 1
    assert received == [Occurrence(1, date(2025, 6, 2), "09:00")]
    assert len(await notifier.list_scheduled()) == 1


async def test_malformed_notification_data_is_ignored() -> None:
    assert occurrence_from_notification(None) is None
    assert occurrence_from_notification({"medication_id": "x"}) is None
    assert (
        occurrence_from_notification(
            {"medication_id": 1, "occurs_on": "2025-06-02", "time_of_day": "9am"}
        )
        is None
    )


async def test_suppressed_daily_slot_falls_through_to_next_day() -> None:
    notifier = InMemoryNotificationClient()
    moved_away = Occurrence(1, date(2025, 6, 2), "09:00")
    await _resync(notifier, [_aspirin()], suppressed_occurrences=[moved_away])

    slots = [
        (item.data["occurs_on"], item.data["time_of_day"])
        for item in await notifier.list_scheduled()
    ]
    assert slots == [("2025-06-02", "21:00"), ("2025-06-03", "09:00")]


async def test_rescheduled_slot_loses_its_regular_reminder(
    reset_database, db_url: str
) -> None:
    now = datetime(2025, 6, 2, 0, 5, tzinfo=UTC)
    notifier = InMemoryNotificationClient()
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        medication = await medication_service.create_medication(
            session,
            MedicationCreate(
                name="Aspirin",
                form="tablet",
                start_date=date(2025, 6, 1),
                times_list=["09:00"],
            ),
        )
        await intake_service.reschedule_intake(
            session, medication.id, "09:00", date(2025, 6, 2), "15:00", now, tz=UTC_ZONE
        )

        moved_away = await intake_service.moved_away_occurrences(session, now, tz=UTC_ZONE)
        assert moved_away == [Occurrence(medication.id, date(2025, 6, 2), "09:00")]

        assert await resync_from_store(session, notifier, now) == 2

    slots = [
        (item.data["occurs_on"], item.data["time_of_day"])
        for item in await notifier.list_scheduled()
    ]
    assert slots == [("2025-06-02", "15:00"), ("2025-06-03", "09:00")]


async def test_registered_listeners_log_delivered_and_opened(caplog) -> None:
    notifier = InMemoryNotificationClient()
    register_listeners(notifier)
    await _resync(notifier, [_aspirin()])

    with caplog.at_level("INFO", logger="medreminder.services.notification_sync_service"):
        delivered = await notifier.deliver_due(datetime(2025, 6, 2, 9, 0, tzinfo=UTC))
        await notifier.open(delivered[0])

    messages = [record.getMessage() for record in caplog.records]
    assert "Reminder delivered for medication 1 (2025-06-02 09:00)" in messages
    assert "Reminder opened for medication 1 (2025-06-02 09:00)" in messages
