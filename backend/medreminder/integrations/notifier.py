"""Local notification capability used for dose reminders."""

from __future__ import annotations

import abc
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NotificationListener = Callable[["ScheduledTrigger"], Awaitable[None] | None]


class NotificationClientError(RuntimeError):
    """Raised when the platform refuses to schedule or cancel a trigger."""


@dataclass(slots=True)
class ScheduledTrigger:
    """A trigger as known to the notification platform."""

    trigger_id: str
    fire_at: datetime
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)


class NotificationClient(abc.ABC):
    """Schedule/cancel/list surface of the device notification service."""

    def __init__(self) -> None:
        self._received_listeners: list[NotificationListener] = []
        self._opened_listeners: list[NotificationListener] = []

    @abc.abstractmethod
    async def schedule_at(
        self,
        fire_at: datetime,
        *,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> str:
        """Schedule a trigger and return its platform identifier."""

    @abc.abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every trigger scheduled by the application."""

    @abc.abstractmethod
    async def list_scheduled(self) -> list[ScheduledTrigger]:
        """Return the currently scheduled triggers."""

    # ------------------------------------------------------------------
    # Delivery callbacks
    # ------------------------------------------------------------------
    def add_received_listener(self, listener: NotificationListener) -> None:
        self._received_listeners.append(listener)

    def add_opened_listener(self, listener: NotificationListener) -> None:
        self._opened_listeners.append(listener)

    async def _dispatch(
        self, listeners: list[NotificationListener], trigger: ScheduledTrigger
    ) -> None:
        for listener in listeners:
            try:
                result = listener(trigger)
                if result is not None:
                    await result
            except Exception:  # pragma: no cover - listener bugs must not break delivery
                logger.exception("Notification listener failed for %s", trigger.trigger_id)


class InMemoryNotificationClient(NotificationClient):
    """Process-local notification service for tests and local dev."""

    def __init__(self) -> None:
        super().__init__()
        self._triggers: dict[str, ScheduledTrigger] = {}

    async def schedule_at(
        self,
        fire_at: datetime,
        *,
        title: str,
        body: str,
        data: dict[str, Any],
    ) -> str:
        if fire_at.tzinfo is None:
            raise NotificationClientError("Trigger instant must be timezone-aware")
        trigger_id = uuid.uuid4().hex
        self._triggers[trigger_id] = ScheduledTrigger(
            trigger_id=trigger_id,
            fire_at=fire_at.astimezone(UTC),
            title=title,
            body=body,
            data=dict(data),
        )
        return trigger_id

    async def cancel_all(self) -> None:
        self._triggers.clear()

    async def list_scheduled(self) -> list[ScheduledTrigger]:
        return sorted(self._triggers.values(), key=lambda item: item.fire_at)

    async def deliver_due(self, now: datetime) -> list[ScheduledTrigger]:
        """Fire every trigger due at ``now`` and notify received listeners."""

        due = [
            trigger for trigger in await self.list_scheduled() if trigger.fire_at <= now
        ]
        for trigger in due:
            self._triggers.pop(trigger.trigger_id, None)
            await self._dispatch(self._received_listeners, trigger)
        return due

    async def open(self, trigger: ScheduledTrigger) -> None:
        """Simulate the user tapping a delivered notification."""

        await self._dispatch(self._opened_listeners, trigger)


__all__ = [
    "InMemoryNotificationClient",
    "NotificationClient",
    "NotificationClientError",
    "ScheduledTrigger",
]
