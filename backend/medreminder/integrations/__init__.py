"""Integration shortcuts."""

from .notifier import (
    InMemoryNotificationClient,
    NotificationClient,
    NotificationClientError,
    ScheduledTrigger,
)
from .sync_client import SyncClient, SyncClientError, to_utc_iso

__all__ = [
    "InMemoryNotificationClient",
    "NotificationClient",
    "NotificationClientError",
    "ScheduledTrigger",
    "SyncClient",
    "SyncClientError",
    "to_utc_iso",
]
