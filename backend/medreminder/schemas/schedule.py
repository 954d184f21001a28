"""Reminder schedule schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ScheduledTriggerRead(BaseModel):
    """A reminder currently registered with the notification service."""

    trigger_id: str
    fire_at: datetime
    title: str
    body: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class ResyncResult(BaseModel):
    scheduled: int
    triggers: list[ScheduledTriggerRead] = Field(default_factory=list)


class PendingSyncResult(BaseModel):
    synced: int


class DayEntryRead(BaseModel):
    medication_id: int
    name: str
    form: str
    times: list[str]
    status: Literal["pending", "taken", "skipped"]
    time: str | None = None


class DayScheduleRead(BaseModel):
    """Medications due on one local day and their intake status."""

    day: date
    entries: list[DayEntryRead] = Field(default_factory=list)
