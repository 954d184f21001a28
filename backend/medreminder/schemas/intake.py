"""Intake history schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from medreminder.services.trigger_service import parse_slot_key, parse_time_of_day


def _validate_planned_time(value: str) -> str:
    value = value.strip()
    if parse_time_of_day(value) is None and parse_slot_key(value) is None:
        raise ValueError("Invalid time format. Use HH:MM or YYYY-MM-DD HH:MM")
    return value


class IntakeRecordRequest(BaseModel):
    """Mark an occurrence as taken or skipped."""

    planned_time: str = Field(min_length=1, max_length=16)
    decision: Literal["taken", "skipped"]
    dose_taken: float | None = Field(default=None, ge=0)
    notes: str | None = None

    @field_validator("planned_time")
    @classmethod
    def _check_planned_time(cls, value: str) -> str:
        return _validate_planned_time(value)


class IntakeRescheduleRequest(BaseModel):
    """Move an occurrence to another local date and time."""

    planned_time: str = Field(min_length=1, max_length=16)
    new_date: date
    new_time: str

    @field_validator("planned_time")
    @classmethod
    def _check_planned_time(cls, value: str) -> str:
        return _validate_planned_time(value)

    @field_validator("new_time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        value = value.strip()
        if parse_time_of_day(value) is None:
            raise ValueError("Invalid time format. Use HH:MM (08:00, 21:30)")
        return value


class IntakeRead(BaseModel):
    """Serialized intake event."""

    id: int
    server_id: int | None = None
    medication_id: int
    planned_time: str
    recorded_at: datetime
    taken: bool
    skipped: bool
    dose_taken: float | None = None
    notes: str | None = None
    synced: bool

    model_config = ConfigDict(from_attributes=True)


class IntakeOutcomeRead(BaseModel):
    """Result of recording an intake; ``warning`` carries soft sync failures."""

    intake_id: int
    synced: bool
    warning: str | None = None


class IntakeRescheduleRead(BaseModel):
    original_id: int
    moved_id: int


class IntakeStatusRead(BaseModel):
    """Display status of a medication for one local day."""

    medication_id: int
    day: date
    status: Literal["pending", "taken", "skipped"]
    time: str | None = None
