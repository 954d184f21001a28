"""Medication schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from medreminder.models.medication import MedicationForm
from medreminder.services.recurrence_service import ScheduleType, build_rule
from medreminder.services.trigger_service import parse_time_of_day


def _validate_times(times: list[str]) -> list[str]:
    cleaned = [item.strip() for item in times]
    if not cleaned:
        raise ValueError("At least one time of day is required")
    for item in cleaned:
        if parse_time_of_day(item) is None:
            raise ValueError(f"Invalid time format: {item}. Use HH:MM")
    if len(set(cleaned)) != len(cleaned):
        raise ValueError("Times of day must be unique")
    return cleaned


class MedicationBase(BaseModel):
    """Shared medication fields."""

    name: str = Field(min_length=1, max_length=255)
    form: MedicationForm
    instructions: str | None = None
    start_date: date
    end_date: date | None = None
    schedule_type: ScheduleType = ScheduleType.DAILY
    weekly_days: list[str] | None = None
    interval_days: int | None = None
    times_list: list[str]

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("times_list")
    @classmethod
    def _check_times(cls, value: list[str]) -> list[str]:
        return _validate_times(value)

    @model_validator(mode="after")
    def _check_schedule(self) -> "MedicationBase":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        build_rule(
            self.schedule_type,
            weekly_days=self.weekly_days,
            interval_days=self.interval_days,
        )
        return self


class MedicationCreate(MedicationBase):
    """Payload for adding a medication."""

    server_id: int | None = None


class MedicationUpdate(BaseModel):
    """Mutable medication fields.

    Schedule fields are replaced as a unit: when any of ``schedule_type``,
    ``weekly_days`` or ``interval_days`` is sent the resulting rule is
    re-validated against the stored values.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    form: MedicationForm | None = None
    instructions: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    schedule_type: ScheduleType | None = None
    weekly_days: list[str] | None = None
    interval_days: int | None = None
    times_list: list[str] | None = None

    @field_validator("times_list")
    @classmethod
    def _check_times(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return value
        return _validate_times(value)


class MedicationRead(BaseModel):
    """Serialized medication."""

    id: int
    server_id: int | None = None
    name: str
    form: MedicationForm
    instructions: str | None = None
    start_date: date
    end_date: date | None = None
    schedule_type: str
    weekly_days: list[str] | None = None
    interval_days: int | None = None
    times_list: list[str]
    synced: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MedicationDeleteResult(BaseModel):
    """Outcome of deleting a medication locally and remotely."""

    local_deleted: bool
    remote_deleted: bool | None = None
    warning: str | None = None
    triggers_scheduled: int | None = None


class MedicationServerIdUpdate(BaseModel):
    """Server id assigned by the sync service after upload."""

    server_id: int = Field(gt=0)
