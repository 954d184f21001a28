"""Local identity and caregiver schemas."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LocalUserUpdate(BaseModel):
    """Credentials issued by the sync service at sign-in."""

    patient_uuid: str = Field(min_length=1, max_length=128)
    patient_password: str = Field(min_length=1, max_length=255)


class LocalUserRead(BaseModel):
    """Local identity without its password."""

    id: int
    patient_uuid: str
    relation_uuid: str | None = None

    model_config = ConfigDict(from_attributes=True)


class FriendCodeRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def _clean_code(cls, value: str) -> str:
        value = value.strip()
        if len(value) != 6 or not value.isdigit():
            raise ValueError("Invitation code must be exactly 6 digits")
        return value


class PatientDayEntryRead(BaseModel):
    medication_id: int | None = None
    name: str
    form: str
    times: list[str]
    status: Literal["pending", "taken", "skipped"]
    time: str | None = None


class PatientDayRead(BaseModel):
    day: date
    patient: dict[str, Any] = Field(default_factory=dict)
    entries: list[PatientDayEntryRead] = Field(default_factory=list)
