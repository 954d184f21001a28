"""Medication model."""
from __future__ import annotations

import enum
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, CheckConstraint, Date, Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medreminder.db.base import Base
from medreminder.models.mixins import TimestampMixin
from medreminder.services.recurrence_service import (
    RecurrenceRule,
    ScheduleType,
    rule_from_columns,
)

if TYPE_CHECKING:  # pragma: no cover - typing only
    from medreminder.models.intake_event import IntakeEvent


class MedicationForm(str, enum.Enum):
    """Dosage forms offered when adding a medication."""

    TABLET = "tablet"
    DROP = "drop"
    SPRAY = "spray"
    OTHER = "other"


class Medication(TimestampMixin, Base):
    """A medication with its dosing schedule."""

    __tablename__ = "medications"
    __table_args__ = (
        CheckConstraint(
            "interval_days IS NULL OR (interval_days > 0 AND interval_days <= 30)",
            name="ck_medications_interval_days",
        ),
        CheckConstraint(
            "end_date IS NULL OR start_date <= end_date",
            name="ck_medications_date_range",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int | None] = mapped_column(Integer, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    form: Mapped[MedicationForm] = mapped_column(
        Enum(MedicationForm, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
    )
    instructions: Mapped[str | None] = mapped_column(Text)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    schedule_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ScheduleType.DAILY.value
    )
    weekly_days: Mapped[list[str] | None] = mapped_column(JSON)
    interval_days: Mapped[int | None] = mapped_column(Integer)
    times_list: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    intakes: Mapped[list["IntakeEvent"]] = relationship(
        "IntakeEvent",
        back_populates="medication",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def recurrence(self) -> RecurrenceRule:
        return rule_from_columns(self.schedule_type, self.weekly_days, self.interval_days)
