"""Intake history model."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, CheckConstraint, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medreminder.db.base import Base
from medreminder.db.types import UTCDateTime

if TYPE_CHECKING:  # pragma: no cover - typing only
    from medreminder.models.medication import Medication


class IntakeEvent(Base):
    """A recorded decision (taken, skipped or moved) for one occurrence."""

    __tablename__ = "intake_history"
    __table_args__ = (
        CheckConstraint("NOT (taken AND skipped)", name="ck_intake_history_decision"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    server_id: Mapped[int | None] = mapped_column(Integer, unique=True)
    medication_id: Mapped[int] = mapped_column(
        ForeignKey("medications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    planned_time: Mapped[str] = mapped_column(String(16), nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    taken: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    skipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dose_taken: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)
    synced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )

    medication: Mapped["Medication"] = relationship("Medication", back_populates="intakes")

    @property
    def resolved(self) -> bool:
        return self.taken or self.skipped
