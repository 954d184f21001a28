"""Local identity used for sync service credentials."""
from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from medreminder.db.base import Base
from medreminder.models.mixins import TimestampMixin


class LocalUser(TimestampMixin, Base):
    """The single device user; credentials are sent as HTTP Basic auth."""

    __tablename__ = "local_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_uuid: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    patient_password: Mapped[str] = mapped_column(String(255), nullable=False)
    relation_uuid: Mapped[str | None] = mapped_column(String(128))
