"""Initial medication reminder schema.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

_FORMS = ("tablet", "drop", "spray", "other")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "medications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("server_id", sa.Integer(), unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column(
            "form",
            sa.Enum(*_FORMS, name="medicationform"),
            nullable=False,
        ),
        sa.Column("instructions", sa.Text()),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date()),
        sa.Column("schedule_type", sa.String(length=32), nullable=False),
        sa.Column("weekly_days", sa.JSON()),
        sa.Column("interval_days", sa.Integer()),
        sa.Column("times_list", sa.JSON(), nullable=False),
        sa.Column("synced", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint(
            "interval_days IS NULL OR (interval_days > 0 AND interval_days <= 30)",
            name="ck_medications_interval_days",
        ),
        sa.CheckConstraint(
            "end_date IS NULL OR start_date <= end_date",
            name="ck_medications_date_range",
        ),
    )

    op.create_table(
        "intake_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("server_id", sa.Integer(), unique=True),
        sa.Column(
            "medication_id",
            sa.Integer(),
            sa.ForeignKey("medications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("planned_time", sa.String(length=16), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("taken", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("skipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("dose_taken", sa.Float()),
        sa.Column("notes", sa.Text()),
        sa.Column("synced", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("NOT (taken AND skipped)", name="ck_intake_history_decision"),
    )
    op.create_index(
        "ix_intake_history_medication_id", "intake_history", ["medication_id"]
    )

    op.create_table(
        "local_user",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("patient_uuid", sa.String(length=128), nullable=False, unique=True),
        sa.Column("patient_password", sa.String(length=255), nullable=False),
        sa.Column("relation_uuid", sa.String(length=128)),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("local_user")
    op.drop_index("ix_intake_history_medication_id", table_name="intake_history")
    op.drop_table("intake_history")
    op.drop_table("medications")
