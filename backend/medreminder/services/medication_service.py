"""Medication store services."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.integrations.sync_client import SyncClient, SyncClientError
from medreminder.models.intake_event import IntakeEvent
from medreminder.models.medication import Medication
from medreminder.schemas.medication import MedicationCreate, MedicationUpdate
from medreminder.services.recurrence_service import ScheduleType, build_rule

logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = ("schedule_type", "weekly_days", "interval_days")


@dataclass(slots=True, frozen=True)
class DeletionOutcome:
    """Local deletion always completes; remote deletion is best effort."""

    local_deleted: bool
    remote_deleted: bool | None
    warning: str | None = None


async def list_medications(session: AsyncSession) -> list[Medication]:
    stmt: Select[tuple[Medication]] = select(Medication).order_by(Medication.id.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_medication(session: AsyncSession, medication_id: int) -> Medication | None:
    return await session.get(Medication, medication_id)


async def create_medication(
    session: AsyncSession,
    payload: MedicationCreate,
) -> Medication:
    medication = Medication(
        server_id=payload.server_id,
        name=payload.name,
        form=payload.form,
        instructions=payload.instructions,
        start_date=payload.start_date,
        end_date=payload.end_date,
        schedule_type=payload.schedule_type.value,
        weekly_days=list(payload.weekly_days) if payload.weekly_days else None,
        interval_days=payload.interval_days,
        times_list=list(payload.times_list),
        synced=False,
    )
    session.add(medication)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(medication)
    logger.info("Medication %s created (%s)", medication.id, medication.schedule_type)
    return medication


async def purge_future_intakes(
    session: AsyncSession,
    *,
    medication_id: int,
    now: datetime,
) -> int:
    """Delete intake events that have not occurred yet (pending reschedules).

    Does not commit; callers fold the purge into their own transaction.
    """

    stmt = delete(IntakeEvent).where(
        IntakeEvent.medication_id == medication_id,
        IntakeEvent.recorded_at > now,
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


async def update_medication(
    session: AsyncSession,
    *,
    medication: Medication,
    payload: MedicationUpdate,
    now: datetime,
) -> Medication:
    updates = payload.model_dump(exclude_unset=True)

    if any(field in updates for field in _SCHEDULE_FIELDS):
        schedule_type = ScheduleType(updates.get("schedule_type") or medication.schedule_type)
        if schedule_type.value != medication.schedule_type:
            # A new rule type never inherits the old rule's auxiliary data.
            weekly_days = updates.get("weekly_days")
            interval_days = updates.get("interval_days")
        else:
            weekly_days = updates.get("weekly_days", medication.weekly_days)
            interval_days = updates.get("interval_days", medication.interval_days)
        build_rule(schedule_type, weekly_days=weekly_days, interval_days=interval_days)
        updates["schedule_type"] = schedule_type.value
        updates["weekly_days"] = list(weekly_days) if weekly_days else None
        updates["interval_days"] = interval_days

    start_date = updates.get("start_date", medication.start_date)
    end_date = updates.get("end_date", medication.end_date)
    if start_date is None:
        raise ValueError("start_date cannot be cleared")
    if end_date is not None and end_date < start_date:
        raise ValueError("end_date must not be before start_date")
    if "name" in updates and not (updates["name"] or "").strip():
        raise ValueError("Name is required")
    if "form" in updates and updates["form"] is None:
        raise ValueError("Form is required")
    if "times_list" in updates and not updates["times_list"]:
        raise ValueError("At least one time of day is required")

    purged = await purge_future_intakes(session, medication_id=medication.id, now=now)
    if purged:
        logger.info("Purged %s pending intakes before editing medication %s", purged, medication.id)

    for field, value in updates.items():
        setattr(medication, field, value)
    medication.synced = False

    await session.commit()
    await session.refresh(medication)
    return medication


async def mark_medication_synced(
    session: AsyncSession,
    *,
    medication: Medication,
    server_id: int,
) -> Medication:
    """Record the id the sync service assigned and flag the row as synced."""

    medication.server_id = server_id
    medication.synced = True
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(medication)
    logger.info("Medication %s linked to server id %s", medication.id, server_id)
    return medication


async def delete_medication(
    session: AsyncSession,
    *,
    medication: Medication,
    now: datetime,
    sync_client: SyncClient | None = None,
) -> DeletionOutcome:
    """Purge pending intakes, delete locally, then try the remote copy."""

    medication_id = medication.id
    server_id = medication.server_id

    await purge_future_intakes(session, medication_id=medication_id, now=now)
    await session.delete(medication)
    await session.commit()
    logger.info("Medication %s deleted locally", medication_id)

    if server_id is None:
        return DeletionOutcome(local_deleted=True, remote_deleted=None)
    if sync_client is None:
        return DeletionOutcome(
            local_deleted=True,
            remote_deleted=False,
            warning="Deleted on this device only; the server copy may reappear after sign-in.",
        )
    try:
        await sync_client.delete_medication(server_id)
    except SyncClientError as exc:
        logger.warning(
            "Medication %s deleted locally but remote delete of %s failed: %s",
            medication_id,
            server_id,
            exc,
        )
        return DeletionOutcome(
            local_deleted=True,
            remote_deleted=False,
            warning=f"Deleted on this device only; server delete failed: {exc}",
        )
    return DeletionOutcome(local_deleted=True, remote_deleted=True)
