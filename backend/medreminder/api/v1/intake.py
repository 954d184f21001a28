"""Intake recording API endpoints."""
from __future__ import annotations

import logging
from datetime import UTC, date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.api import deps
from medreminder.integrations.notifier import NotificationClient
from medreminder.integrations.sync_client import SyncClient
from medreminder.schemas.intake import (
    IntakeOutcomeRead,
    IntakeRead,
    IntakeRecordRequest,
    IntakeRescheduleRead,
    IntakeRescheduleRequest,
    IntakeStatusRead,
)
from medreminder.schemas.schedule import PendingSyncResult
from medreminder.services import intake_service, notification_sync_service, status_service
from medreminder.services.trigger_service import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medications/{medication_id}/intakes")
sync_router = APIRouter(prefix="/intakes")


@router.get("", response_model=list[IntakeRead], summary="List intake history")
async def list_intakes(
    medication_id: int,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> list[IntakeRead]:
    events = await intake_service.list_intakes(session, medication_id=medication_id)
    return [IntakeRead.model_validate(obj) for obj in events]


@router.post(
    "",
    response_model=IntakeOutcomeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record taken or skipped",
)
async def record_intake(
    medication_id: int,
    payload: IntakeRecordRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    sync_client: Annotated[SyncClient | None, Depends(deps.get_sync_client)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
) -> IntakeOutcomeRead:
    try:
        outcome = await intake_service.record_intake(
            session,
            medication_id,
            payload.planned_time,
            intake_service.IntakeDecision(payload.decision),
            datetime.now(UTC),
            sync_client=sync_client,
            dose_taken=payload.dose_taken,
            notes=payload.notes,
            tz=tz,
        )
    except ValueError as exc:
        code = status.HTTP_404_NOT_FOUND if "not found" in str(exc) else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(exc)) from exc
    return IntakeOutcomeRead(
        intake_id=outcome.intake_id, synced=outcome.synced, warning=outcome.warning
    )


@router.post(
    "/reschedule",
    response_model=IntakeRescheduleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Move an occurrence",
)
async def reschedule_intake(
    medication_id: int,
    payload: IntakeRescheduleRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
) -> IntakeRescheduleRead:
    now = datetime.now(UTC)
    try:
        outcome = await intake_service.reschedule_intake(
            session,
            medication_id,
            payload.planned_time,
            payload.new_date,
            payload.new_time,
            now,
            tz=tz,
        )
    except ValueError as exc:
        code = status.HTTP_404_NOT_FOUND if "not found" in str(exc) else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=code, detail=str(exc)) from exc
    try:
        await notification_sync_service.resync_from_store(session, notifier, now)
    except notification_sync_service.ResyncAbortedError:
        logger.warning("Reminders not rebuilt after reschedule", exc_info=True)
    return IntakeRescheduleRead(original_id=outcome.original_id, moved_id=outcome.moved_id)


@router.get("/status", response_model=IntakeStatusRead, summary="Status for a day")
async def get_status(
    medication_id: int,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
    day: Annotated[date | None, Query()] = None,
) -> IntakeStatusRead:
    target = day or local_today(datetime.now(UTC), tz)
    resolved = await status_service.status_for(session, medication_id, target, tz=tz)
    return IntakeStatusRead(
        medication_id=medication_id, day=target, status=resolved.status, time=resolved.time
    )


@sync_router.post("/sync", response_model=PendingSyncResult, summary="Retry unsynced intakes")
async def sync_pending(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    sync_client: Annotated[SyncClient, Depends(deps.require_sync_client)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
) -> PendingSyncResult:
    synced = await intake_service.sync_pending_intakes(session, sync_client, tz=tz)
    return PendingSyncResult(synced=synced)
