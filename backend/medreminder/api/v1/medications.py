"""Medication API endpoints."""
from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.api import deps
from medreminder.integrations.notifier import NotificationClient
from medreminder.integrations.sync_client import SyncClient
from medreminder.schemas.medication import (
    MedicationCreate,
    MedicationDeleteResult,
    MedicationRead,
    MedicationServerIdUpdate,
    MedicationUpdate,
)
from medreminder.services import medication_service, notification_sync_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _resync_quietly(
    session: AsyncSession, notifier: NotificationClient, now: datetime
) -> int | None:
    """Resync after a store change; the change itself already succeeded."""
    try:
        return await notification_sync_service.resync_from_store(session, notifier, now)
    except notification_sync_service.ResyncAbortedError:
        logger.warning("Reminders not rebuilt after medication change", exc_info=True)
        return None


@router.get("", response_model=list[MedicationRead], summary="List medications")
async def list_medications(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> list[MedicationRead]:
    medications = await medication_service.list_medications(session)
    return [MedicationRead.model_validate(obj) for obj in medications]


@router.get("/{medication_id}", response_model=MedicationRead, summary="Get medication")
async def get_medication(
    medication_id: int,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> MedicationRead:
    medication = await medication_service.get_medication(session, medication_id)
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    return MedicationRead.model_validate(medication)


@router.post(
    "",
    response_model=MedicationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add medication",
)
async def create_medication(
    payload: MedicationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
) -> MedicationRead:
    try:
        medication = await medication_service.create_medication(session, payload)
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Medication already exists"
        ) from exc
    await _resync_quietly(session, notifier, datetime.now(UTC))
    return MedicationRead.model_validate(medication)


@router.patch("/{medication_id}", response_model=MedicationRead, summary="Update medication")
async def update_medication(
    medication_id: int,
    payload: MedicationUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
) -> MedicationRead:
    medication = await medication_service.get_medication(session, medication_id)
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    now = datetime.now(UTC)
    try:
        updated = await medication_service.update_medication(
            session, medication=medication, payload=payload, now=now
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    await _resync_quietly(session, notifier, now)
    return MedicationRead.model_validate(updated)


@router.put(
    "/{medication_id}/server-id",
    response_model=MedicationRead,
    summary="Record server id",
)
async def set_server_id(
    medication_id: int,
    payload: MedicationServerIdUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> MedicationRead:
    medication = await medication_service.get_medication(session, medication_id)
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    try:
        linked = await medication_service.mark_medication_synced(
            session, medication=medication, server_id=payload.server_id
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Server id already in use"
        ) from exc
    return MedicationRead.model_validate(linked)


@router.delete(
    "/{medication_id}",
    response_model=MedicationDeleteResult,
    summary="Delete medication",
)
async def delete_medication(
    medication_id: int,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
    sync_client: Annotated[SyncClient | None, Depends(deps.get_sync_client)],
) -> MedicationDeleteResult:
    medication = await medication_service.get_medication(session, medication_id)
    if medication is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Medication not found")
    now = datetime.now(UTC)
    outcome = await medication_service.delete_medication(
        session, medication=medication, now=now, sync_client=sync_client
    )
    scheduled = await _resync_quietly(session, notifier, now)
    return MedicationDeleteResult(
        local_deleted=outcome.local_deleted,
        remote_deleted=outcome.remote_deleted,
        warning=outcome.warning,
        triggers_scheduled=scheduled,
    )
