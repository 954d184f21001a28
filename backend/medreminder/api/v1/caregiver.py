"""Local identity and med friend endpoints."""
from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.api import deps
from medreminder.integrations.sync_client import SyncClient, SyncClientError
from medreminder.schemas.caregiver import (
    FriendCodeRequest,
    LocalUserRead,
    LocalUserUpdate,
    PatientDayEntryRead,
    PatientDayRead,
)
from medreminder.services import caregiver_service, local_user_service
from medreminder.services.trigger_service import local_today

router = APIRouter()


def _bad_gateway(exc: SyncClientError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.get("/profile", response_model=LocalUserRead, summary="Local identity")
async def get_profile(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> LocalUserRead:
    user = await local_user_service.get_local_user(session)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Local user not found")
    return LocalUserRead.model_validate(user)


@router.put("/profile", response_model=LocalUserRead, summary="Save local identity")
async def save_profile(
    payload: LocalUserUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> LocalUserRead:
    try:
        user = await local_user_service.save_local_user(
            session,
            patient_uuid=payload.patient_uuid,
            patient_password=payload.patient_password,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return LocalUserRead.model_validate(user)


@router.post("/friends/invitation", summary="Create invitation code")
async def create_invitation(
    sync_client: Annotated[SyncClient, Depends(deps.require_sync_client)],
) -> dict[str, Any]:
    try:
        return await sync_client.create_invitation()
    except SyncClientError as exc:
        raise _bad_gateway(exc) from exc


@router.post("/friends", response_model=LocalUserRead, summary="Link med friend")
async def link_friend(
    payload: FriendCodeRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    sync_client: Annotated[SyncClient, Depends(deps.require_sync_client)],
) -> LocalUserRead:
    try:
        user = await caregiver_service.link_med_friend(session, sync_client, payload.code)
    except SyncClientError as exc:
        raise _bad_gateway(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return LocalUserRead.model_validate(user)


@router.delete(
    "/friends",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove med friend or unsubscribe",
)
async def unlink_friend(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    sync_client: Annotated[SyncClient, Depends(deps.require_sync_client)],
    role: Annotated[Literal["patient", "friend"], Query()] = "patient",
) -> None:
    try:
        await caregiver_service.unlink_med_friend(session, sync_client, role=role)
    except SyncClientError as exc:
        raise _bad_gateway(exc) from exc


@router.get("/patient/day", response_model=PatientDayRead, summary="Linked patient's day")
async def patient_day(
    sync_client: Annotated[SyncClient, Depends(deps.require_sync_client)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
    day: Annotated[date | None, Query()] = None,
) -> PatientDayRead:
    target = day or local_today(datetime.now(UTC), tz)
    try:
        result = await caregiver_service.load_patient_day(sync_client, target, tz=tz)
    except SyncClientError as exc:
        raise _bad_gateway(exc) from exc
    return PatientDayRead(
        day=result.target_date,
        patient=result.patient,
        entries=[
            PatientDayEntryRead(
                medication_id=entry.medication.server_id,
                name=entry.medication.name,
                form=entry.medication.form.value,
                times=entry.times,
                status=entry.status.status,
                time=entry.status.time,
            )
            for entry in result.entries
        ],
    )
