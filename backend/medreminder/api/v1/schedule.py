"""Reminder schedule endpoints."""
from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.api import deps
from medreminder.integrations.notifier import NotificationClient
from medreminder.schemas.schedule import (
    DayEntryRead,
    DayScheduleRead,
    ResyncResult,
    ScheduledTriggerRead,
)
from medreminder.services import notification_sync_service, status_service
from medreminder.services.trigger_service import local_today

router = APIRouter(prefix="/schedule")


@router.post("/resync", response_model=ResyncResult, summary="Rebuild all reminders")
async def resync(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
) -> ResyncResult:
    try:
        scheduled = await notification_sync_service.resync_from_store(
            session, notifier, datetime.now(UTC)
        )
    except notification_sync_service.ResyncAbortedError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    triggers = await notifier.list_scheduled()
    return ResyncResult(
        scheduled=scheduled,
        triggers=[ScheduledTriggerRead.model_validate(item) for item in triggers],
    )


@router.get("/triggers", response_model=list[ScheduledTriggerRead], summary="List reminders")
async def list_triggers(
    notifier: Annotated[NotificationClient, Depends(deps.get_notifier)],
) -> list[ScheduledTriggerRead]:
    triggers = await notifier.list_scheduled()
    return [ScheduledTriggerRead.model_validate(item) for item in triggers]


@router.get("/day", response_model=DayScheduleRead, summary="Medications due on a day")
async def day_schedule(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    tz: Annotated[ZoneInfo, Depends(deps.get_timezone)],
    day: Annotated[date | None, Query()] = None,
) -> DayScheduleRead:
    today = local_today(datetime.now(UTC), tz)
    target = day or today
    try:
        entries = await status_service.day_overview(session, target, today=today, tz=tz)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return DayScheduleRead(
        day=target,
        entries=[
            DayEntryRead(
                medication_id=entry.medication.id,
                name=entry.medication.name,
                form=getattr(entry.medication.form, "value", entry.medication.form),
                times=entry.times,
                status=entry.status.status,
                time=entry.status.time,
            )
            for entry in entries
        ],
    )
