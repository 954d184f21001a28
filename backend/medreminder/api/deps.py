"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Annotated
from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.core.config import get_settings
from medreminder.db.session import get_session
from medreminder.integrations.notifier import NotificationClient
from medreminder.integrations.sync_client import SyncClient
from medreminder.services import local_user_service
from medreminder.services.trigger_service import resolve_timezone


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_notifier(request: Request) -> NotificationClient:
    """Return the notification client installed on the application."""
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Notification service unavailable",
        )
    return notifier


def get_timezone() -> ZoneInfo:
    return resolve_timezone(get_settings().local_timezone)


async def get_sync_client(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SyncClient | None:
    """Sync client for the local identity, or None before sign-in."""
    user = await local_user_service.get_local_user(session)
    return local_user_service.build_sync_client(user)


async def require_sync_client(
    sync_client: Annotated[SyncClient | None, Depends(get_sync_client)],
) -> SyncClient:
    if sync_client is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Local user not configured",
        )
    return sync_client
