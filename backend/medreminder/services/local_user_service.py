"""Local device identity and the caregiver link."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medreminder.integrations.sync_client import SyncClient
from medreminder.models.local_user import LocalUser

logger = logging.getLogger(__name__)


async def get_local_user(session: AsyncSession) -> LocalUser | None:
    result = await session.execute(select(LocalUser).order_by(LocalUser.id).limit(1))
    return result.scalar_one_or_none()


async def save_local_user(
    session: AsyncSession,
    *,
    patient_uuid: str,
    patient_password: str,
) -> LocalUser:
    """Store the device identity, replacing any previous one."""

    patient_uuid = patient_uuid.strip()
    if not patient_uuid or not patient_password:
        raise ValueError("patient_uuid and patient_password are required")
    user = await get_local_user(session)
    if user is None:
        user = LocalUser(patient_uuid=patient_uuid, patient_password=patient_password)
        session.add(user)
    else:
        if user.patient_uuid != patient_uuid:
            user.relation_uuid = None
        user.patient_uuid = patient_uuid
        user.patient_password = patient_password
    await session.commit()
    await session.refresh(user)
    logger.info("Local user %s saved", user.id)
    return user


async def save_med_friend(session: AsyncSession, relation_uuid: str) -> LocalUser:
    user = await get_local_user(session)
    if user is None:
        raise ValueError("Local user not found")
    user.relation_uuid = relation_uuid
    await session.commit()
    await session.refresh(user)
    return user


async def remove_med_friend(session: AsyncSession) -> None:
    user = await get_local_user(session)
    if user is None or user.relation_uuid is None:
        return
    user.relation_uuid = None
    await session.commit()


async def get_med_friend_uuid(session: AsyncSession) -> str | None:
    user = await get_local_user(session)
    return user.relation_uuid if user else None


def build_sync_client(user: LocalUser | None, **kwargs: Any) -> SyncClient | None:
    """Return a client authenticated as ``user``, or None without an identity."""

    if user is None:
        return None
    return SyncClient(username=user.patient_uuid, password=user.patient_password, **kwargs)


__all__ = [
    "build_sync_client",
    "get_local_user",
    "get_med_friend_uuid",
    "remove_med_friend",
    "save_local_user",
    "save_med_friend",
]
