"""Test fixtures for the medication reminder backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("LOCAL_TIMEZONE", "UTC")

from medreminder.core.config import get_settings
from medreminder.db.base import Base
from medreminder.db.session import dispose_engine
from medreminder.integrations.notifier import InMemoryNotificationClient
from medreminder.integrations.sync_client import SyncClient
from medreminder.main import app
import medreminder.models  # noqa: F401


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def notifier() -> InMemoryNotificationClient:
    return InMemoryNotificationClient()


@pytest.fixture()
def sync_recorder() -> dict[str, Any]:
    """Shared state for the fake sync service: requests seen and canned replies."""
    return {"requests": [], "responses": {}}


@pytest.fixture()
def make_sync_client(
    sync_recorder: dict[str, Any],
) -> Callable[..., SyncClient]:
    """Build a SyncClient backed by ``httpx.MockTransport``.

    ``sync_recorder["responses"]`` maps ``"METHOD /path"`` to either an
    ``httpx.Response`` or a callable taking the request.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        sync_recorder["requests"].append(request)
        key = f"{request.method} {request.url.path}"
        reply = sync_recorder["responses"].get(key)
        if callable(reply):
            return reply(request)
        if reply is None:
            return httpx.Response(200, json={})
        return reply

    def factory(**kwargs: Any) -> SyncClient:
        return SyncClient(
            username=kwargs.pop("username", "patient-uuid"),
            password=kwargs.pop("password", "secret"),
            base_url=kwargs.pop("base_url", "https://sync.test"),
            transport=httpx.MockTransport(handler),
            **kwargs,
        )

    return factory


@pytest_asyncio.fixture()
async def app_context(
    reset_database: None,
    db_url: str,
    notifier: InMemoryNotificationClient,
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client wired to a fresh database and in-memory notifier."""
    app.state.notifier = notifier
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield {"client": client, "notifier": notifier, "db_url": db_url}
    app.state.notifier = None
