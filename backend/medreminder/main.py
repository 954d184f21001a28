"""FastAPI application entrypoint."""

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from medreminder.api import api_router
from medreminder.core.config import get_settings
from medreminder.db.session import dispose_engine, get_sessionmaker, init_models
from medreminder.integrations.notifier import InMemoryNotificationClient
from medreminder.security.logging_filters import install_sensitive_filter
from medreminder.services.notification_sync_service import (
    ResyncAbortedError,
    register_listeners,
    resync_from_store,
)

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    if getattr(app.state, "notifier", None) is None:
        app.state.notifier = InMemoryNotificationClient()
        register_listeners(app.state.notifier)
    try:
        async with get_sessionmaker()() as session:
            await resync_from_store(session, app.state.notifier, datetime.now(UTC))
    except ResyncAbortedError:  # pragma: no cover - best effort at startup
        logger.exception("Failed to rebuild reminders at startup")
    try:
        yield
    finally:
        await dispose_engine()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

install_sensitive_filter()

app.include_router(api_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Medication Reminder API"}
