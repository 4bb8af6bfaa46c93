"""Application entry point for the FastAPI backend."""
from __future__ import annotations

import logging
import os
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .routers import (
    admin_router,
    ai_router,
    auth_router,
    messages_router,
    posts_router,
    profiles_router,
    realtime_router,
    support_router,
    transactions_router,
    verification_router,
)
from .services import get_store
from .sync.store import SqlCollectionStore

logger = logging.getLogger(__name__)

settings = get_settings()
APP_NAME = settings.app_name
API_VERSION = settings.api_version

app = FastAPI(title=APP_NAME, version=API_VERSION)

cors_origins = os.getenv("CORS_ORIGINS")
if cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(posts_router)
app.include_router(messages_router)
app.include_router(profiles_router)
app.include_router(transactions_router)
app.include_router(verification_router)
app.include_router(support_router)
app.include_router(admin_router)
app.include_router(ai_router)
app.include_router(realtime_router)


@app.on_event("startup")
async def _startup() -> None:
    """Ensure the database schema exists before serving."""

    try:
        init_db()
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Database initialisation failed")
        raise


@app.on_event("shutdown")
async def _shutdown() -> None:
    """Drop live query listeners so no snapshot is delivered after shutdown."""

    store = get_store()
    if isinstance(store, SqlCollectionStore):
        store.close()


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": APP_NAME, "version": API_VERSION}


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, object]:
    store = get_store()
    listeners = store.listener_count if isinstance(store, SqlCollectionStore) else 0
    return {"status": "ok", "live_queries": listeners}
