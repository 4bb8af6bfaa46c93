"""Shared fixtures: environment defaults and an isolated document store per test."""
from __future__ import annotations

import os
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Settings are read once, so the environment must be in place before any forum import.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test_forum.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("FORUM_ADMIN_EMAIL", "admin@aktiforum.com")
os.environ.setdefault("REGISTRATION_WEBHOOK_URL", "")

from forum.database import Base  # noqa: E402
from forum import models  # noqa: E402,F401
from forum.sync.store import SqlCollectionStore  # noqa: E402


@pytest.fixture
def session_factory(tmp_path: Path):
    """A sessionmaker bound to a fresh SQLite file for the current test."""

    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'store.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlCollectionStore:
    return SqlCollectionStore(session_factory)


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Drop request locks left behind by earlier event loops."""

    from forum.services import transaction_service, verification_service

    registries = (
        transaction_service._submit_locks,
        transaction_service._review_locks,
        verification_service._submit_locks,
        verification_service._review_locks,
    )
    for locks in registries:
        locks.clear()
    yield
    for locks in registries:
        locks.clear()
