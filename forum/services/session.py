"""Explicit session context.

``SessionManager`` is the one session object of a client: created at start-up,
replaced on sign-in and sign-out, and driven by the identity provider's
session-change callback. It keeps the signed-in user's profile live.

``SyncContextRegistry`` is the server-side counterpart: one ``SyncContext``
(user id plus optimistic mutation engine) per signed-in user, handed to the
routes that need it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from ..constants import USERS
from ..schemas.documents import UserDocument, parse_document
from ..sync.errors import DocumentValidationError, SubscriptionError
from ..sync.live_query import Snapshot, SubscriptionHandle, open_query
from ..sync.optimistic import OptimisticMutationEngine
from ..sync.query import FieldFilter, Query
from ..sync.store import CollectionStore
from .identity_service import ForumSession, IdentityProvider

logger = logging.getLogger(__name__)

ProfileListener = Callable[[Optional[UserDocument]], None]


class SessionManager:
    def __init__(self, identity: IdentityProvider, store: CollectionStore) -> None:
        self._identity = identity
        self._store = store
        self._session: ForumSession | None = None
        self._profile: UserDocument | None = None
        self._profile_handle: SubscriptionHandle | None = None
        self._listeners: list[ProfileListener] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._unsubscribe: Callable[[], None] | None = None
        self._ready = asyncio.Event()

    @property
    def session(self) -> ForumSession | None:
        return self._session

    @property
    def profile(self) -> UserDocument | None:
        return self._profile

    def start(self) -> None:
        """Begin observing the identity provider; call once from a running loop."""

        if self._unsubscribe is None:
            self._unsubscribe = self._identity.on_session_change(self._on_session_change)

    async def wait_ready(self) -> None:
        """Wait until the profile for the current session has been resolved."""

        await self._ready.wait()

    def add_listener(self, listener: ProfileListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._close_profile()
        for task in list(self._pending):
            task.cancel()

    def _on_session_change(self, session: ForumSession | None) -> None:
        self._session = session
        self._close_profile()
        self._ready.clear()
        if session is None:
            self._set_profile(None)
            self._ready.set()
            return
        task = asyncio.get_running_loop().create_task(self._watch_profile(session))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _watch_profile(self, session: ForumSession) -> None:
        def _on_snapshot(snapshot: Snapshot) -> None:
            if self._session != session:
                return
            profile: UserDocument | None = None
            if snapshot.documents:
                try:
                    profile = parse_document(snapshot.documents[0])
                except DocumentValidationError:
                    logger.exception("Profile document for %s is invalid", session.uid)
            self._set_profile(profile)
            self._ready.set()

        def _on_error(error: SubscriptionError) -> None:
            # Keep the last known profile on screen.
            logger.warning("Profile subscription for %s failed: %s", session.uid, error)
            self._ready.set()

        query = Query(USERS, (FieldFilter("uid", "==", session.uid),), limit=1)
        handle = await open_query(self._store, query, _on_snapshot, _on_error)
        if self._session != session:
            handle.close()
            return
        self._profile_handle = handle

    def _close_profile(self) -> None:
        if self._profile_handle is not None:
            self._profile_handle.close()
            self._profile_handle = None

    def _set_profile(self, profile: UserDocument | None) -> None:
        self._profile = profile
        for listener in list(self._listeners):
            try:
                listener(profile)
            except Exception:
                logger.exception("Profile listener raised")


@dataclass(slots=True)
class SyncContext:
    uid: str
    engine: OptimisticMutationEngine


class SyncContextRegistry:
    """One optimistic engine per signed-in user, shared by their requests and sockets."""

    def __init__(self, store: CollectionStore, *, debounce_window: float = 0.35) -> None:
        self._store = store
        self._debounce_window = debounce_window
        self._contexts: dict[str, SyncContext] = {}

    def get(self, uid: str) -> SyncContext:
        context = self._contexts.get(uid)
        if context is None:
            engine = OptimisticMutationEngine(self._store, debounce_window=self._debounce_window)
            context = SyncContext(uid=uid, engine=engine)
            self._contexts[uid] = context
        return context


__all__ = ["SessionManager", "SyncContext", "SyncContextRegistry"]
