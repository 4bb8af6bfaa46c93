"""Live query subscriptions.

A ``SubscriptionHandle`` wraps one query against one collection. It forwards
every ordered snapshot the store emits to its observer until it is closed or
fails. A failure is terminal: the handle keeps its last good snapshot and the
caller decides whether to reopen.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Iterator, Sequence

from .errors import SubscriptionError
from .query import Document, FieldFilter, Order, Query
from .store import CollectionStore, Unsubscribe

logger = logging.getLogger(__name__)


class SubscriptionState(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True, slots=True)
class Snapshot:
    """The full ordered result of a live query at one point in time."""

    query: Query
    documents: tuple[Document, ...]
    sequence: int

    def __iter__(self) -> Iterator[Document]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def ids(self) -> list[str]:
        return [document.id for document in self.documents]


SnapshotHandler = Callable[[Snapshot], None]
ErrorHandler = Callable[[SubscriptionError], None]

_CLOSED = object()


class SubscriptionHandle:
    """Lifecycle and delivery state for one open live query."""

    def __init__(
        self,
        query: Query,
        on_snapshot: SnapshotHandler | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self.query = query
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._unsubscribe: Unsubscribe | None = None
        self._state = SubscriptionState.PENDING
        self._last_snapshot: Snapshot | None = None
        self._error: SubscriptionError | None = None
        self._sequence = 0
        self._queues: list[asyncio.Queue[Any]] = []

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def last_snapshot(self) -> Snapshot | None:
        """Most recent successfully delivered snapshot, kept after a failure."""

        return self._last_snapshot

    @property
    def error(self) -> SubscriptionError | None:
        return self._error

    @property
    def is_open(self) -> bool:
        return self._state in (SubscriptionState.PENDING, SubscriptionState.ACTIVE)

    def close(self) -> None:
        """Release the store listener. Idempotent and safe inside the observer."""

        if self._state in (SubscriptionState.CLOSED, SubscriptionState.FAILED):
            self._state = SubscriptionState.CLOSED
            self._drain_streams()
            return
        self._state = SubscriptionState.CLOSED
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()
        self._drain_streams()

    async def stream(self) -> AsyncIterator[Snapshot]:
        """Yield snapshots as they arrive, starting with the latest one.

        Ends when the handle is closed; raises ``SubscriptionError`` on failure.
        """

        queue: asyncio.Queue[Any] = asyncio.Queue()
        if self._last_snapshot is not None:
            queue.put_nowait(self._last_snapshot)
        if self._error is not None:
            queue.put_nowait(self._error)
        elif not self.is_open:
            queue.put_nowait(_CLOSED)
        self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                if isinstance(item, SubscriptionError):
                    raise item
                yield item
        finally:
            if queue in self._queues:
                self._queues.remove(queue)

    def _attach(self, unsubscribe: Unsubscribe) -> None:
        if self._state is SubscriptionState.CLOSED or self._state is SubscriptionState.FAILED:
            # Closed (or failed) during the initial delivery.
            unsubscribe()
            return
        self._unsubscribe = unsubscribe

    def _deliver(self, documents: list[Document]) -> None:
        if not self.is_open:
            return
        self._sequence += 1
        snapshot = Snapshot(self.query, tuple(documents), self._sequence)
        self._last_snapshot = snapshot
        self._state = SubscriptionState.ACTIVE
        for queue in list(self._queues):
            queue.put_nowait(snapshot)
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)

    def _fail(self, error: SubscriptionError) -> None:
        if not self.is_open:
            return
        logger.warning("Subscription on %s failed (%s): %s", self.query.collection, error.code, error)
        self._state = SubscriptionState.FAILED
        self._error = error
        self._unsubscribe = None
        for queue in list(self._queues):
            queue.put_nowait(error)
        if self._on_error is not None:
            self._on_error(error)

    def _drain_streams(self) -> None:
        for queue in list(self._queues):
            queue.put_nowait(_CLOSED)


async def open_query(
    store: CollectionStore,
    query: Query,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    """Open a live query; the initial snapshot (or error) is delivered before return."""

    handle = SubscriptionHandle(query, on_snapshot, on_error)
    unsubscribe = await store.subscribe(query, handle._deliver, handle._fail)
    handle._attach(unsubscribe)
    return handle


async def open_subscription(
    store: CollectionStore,
    collection: str,
    *,
    filters: Sequence[FieldFilter] = (),
    order: Order | None = None,
    limit: int | None = None,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    query = Query(collection, tuple(filters), order, limit)
    return await open_query(store, query, on_snapshot, on_error)


def close_subscription(handle: SubscriptionHandle) -> None:
    handle.close()


__all__ = [
    "Snapshot",
    "SnapshotHandler",
    "ErrorHandler",
    "SubscriptionHandle",
    "SubscriptionState",
    "open_query",
    "open_subscription",
    "close_subscription",
]
