"""Optimistic mutations for toggle-set membership and numeric counters.

The engine records the latest intent per document, field group and actor,
shows it immediately through ``view``, and pushes it to the store as one
atomic array-union/array-remove write. Writes for the same key are
serialized; a write that a newer intent supersedes before it is sent is
skipped, so rapid repeated toggles converge on the last intent. When a write
fails the intent is dropped, the display falls back to the authoritative
snapshot, and ``MutationError`` is raised to the caller.

Counter deltas remember the value the field will hold once they land. A
snapshot that already shows that value absorbs the delta, so a store whose
snapshots run ahead of its write confirmations never shows it twice.
"""
from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from .errors import MutationError, SyncError
from .locks import KeyedLocks
from .operations import ArrayRemove, ArrayUnion, Increment, Operation
from .query import Document
from .store import CollectionStore

logger = logging.getLogger(__name__)

# (collection, doc_id, actor_id, fields)
MembershipKey = tuple[str, str, str, tuple[str, ...]]
# (collection, doc_id, field)
CounterKey = tuple[str, str, str]
ChangeListener = Callable[[], None]


@dataclass(slots=True)
class _MembershipIntent:
    fields: tuple[str, ...]
    target: str | None
    seq: int
    issued_at: float
    click_id: str | None = None
    acknowledged: bool = False


@dataclass(slots=True, eq=False)
class _PendingDelta:
    delta: int | float
    # Field value once this delta and every earlier pending one have landed.
    expected: int | float

    def absorbed_by(self, value: int | float) -> bool:
        if self.delta >= 0:
            return value >= self.expected
        return value <= self.expected


def _numeric(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def field_group(set_field: str, exclusive_set_field: str | None) -> tuple[str, ...]:
    if exclusive_set_field is None or exclusive_set_field == set_field:
        return (set_field,)
    return tuple(sorted((set_field, exclusive_set_field)))


def membership_from_data(data: Any, fields: Sequence[str], actor_id: str) -> str | None:
    """Return the field of ``fields`` holding ``actor_id``, or ``None``."""

    for name in fields:
        values = data.get(name) if hasattr(data, "get") else None
        if isinstance(values, list) and actor_id in values:
            return name
    return None


class OptimisticMutationEngine:
    def __init__(
        self,
        store: CollectionStore,
        *,
        debounce_window: float = 0.35,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._debounce_window = debounce_window
        self._clock = clock
        self._intents: dict[MembershipKey, _MembershipIntent] = {}
        self._inflight: dict[MembershipKey, int] = {}
        self._locks = KeyedLocks()
        self._deltas: dict[CounterKey, list[_PendingDelta]] = {}
        self._seq = itertools.count(1)
        self._listeners: list[ChangeListener] = []

    @property
    def store(self) -> CollectionStore:
        return self._store

    @property
    def pending_intents(self) -> int:
        return len(self._intents)

    @property
    def pending_deltas(self) -> int:
        return sum(len(pending) for pending in self._deltas.values())

    @property
    def held_locks(self) -> int:
        return len(self._locks)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """Call ``listener`` whenever the optimistic view changes."""

        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def membership(
        self,
        doc: Document,
        set_field: str,
        exclusive_set_field: str | None,
        actor_id: str,
    ) -> str | None:
        """Effective membership: the pending intent if any, else the document."""

        fields = field_group(set_field, exclusive_set_field)
        intent = self._intents.get((doc.collection, doc.id, actor_id, fields))
        if intent is not None:
            return intent.target
        return membership_from_data(doc.data, fields, actor_id)

    async def toggle_membership(
        self,
        doc: Document,
        set_field: str,
        exclusive_set_field: str | None,
        actor_id: str,
        *,
        click_id: str | None = None,
    ) -> str | None:
        """Toggle ``actor_id`` in ``set_field``; returns the resulting membership.

        Adding clears the actor from ``exclusive_set_field``. A repeated
        ``click_id`` inside the debounce window is the same click and is ignored.
        """

        fields = field_group(set_field, exclusive_set_field)
        key: MembershipKey = (doc.collection, doc.id, actor_id, fields)
        previous = self._intents.get(key)
        now = self._clock()
        if (
            click_id is not None
            and previous is not None
            and previous.click_id == click_id
            and now - previous.issued_at <= self._debounce_window
        ):
            logger.debug("Ignoring repeated click %s on %s/%s", click_id, doc.collection, doc.id)
            return previous.target

        current = previous.target if previous is not None else membership_from_data(doc.data, fields, actor_id)
        target = None if current == set_field else set_field
        intent = _MembershipIntent(fields, target, next(self._seq), now, click_id)
        self._intents[key] = intent
        self._notify()

        operations = _membership_operations(fields, target, actor_id)
        self._inflight[key] = self._inflight.get(key, 0) + 1
        try:
            async with self._locks.hold(key):
                if self._intents.get(key) is not intent:
                    # A newer intent is queued behind us and will write the final state.
                    return target
                try:
                    await self._store.mutate(doc.collection, doc.id, operations)
                except SyncError as exc:
                    if self._intents.get(key) is intent:
                        del self._intents[key]
                        self._notify()
                    logger.warning("Toggle on %s/%s for %s failed: %s", doc.collection, doc.id, actor_id, exc)
                    if isinstance(exc, MutationError):
                        raise
                    raise MutationError(str(exc), collection=doc.collection, doc_id=doc.id) from exc
                if self._intents.get(key) is intent:
                    intent.acknowledged = True
        finally:
            remaining = self._inflight[key] - 1
            if remaining:
                self._inflight[key] = remaining
            else:
                del self._inflight[key]
        return target

    async def increment_counter(
        self,
        collection: str,
        doc_id: str,
        field: str,
        delta: int | float = 1,
        *,
        base: int | float | None = None,
    ) -> None:
        """Atomically add ``delta`` at the store, showing it locally until a snapshot or the write confirms it.

        ``base`` is the field value the caller currently sees; it is read from
        the store when omitted.
        """

        key: CounterKey = (collection, doc_id, field)
        pending: _PendingDelta | None = None
        try:
            if base is None:
                current = await self._store.get_once(collection, doc_id)
                base = _numeric(current.get(field) if current is not None else 0)
            pending = _PendingDelta(delta, self._counter_value(key, _numeric(base)) + delta)
            self._deltas.setdefault(key, []).append(pending)
            self._notify()
            await self._store.mutate(collection, doc_id, Increment(field, delta))
        except SyncError as exc:
            logger.warning("Increment of %s on %s/%s failed: %s", field, collection, doc_id, exc)
            if isinstance(exc, MutationError):
                raise
            raise MutationError(str(exc), collection=collection, doc_id=doc_id) from exc
        finally:
            if pending is not None and self._drop_delta(key, pending):
                self._notify()

    def reconcile(self, documents: Iterable[Document]) -> None:
        """Fold an authoritative snapshot into the pending intents and deltas.

        An intent is retired once its write was acknowledged, or once the
        snapshot already shows its target while no write for it is outstanding.
        A counter delta is retired once the snapshot shows the value it leads to.
        """

        changed = False
        for doc in documents:
            for key, intent in list(self._intents.items()):
                collection, doc_id, actor_id, fields = key
                if collection != doc.collection or doc_id != doc.id:
                    continue
                actual = membership_from_data(doc.data, fields, actor_id)
                if intent.acknowledged or (actual == intent.target and key not in self._inflight):
                    del self._intents[key]
                    changed = True
            for key, pending in list(self._deltas.items()):
                collection, doc_id, name = key
                if collection != doc.collection or doc_id != doc.id:
                    continue
                value = _numeric(doc.data.get(name))
                remaining = [item for item in pending if not item.absorbed_by(value)]
                if len(remaining) != len(pending):
                    changed = True
                    if remaining:
                        self._deltas[key] = remaining
                    else:
                        del self._deltas[key]
        if changed:
            self._notify()

    def view(self, doc: Document) -> Document:
        """Return ``doc`` with pending intents and counter deltas applied."""

        data: dict[str, Any] | None = None
        for (collection, doc_id, actor_id, fields), intent in sorted(
            self._intents.items(), key=lambda item: item[1].seq
        ):
            if collection != doc.collection or doc_id != doc.id:
                continue
            if data is None:
                data = dict(doc.data)
            for name in fields:
                values = [value for value in (data.get(name) or []) if value != actor_id]
                if name == intent.target:
                    values.append(actor_id)
                data[name] = values
        for key in self._deltas:
            collection, doc_id, name = key
            if collection != doc.collection or doc_id != doc.id:
                continue
            if data is None:
                data = dict(doc.data)
            data[name] = self._counter_value(key, _numeric(data.get(name)))
        if data is None:
            return doc
        return Document(doc.id, doc.collection, data)

    def view_all(self, documents: Iterable[Document]) -> list[Document]:
        return [self.view(doc) for doc in documents]

    def _counter_value(self, key: CounterKey, stored: int | float) -> int | float:
        """``stored`` plus every pending delta the stored value does not include yet."""

        return stored + sum(item.delta for item in self._deltas.get(key, ()) if not item.absorbed_by(stored))

    def _drop_delta(self, key: CounterKey, pending: _PendingDelta) -> bool:
        items = self._deltas.get(key)
        if not items or pending not in items:
            return False
        items.remove(pending)
        if not items:
            del self._deltas[key]
        return True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Optimistic change listener raised")


def _membership_operations(fields: tuple[str, ...], target: str | None, actor_id: str) -> list[Operation]:
    operations: list[Operation] = []
    for name in fields:
        if name == target:
            operations.append(ArrayUnion(name, (actor_id,)))
        else:
            operations.append(ArrayRemove(name, (actor_id,)))
    return operations


__all__ = [
    "OptimisticMutationEngine",
    "field_group",
    "membership_from_data",
]
