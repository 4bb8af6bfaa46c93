"""Document collection stores.

``CollectionStore`` is the narrow interface the sync core consumes.
``SqlCollectionStore`` is the reference implementation: documents are JSON
rows in SQLAlchemy, every write is applied atomically in one transaction, and
each committed write fans a fresh snapshot out to the listeners whose query
targets the written collection.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import DocumentRecord
from .errors import DocumentNotFoundError, MutationError, SubscriptionError
from .operations import Operation, Set, apply_operations, normalize_operations, requires_existing
from .query import Document, FieldFilter, Query, evaluate, snapshot_key

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[SubscriptionError], None]
Unsubscribe = Callable[[], None]


class CollectionStore(ABC):
    """Subscribe-to-query and mutate-document operations over named collections."""

    @abstractmethod
    async def subscribe(self, query: Query, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Register a listener; the initial snapshot is delivered before returning."""

    @abstractmethod
    async def mutate(
        self,
        collection: str,
        doc_id: str,
        operation: Operation | Sequence[Operation],
    ) -> Document | None:
        """Apply one or more operations atomically; returns the new document or ``None`` if deleted."""

    @abstractmethod
    async def get_once(self, collection: str, doc_id: str) -> Document | None:
        ...

    @abstractmethod
    async def run_query(self, query: Query) -> list[Document]:
        ...

    async def add(self, collection: str, data: Mapping[str, Any], *, doc_id: str | None = None) -> Document:
        """Create a document under a store-assigned id."""

        new_id = doc_id or uuid.uuid4().hex
        document = await self.mutate(collection, new_id, Set(dict(data)))
        assert document is not None
        return document

    async def count(self, collection: str, filters: Sequence[FieldFilter] = ()) -> int:
        return len(await self.run_query(Query(collection, tuple(filters))))


@dataclass(slots=True)
class _Listener:
    key: int
    query: Query
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback
    last_key: tuple[Any, ...] | None = field(default=None)


class SqlCollectionStore(CollectionStore):
    """SQLAlchemy-backed store with in-process snapshot fan-out."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        if session_factory is None:
            from ..database import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self._listeners: dict[int, _Listener] = {}
        self._listener_ids = itertools.count(1)
        self._lock = asyncio.Lock()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def subscribe(self, query: Query, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        listener = _Listener(next(self._listener_ids), query, on_snapshot, on_error)
        async with self._lock:
            self._listeners[listener.key] = listener
            await self._deliver(listener)

        def _unsubscribe() -> None:
            self._listeners.pop(listener.key, None)

        return _unsubscribe

    async def mutate(
        self,
        collection: str,
        doc_id: str,
        operation: Operation | Sequence[Operation],
    ) -> Document | None:
        operations = normalize_operations(operation)
        async with self._lock:
            try:
                document = await run_in_threadpool(self._write, collection, doc_id, operations)
            except SQLAlchemyError as exc:
                logger.exception("Write to %s/%s failed", collection, doc_id)
                raise MutationError(
                    f"Failed to write {collection}/{doc_id}", collection=collection, doc_id=doc_id
                ) from exc
            await self._publish(collection)
        return document

    async def get_once(self, collection: str, doc_id: str) -> Document | None:
        return await run_in_threadpool(self._read_one, collection, doc_id)

    async def run_query(self, query: Query) -> list[Document]:
        return await run_in_threadpool(self._load_query, query)

    def close(self) -> None:
        """Drop every listener without notifying it."""

        self._listeners.clear()

    async def _publish(self, collection: str) -> None:
        for listener in list(self._listeners.values()):
            if listener.query.collection == collection:
                await self._deliver(listener)

    async def _deliver(self, listener: _Listener) -> None:
        try:
            documents = await run_in_threadpool(self._load_query, listener.query)
        except SubscriptionError as exc:
            self._fail(listener, exc)
            return
        except SQLAlchemyError as exc:
            logger.exception("Live query on %s failed", listener.query.collection)
            self._fail(listener, SubscriptionError(str(exc), code="unavailable"))
            return

        # The listener may have been removed while the query ran.
        if listener.key not in self._listeners:
            return
        fingerprint = snapshot_key(documents)
        if fingerprint == listener.last_key:
            return
        listener.last_key = fingerprint
        try:
            listener.on_snapshot(documents)
        except Exception:
            logger.exception("Snapshot observer for %s raised", listener.query.collection)

    def _fail(self, listener: _Listener, error: SubscriptionError) -> None:
        if self._listeners.pop(listener.key, None) is None:
            return
        try:
            listener.on_error(error)
        except Exception:
            logger.exception("Error observer for %s raised", listener.query.collection)

    def _load_query(self, query: Query) -> list[Document]:
        with self._session_factory() as session:
            records = session.scalars(
                select(DocumentRecord).where(DocumentRecord.collection == query.collection)
            ).all()
            documents = [Document(record.doc_id, record.collection, dict(record.data or {})) for record in records]
        return evaluate(query, documents)

    def _read_one(self, collection: str, doc_id: str) -> Document | None:
        with self._session_factory() as session:
            record = session.get(DocumentRecord, (collection, doc_id))
            if record is None:
                return None
            return Document(record.doc_id, record.collection, dict(record.data or {}))

    def _write(self, collection: str, doc_id: str, operations: tuple[Operation, ...]) -> Document | None:
        with self._session_factory() as session:
            record = session.scalar(
                select(DocumentRecord)
                .where(DocumentRecord.collection == collection, DocumentRecord.doc_id == doc_id)
                .with_for_update()
            )
            if record is None and requires_existing(operations):
                raise DocumentNotFoundError(
                    f"No document {collection}/{doc_id}", collection=collection, doc_id=doc_id
                )

            data = apply_operations(record.data if record is not None else None, operations)
            try:
                if data is None:
                    if record is not None:
                        session.delete(record)
                    session.commit()
                    return None
                if record is None:
                    session.add(DocumentRecord(collection=collection, doc_id=doc_id, data=data, version=1))
                else:
                    record.data = data
                    record.version = (record.version or 0) + 1
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise
        return Document(doc_id, collection, data)


__all__ = ["CollectionStore", "SqlCollectionStore", "SnapshotCallback", "ErrorCallback", "Unsubscribe"]
