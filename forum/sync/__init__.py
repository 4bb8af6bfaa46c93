"""Real-time synchronization core: live queries, optimistic mutations, projections.

Projections live in ``forum.sync.projections`` and are imported from there,
since they depend on the document schemas.
"""
from .errors import (
    DocumentNotFoundError,
    DocumentValidationError,
    ExternalServiceUnavailable,
    MutationError,
    SubscriptionError,
    SyncError,
    UploadError,
)
from .live_query import Snapshot, SubscriptionHandle, SubscriptionState, open_query, open_subscription
from .locks import KeyedLocks
from .operations import ArrayRemove, ArrayUnion, Delete, Increment, Merge, Set
from .optimistic import OptimisticMutationEngine
from .query import Document, FieldFilter, Order, Query
from .store import CollectionStore, SqlCollectionStore
from .threads import thread_id, thread_participants

__all__ = [
    "SyncError",
    "SubscriptionError",
    "MutationError",
    "DocumentNotFoundError",
    "DocumentValidationError",
    "UploadError",
    "ExternalServiceUnavailable",
    "KeyedLocks",
    "Snapshot",
    "SubscriptionHandle",
    "SubscriptionState",
    "open_query",
    "open_subscription",
    "Set",
    "Merge",
    "Increment",
    "ArrayUnion",
    "ArrayRemove",
    "Delete",
    "OptimisticMutationEngine",
    "Document",
    "FieldFilter",
    "Order",
    "Query",
    "CollectionStore",
    "SqlCollectionStore",
    "thread_id",
    "thread_participants",
]
