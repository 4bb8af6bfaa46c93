"""Pro upgrade requests and their admin review."""
from __future__ import annotations

import logging

from ..constants import PRIVILEGED_ROLES, PRO_PLAN, TRANSACTIONS
from ..schemas.documents import TransactionDocument, UserDocument, build_document_data, parse_document
from ..sync.errors import DocumentNotFoundError, MutationError
from ..sync.live_query import ErrorHandler, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.locks import KeyedLocks
from ..sync.operations import Merge
from ..sync.query import FieldFilter, Order, Query
from ..sync.store import CollectionStore
from .profile_service import now_ms, set_role

logger = logging.getLogger(__name__)

# The pending check and the write that follows it run under one lock per user
# (submissions) or per request (reviews).
_submit_locks = KeyedLocks()
_review_locks = KeyedLocks()


class TransactionError(MutationError):
    """Base class for upgrade request failures."""


class PendingTransactionExists(TransactionError):
    """The user already has a request awaiting review."""


class TransactionPermissionError(TransactionError):
    """Only admins may review upgrade requests."""


class TransactionAlreadyReviewed(TransactionError):
    """The request was approved or rejected before."""


def pending_query() -> Query:
    return Query(TRANSACTIONS, (FieldFilter("status", "==", "pending"),), Order("createdAt", descending=True))


def user_transactions_query(user_id: str) -> Query:
    return Query(TRANSACTIONS, (FieldFilter("userId", "==", user_id),), Order("createdAt", descending=True))


async def submit_upgrade(
    store: CollectionStore,
    *,
    user: UserDocument,
    tx_id: str,
    image_url: str | None = None,
    plan: str = PRO_PLAN,
) -> TransactionDocument:
    """Record a payment reference for review; one pending request per user."""

    reference = (tx_id or "").strip()
    if not reference:
        raise ValueError("A transaction id is required")

    async with _submit_locks.hold(user.uid):
        pending = await store.run_query(
            Query(
                TRANSACTIONS,
                (FieldFilter("userId", "==", user.uid), FieldFilter("status", "==", "pending")),
                limit=1,
            )
        )
        if pending:
            raise PendingTransactionExists(
                "An upgrade request is already pending", collection=TRANSACTIONS, doc_id=pending[0].id
            )
        fields = {
            "userId": user.uid,
            "userName": user.display_name,
            "userEmail": user.email,
            "txId": reference,
            "imageUrl": image_url,
            "status": "pending",
            "plan": plan,
            "createdAt": now_ms(),
        }
        document = await store.add(TRANSACTIONS, build_document_data(TRANSACTIONS, fields))
    logger.info("Upgrade request %s submitted by %s", document.id, user.uid)
    return parse_document(document)


async def review_transaction(
    store: CollectionStore,
    *,
    reviewer: UserDocument,
    transaction_id: str,
    approve: bool,
) -> TransactionDocument:
    """Approve or reject a pending request; approval grants the Pro role.

    Only one review of a request can leave ``pending``; a concurrent second
    review sees the settled status and raises ``TransactionAlreadyReviewed``.
    The role changes only after the status transition is written.
    """

    if reviewer.role not in PRIVILEGED_ROLES:
        raise TransactionPermissionError(
            "Only admins can review upgrade requests", collection=TRANSACTIONS, doc_id=transaction_id
        )
    status = "approved" if approve else "rejected"
    async with _review_locks.hold(transaction_id):
        document = await store.get_once(TRANSACTIONS, transaction_id)
        if document is None:
            raise DocumentNotFoundError(
                f"No transaction {transaction_id}", collection=TRANSACTIONS, doc_id=transaction_id
            )
        transaction: TransactionDocument = parse_document(document)
        if transaction.status != "pending":
            raise TransactionAlreadyReviewed(
                f"Transaction {transaction_id} is already {transaction.status}",
                collection=TRANSACTIONS,
                doc_id=transaction_id,
            )
        updated = await store.mutate(TRANSACTIONS, transaction_id, Merge({"status": status}))
        assert updated is not None

    if approve:
        await set_role(store, transaction.user_id, "pro", is_pro=True)
    logger.info("Transaction %s %s by %s", transaction_id, status, reviewer.uid)
    return parse_document(updated)


async def open_pending_transactions(
    store: CollectionStore,
    *,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    return await open_query(store, pending_query(), on_snapshot, on_error)


async def list_pending_transactions(store: CollectionStore) -> list[TransactionDocument]:
    return [parse_document(document) for document in await store.run_query(pending_query())]


async def list_user_transactions(store: CollectionStore, user_id: str) -> list[TransactionDocument]:
    return [parse_document(document) for document in await store.run_query(user_transactions_query(user_id))]


__all__ = [
    "TransactionError",
    "PendingTransactionExists",
    "TransactionPermissionError",
    "TransactionAlreadyReviewed",
    "pending_query",
    "user_transactions_query",
    "submit_upgrade",
    "review_transaction",
    "open_pending_transactions",
    "list_pending_transactions",
    "list_user_transactions",
]
