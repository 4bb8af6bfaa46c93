"""Identity verification requests and their admin review."""
from __future__ import annotations

import logging

from ..constants import PRIVILEGED_ROLES, USERS, VERIFICATION_REQUESTS
from ..schemas.documents import UserDocument, VerificationRequestDocument, build_document_data, parse_document
from ..sync.errors import DocumentNotFoundError, MutationError
from ..sync.live_query import ErrorHandler, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.locks import KeyedLocks
from ..sync.operations import Merge
from ..sync.query import FieldFilter, Order, Query
from ..sync.store import CollectionStore
from .profile_service import now_ms

logger = logging.getLogger(__name__)

_submit_locks = KeyedLocks()
_review_locks = KeyedLocks()


class VerificationError(MutationError):
    """Base class for verification request failures."""


class PendingVerificationExists(VerificationError):
    """The user already has a verification request awaiting review."""


class VerificationPermissionError(VerificationError):
    """Only admins may review verification requests."""


class VerificationAlreadyReviewed(VerificationError):
    """The request was approved or rejected before."""


def pending_verifications_query() -> Query:
    return Query(VERIFICATION_REQUESTS, (FieldFilter("status", "==", "pending"),), Order("createdAt", descending=True))


async def submit_verification(
    store: CollectionStore,
    *,
    user: UserDocument,
    image_url: str,
) -> VerificationRequestDocument:
    """File an ID document for review and mark the profile as pending."""

    if not image_url:
        raise ValueError("An identity document image is required")
    if user.is_verified:
        raise ValueError("Account is already verified")

    async with _submit_locks.hold(user.uid):
        pending = await store.run_query(
            Query(
                VERIFICATION_REQUESTS,
                (FieldFilter("userId", "==", user.uid), FieldFilter("status", "==", "pending")),
                limit=1,
            )
        )
        if pending:
            raise PendingVerificationExists(
                "A verification request is already pending", collection=VERIFICATION_REQUESTS, doc_id=pending[0].id
            )
        fields = {
            "userId": user.uid,
            "userName": user.display_name,
            "userPhoto": user.photo_url,
            "imageUrl": image_url,
            "status": "pending",
            "createdAt": now_ms(),
        }
        document = await store.add(VERIFICATION_REQUESTS, build_document_data(VERIFICATION_REQUESTS, fields))
        await store.mutate(USERS, user.uid, Merge({"verificationStatus": "pending"}))
    logger.info("Verification request %s submitted by %s", document.id, user.uid)
    return parse_document(document)


async def review_verification(
    store: CollectionStore,
    *,
    reviewer: UserDocument,
    request_id: str,
    approve: bool,
) -> VerificationRequestDocument:
    """Approve or reject a pending request and update the member's badge.

    The profile is written only after the request has left ``pending``, so a
    second concurrent review raises ``VerificationAlreadyReviewed`` and never
    touches the profile.
    """

    if reviewer.role not in PRIVILEGED_ROLES:
        raise VerificationPermissionError(
            "Only admins can review verification requests", collection=VERIFICATION_REQUESTS, doc_id=request_id
        )
    status = "approved" if approve else "rejected"
    async with _review_locks.hold(request_id):
        document = await store.get_once(VERIFICATION_REQUESTS, request_id)
        if document is None:
            raise DocumentNotFoundError(
                f"No verification request {request_id}", collection=VERIFICATION_REQUESTS, doc_id=request_id
            )
        request: VerificationRequestDocument = parse_document(document)
        if request.status != "pending":
            raise VerificationAlreadyReviewed(
                f"Verification request {request_id} is already {request.status}",
                collection=VERIFICATION_REQUESTS,
                doc_id=request_id,
            )
        updated = await store.mutate(VERIFICATION_REQUESTS, request_id, Merge({"status": status}))
        assert updated is not None

    await store.mutate(
        USERS,
        request.user_id,
        Merge({"isVerified": approve, "verificationStatus": "verified" if approve else "rejected"}),
    )
    logger.info("Verification request %s %s by %s", request_id, status, reviewer.uid)
    return parse_document(updated)


async def open_pending_verifications(
    store: CollectionStore,
    *,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    return await open_query(store, pending_verifications_query(), on_snapshot, on_error)


async def list_pending_verifications(store: CollectionStore) -> list[VerificationRequestDocument]:
    return [parse_document(document) for document in await store.run_query(pending_verifications_query())]


__all__ = [
    "VerificationError",
    "PendingVerificationExists",
    "VerificationPermissionError",
    "VerificationAlreadyReviewed",
    "pending_verifications_query",
    "submit_verification",
    "review_verification",
    "open_pending_verifications",
    "list_pending_verifications",
]
