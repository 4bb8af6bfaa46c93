"""Translate sync-layer failures into HTTP responses."""
from __future__ import annotations

import logging

from fastapi import HTTPException, status

from ..services import (
    AdminPermissionError,
    ChatPermissionError,
    IdentityError,
    PendingTransactionExists,
    PendingVerificationExists,
    PostPermissionError,
    ProfilePermissionError,
    SupportPermissionError,
    TransactionAlreadyReviewed,
    TransactionPermissionError,
    VerificationAlreadyReviewed,
    VerificationPermissionError,
)
from ..sync.errors import (
    DocumentNotFoundError,
    DocumentValidationError,
    ExternalServiceUnavailable,
    MutationError,
    SubscriptionError,
    SyncError,
    UploadError,
)

logger = logging.getLogger(__name__)

_FORBIDDEN = (
    AdminPermissionError,
    ChatPermissionError,
    PostPermissionError,
    ProfilePermissionError,
    SupportPermissionError,
    TransactionPermissionError,
    VerificationPermissionError,
)
_CONFLICT = (
    PendingTransactionExists,
    PendingVerificationExists,
    TransactionAlreadyReviewed,
    VerificationAlreadyReviewed,
)

_SUBSCRIPTION_STATUS = {
    "permission-denied": status.HTTP_403_FORBIDDEN,
    "failed-precondition": status.HTTP_400_BAD_REQUEST,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def http_error(exc: SyncError | ValueError) -> HTTPException:
    """Map a domain error to the ``HTTPException`` the routers raise."""

    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, _FORBIDDEN):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, _CONFLICT):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, DocumentNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, DocumentValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "errors": exc.errors},
        )
    if isinstance(exc, SubscriptionError):
        code = _SUBSCRIPTION_STATUS.get(exc.code, status.HTTP_502_BAD_GATEWAY)
        return HTTPException(status_code=code, detail=str(exc))
    if isinstance(exc, IdentityError):
        return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
    if isinstance(exc, (MutationError, UploadError)):
        logger.warning("Upstream write failed: %s", exc)
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    if isinstance(exc, ExternalServiceUnavailable):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logger.error("Unhandled sync error: %s", exc)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")


__all__ = ["http_error"]
