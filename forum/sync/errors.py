"""Typed failures raised by the sync core and its external collaborators."""
from __future__ import annotations

from typing import Any


class SyncError(RuntimeError):
    """Base class for every error surfaced by the forum sync layer."""


class SubscriptionError(SyncError):
    """A live query failed; the handle that received it is terminal."""

    def __init__(self, message: str, *, code: str = "unknown") -> None:
        super().__init__(message)
        self.code = code


class MutationError(SyncError):
    """A write was rejected or could not reach the store."""

    def __init__(self, message: str, *, collection: str | None = None, doc_id: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection
        self.doc_id = doc_id


class DocumentNotFoundError(MutationError):
    """The targeted document does not exist."""


class DocumentValidationError(SyncError):
    """A document read from the store does not match its collection schema."""

    def __init__(self, message: str, *, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class UploadError(SyncError):
    """The blob upload service returned a non-success response."""


class ExternalServiceUnavailable(SyncError):
    """Identity, generative-text or webhook service could not be reached."""


__all__ = [
    "SyncError",
    "SubscriptionError",
    "MutationError",
    "DocumentNotFoundError",
    "DocumentValidationError",
    "UploadError",
    "ExternalServiceUnavailable",
]
