"""Convenience exports for ORM models."""
from .credential import Credential
from .document import DocumentRecord

__all__ = [
    "Credential",
    "DocumentRecord",
]
