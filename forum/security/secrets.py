"""Utilities for reading credentials from settings without leaking values."""
from __future__ import annotations

from typing import Final

__all__ = ["MissingSecretError", "is_placeholder", "configured_secret", "optional_secret"]


class MissingSecretError(RuntimeError):
    """Raised when a required credential is not configured."""


_PLACEHOLDER_VALUES: Final[set[str]] = {
    "changeme",
    "change-me",
    "placeholder",
    "example",
    "sample",
    "your-key-here",
}


def is_placeholder(value: str | None) -> bool:
    if not value:
        return True
    normalized = value.strip().lower()
    return not normalized or normalized in _PLACEHOLDER_VALUES


def optional_secret(value: str | None) -> str | None:
    """Return the trimmed credential, or ``None`` when unset or a placeholder."""

    if is_placeholder(value):
        return None
    assert value is not None
    return value.strip()


def configured_secret(value: str | None, name: str) -> str:
    """Return a trimmed credential or raise :class:`MissingSecretError` naming ``name``."""

    secret = optional_secret(value)
    if secret is None:
        raise MissingSecretError(f"{name} is required and must not use placeholder defaults")
    return secret
