"""Deterministic private-thread identifiers."""
from __future__ import annotations

from ..constants import DIRECT_THREAD_PREFIX


def thread_id(user_a: str, user_b: str) -> str:
    """Return the one thread id shared by an unordered pair of users."""

    if not user_a or not user_b:
        raise ValueError("Both participants are required")
    if "_" in user_a or "_" in user_b:
        raise ValueError("User ids used in thread ids cannot contain '_'")
    if user_a == user_b:
        raise ValueError("A private thread needs two distinct participants")
    first, second = sorted((user_a, user_b))
    return f"{DIRECT_THREAD_PREFIX}{first}_{second}"


def thread_participants(chat_id: str | None) -> tuple[str, str] | None:
    """Split a private thread id into its participants.

    Returns ``None`` for the lobby and for any id that ``thread_id`` would not
    produce, such as a reversed pair or a user paired with themselves.
    """

    if not chat_id or not chat_id.startswith(DIRECT_THREAD_PREFIX):
        return None
    parts = chat_id[len(DIRECT_THREAD_PREFIX):].split("_")
    if len(parts) != 2:
        return None
    try:
        canonical = thread_id(parts[0], parts[1])
    except ValueError:
        return None
    if canonical != chat_id:
        return None
    return parts[0], parts[1]


def is_participant(chat_id: str | None, user_id: str) -> bool:
    participants = thread_participants(chat_id)
    return participants is not None and user_id in participants


__all__ = ["thread_id", "thread_participants", "is_participant"]
