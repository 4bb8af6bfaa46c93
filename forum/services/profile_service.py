"""User profile documents: creation, owner-only edits and the live role table."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Mapping
from urllib.parse import quote

from ..config import get_settings
from ..constants import ADMIN_BIO, DEFAULT_BIO, USERS
from ..schemas.documents import UserDocument, build_document_data, parse_document
from ..sync.errors import DocumentNotFoundError, MutationError
from ..sync.live_query import ErrorHandler, SubscriptionHandle, open_query
from ..sync.operations import Merge, Set
from ..sync.query import Order, Query
from ..sync.store import CollectionStore

logger = logging.getLogger(__name__)

# Fields a user may change on their own profile.
EDITABLE_FIELDS = frozenset({"displayName", "bio", "age", "gender", "interests", "socials", "photoURL"})


class ProfilePermissionError(MutationError):
    """Someone other than the owner tried to edit a profile."""


def now_ms() -> int:
    return int(time.time() * 1000)


def default_avatar(display_name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(display_name)}&background=random"


def is_admin_email(email: str) -> bool:
    admin_email = get_settings().admin_email
    return bool(admin_email) and email.strip().lower() == (admin_email or "").strip().lower()


async def create_user_profile(store: CollectionStore, *, uid: str, display_name: str, email: str) -> UserDocument:
    """Write the profile document for a freshly registered account.

    The admin role is granted here, once, when the email matches the configured
    admin address; clients never promote themselves.
    """

    name = display_name.strip()
    if not name:
        raise ValueError("Display name is required")
    admin = is_admin_email(email)
    fields = {
        "uid": uid,
        "displayName": name,
        "email": email.strip().lower(),
        "photoURL": default_avatar(name),
        "bio": ADMIN_BIO if admin else DEFAULT_BIO,
        "isPro": admin,
        "role": "admin" if admin else "user",
        "joinedAt": now_ms(),
    }
    data = build_document_data(USERS, fields, doc_id=uid)
    document = await store.mutate(USERS, uid, Set(data))
    assert document is not None
    return parse_document(document)


async def get_profile(store: CollectionStore, uid: str) -> UserDocument:
    document = await store.get_once(USERS, uid)
    if document is None:
        raise DocumentNotFoundError(f"No profile for {uid}", collection=USERS, doc_id=uid)
    return parse_document(document)


async def update_profile(
    store: CollectionStore,
    *,
    actor: UserDocument,
    uid: str,
    updates: Mapping[str, Any],
) -> UserDocument:
    """Merge owner edits into a profile.

    Profiles have a single writer, so a whole-field merge cannot lose a
    concurrent update.
    """

    if actor.uid != uid:
        raise ProfilePermissionError("Only the owner can edit this profile", collection=USERS, doc_id=uid)
    unknown = set(updates) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
    if not updates:
        return await get_profile(store, uid)

    current = await get_profile(store, uid)
    # Validate the merged result before writing it.
    merged = {**current.model_dump(by_alias=True), **dict(updates)}
    build_document_data(USERS, merged, doc_id=uid)

    document = await store.mutate(USERS, uid, Merge(dict(updates)))
    assert document is not None
    logger.info("Profile %s updated (%s)", uid, ", ".join(sorted(updates)))
    return parse_document(document)


async def set_role(store: CollectionStore, uid: str, role: str, *, is_pro: bool | None = None) -> UserDocument:
    patch: dict[str, Any] = {"role": role}
    if is_pro is not None:
        patch["isPro"] = is_pro
    if await store.get_once(USERS, uid) is None:
        raise DocumentNotFoundError(f"No profile for {uid}", collection=USERS, doc_id=uid)
    document = await store.mutate(USERS, uid, Merge(patch))
    assert document is not None
    return parse_document(document)


def members_query(limit: int | None = None) -> Query:
    return Query(USERS, order=Order("joinedAt", descending=True), limit=limit)


async def list_members(store: CollectionStore, *, limit: int = 100) -> list[UserDocument]:
    return [parse_document(document) for document in await store.run_query(members_query(limit))]


async def load_role_table(store: CollectionStore) -> dict[str, str]:
    documents = await store.run_query(Query(USERS))
    return {document.id: str(document.get("role") or "user") for document in documents}


async def open_role_table(
    store: CollectionStore,
    on_change: Callable[[dict[str, str]], None],
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    """Keep a uid → role table current for badge annotation."""

    def _on_snapshot(snapshot) -> None:
        on_change({document.id: str(document.get("role") or "user") for document in snapshot})

    return await open_query(store, Query(USERS), _on_snapshot, on_error)


__all__ = [
    "EDITABLE_FIELDS",
    "ProfilePermissionError",
    "now_ms",
    "default_avatar",
    "is_admin_email",
    "create_user_profile",
    "get_profile",
    "update_profile",
    "set_role",
    "members_query",
    "list_members",
    "load_role_table",
    "open_role_table",
]
