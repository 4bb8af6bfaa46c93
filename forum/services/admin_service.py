"""Admin dashboard: network counts, member roles and site-wide settings."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ..constants import COMMENTS, POSTS, PRIVILEGED_ROLES, ROLES, SETTINGS, SITE_SETTINGS_ID, USERS
from ..schemas.documents import SiteSettingsDocument, UserDocument, parse_document
from ..sync.errors import MutationError
from ..sync.live_query import ErrorHandler, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.operations import Merge
from ..sync.query import Query
from ..sync.store import CollectionStore
from .profile_service import set_role

logger = logging.getLogger(__name__)


class AdminPermissionError(MutationError):
    """The actor is not an administrator."""


@dataclass(frozen=True, slots=True)
class ForumStats:
    total_users: int
    total_posts: int
    total_comments: int


def require_admin(actor: UserDocument) -> None:
    if actor.role not in PRIVILEGED_ROLES:
        raise AdminPermissionError("Administrator role required")


async def forum_stats(store: CollectionStore) -> ForumStats:
    return ForumStats(
        total_users=await store.count(USERS),
        total_posts=await store.count(POSTS),
        total_comments=await store.count(COMMENTS),
    )


async def get_site_settings(store: CollectionStore) -> SiteSettingsDocument:
    document = await store.get_once(SETTINGS, SITE_SETTINGS_ID)
    if document is None:
        return SiteSettingsDocument(id=SITE_SETTINGS_ID)
    return parse_document(document)


async def set_maintenance_mode(store: CollectionStore, *, actor: UserDocument, enabled: bool) -> SiteSettingsDocument:
    require_admin(actor)
    document = await store.mutate(SETTINGS, SITE_SETTINGS_ID, Merge({"maintenanceMode": enabled}))
    assert document is not None
    logger.warning("Maintenance mode %s by %s", "enabled" if enabled else "disabled", actor.uid)
    return parse_document(document)


async def open_site_settings(
    store: CollectionStore,
    *,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    """Watch the settings collection; the site flags live in the ``site`` document."""

    return await open_query(store, Query(SETTINGS), on_snapshot, on_error)


async def change_member_role(store: CollectionStore, *, actor: UserDocument, uid: str, role: str) -> UserDocument:
    require_admin(actor)
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    if uid == actor.uid and role not in PRIVILEGED_ROLES:
        raise AdminPermissionError("Administrators cannot demote themselves", collection=USERS, doc_id=uid)
    profile = await set_role(store, uid, role, is_pro=role != "user")
    logger.info("Role of %s set to %s by %s", uid, role, actor.uid)
    return profile


__all__ = [
    "AdminPermissionError",
    "ForumStats",
    "require_admin",
    "forum_stats",
    "get_site_settings",
    "set_maintenance_mode",
    "open_site_settings",
    "change_member_role",
]
