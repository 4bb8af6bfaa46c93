"""Request-facing authentication: registration, login and the current-user dependencies.

The store, identity provider and per-user sync contexts are process-wide
singletons created lazily; tests replace them through ``configure_runtime``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..clients.webhook import get_webhook_notifier
from ..config import get_settings
from ..constants import PRIVILEGED_ROLES
from ..schemas.documents import UserDocument
from ..sync.errors import DocumentNotFoundError, ExternalServiceUnavailable, SyncError
from ..sync.store import CollectionStore, SqlCollectionStore
from .admin_service import get_site_settings
from .identity_service import IdentityError, IdentityProvider, LocalIdentityProvider, create_access_token
from .profile_service import create_user_profile, get_profile
from .session import SyncContext, SyncContextRegistry

logger = logging.getLogger(__name__)

_security = HTTPBearer(auto_error=False)

_store: CollectionStore | None = None
_identity: IdentityProvider | None = None
_registry: SyncContextRegistry | None = None


def get_store() -> CollectionStore:
    global _store
    if _store is None:
        _store = SqlCollectionStore()
    return _store


def get_identity() -> IdentityProvider:
    global _identity
    if _identity is None:
        _identity = LocalIdentityProvider()
    return _identity


def get_registry() -> SyncContextRegistry:
    global _registry
    if _registry is None:
        _registry = SyncContextRegistry(get_store(), debounce_window=get_settings().toggle_debounce_seconds)
    return _registry


def configure_runtime(
    *,
    store: CollectionStore | None = None,
    identity: IdentityProvider | None = None,
) -> None:
    """Swap the process-wide collaborators; passing nothing resets them."""

    global _store, _identity, _registry
    _store = store
    _identity = identity
    _registry = None


@dataclass(frozen=True, slots=True)
class AccountGrant:
    profile: UserDocument
    token: str


async def register_account(*, email: str, password: str, display_name: str) -> AccountGrant:
    """Create credentials and the profile document, then issue a token.

    The credentials are removed again when the profile cannot be written, so
    a failed registration never leaves an account without a profile.
    """

    name = (display_name or "").strip()
    if not name:
        raise ValueError("Display name is required")
    identity = get_identity()
    uid = await identity.sign_up(email, password)
    try:
        profile = await create_user_profile(get_store(), uid=uid, display_name=name, email=email)
    except (SyncError, ValueError):
        logger.warning("Profile creation failed for %s; removing its credentials", uid)
        await identity.delete_account(uid)
        raise
    logger.info("Registered %s (%s)", uid, profile.role)
    get_webhook_notifier().fire(
        {"event": "registration", "displayName": profile.display_name, "role": profile.role}
    )
    return AccountGrant(profile=profile, token=create_access_token(uid))


async def login(*, email: str, password: str) -> AccountGrant:
    session = await get_identity().authenticate(email, password)
    try:
        profile = await get_profile(get_store(), session.uid)
    except DocumentNotFoundError as exc:
        raise IdentityError("Account has no profile") from exc
    return AccountGrant(profile=profile, token=session.token)


async def user_from_token(token: str) -> UserDocument:
    """Return the profile a bearer token belongs to.

    Raises ``IdentityError`` for a bad token and ``DocumentNotFoundError`` when
    the account has no profile.
    """

    uid = get_identity().verify_token(token)
    return await get_profile(get_store(), uid)


async def _resolve_user(token: str) -> UserDocument:
    try:
        return await user_from_token(token)
    except IdentityError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    except ExternalServiceUnavailable as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> UserDocument:
    """Resolve the authenticated user's profile from the provided bearer token."""

    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return await _resolve_user(credentials.credentials)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> UserDocument | None:
    if not credentials or credentials.scheme.lower() != "bearer":
        return None
    return await _resolve_user(credentials.credentials)


async def require_site_open(current_user: UserDocument = Depends(get_current_user)) -> UserDocument:
    """Reject non-admin users while the site is in maintenance mode."""

    if current_user.role not in PRIVILEGED_ROLES:
        site = await get_site_settings(get_store())
        if site.maintenance_mode:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Maintenance mode active")
    return current_user


def get_sync_context(current_user: UserDocument = Depends(require_site_open)) -> SyncContext:
    return get_registry().get(current_user.uid)


__all__ = [
    "AccountGrant",
    "configure_runtime",
    "get_store",
    "get_identity",
    "get_registry",
    "register_account",
    "login",
    "user_from_token",
    "get_current_user",
    "get_optional_user",
    "require_site_open",
    "get_sync_context",
]
