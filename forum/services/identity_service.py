"""Identity provider interface and the local SQL-backed stand-in."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..models import Credential
from ..security.secrets import MissingSecretError, configured_secret
from ..sync.errors import ExternalServiceUnavailable, SyncError

logger = logging.getLogger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class IdentityError(SyncError):
    """Credentials were rejected or an account already exists."""


@dataclass(frozen=True, slots=True)
class ForumSession:
    """An authenticated session: the stable user id and its bearer token."""

    uid: str
    email: str
    token: str


SessionCallback = Callable[[Optional[ForumSession]], None]


class IdentityProvider(ABC):
    """Narrow contract for the hosted identity service."""

    def __init__(self) -> None:
        self._current: ForumSession | None = None
        self._callbacks: list[SessionCallback] = []

    @property
    def current_session(self) -> ForumSession | None:
        return self._current

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> str:
        """Create an account and return its stable user id."""

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> ForumSession:
        """Verify credentials and return a session without changing the current one."""

    @abstractmethod
    async def delete_account(self, uid: str) -> None:
        """Remove the credentials of ``uid``; unknown ids are ignored."""

    @abstractmethod
    def verify_token(self, token: str) -> str:
        """Return the user id a token was issued for."""

    async def sign_in(self, email: str, password: str) -> ForumSession:
        session = await self.authenticate(email, password)
        self._set_current(session)
        return session

    async def sign_out(self) -> None:
        self._set_current(None)

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register ``callback``; it is invoked immediately with the current session."""

        self._callbacks.append(callback)
        callback(self._current)

        def _unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def _set_current(self, session: ForumSession | None) -> None:
        self._current = session
        for callback in list(self._callbacks):
            try:
                callback(session)
            except Exception:
                logger.exception("Session change callback raised")


def hash_password(password: str) -> str:
    """Hash a plain-text password using bcrypt."""

    return _pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed_password)
    except Exception:  # pragma: no cover - passlib internal errors are rare
        logger.exception("Password verification failed due to an unexpected error")
        return False


def _jwt_secret() -> str:
    try:
        return configured_secret(get_settings().jwt_secret_key, "JWT_SECRET_KEY")
    except MissingSecretError as exc:
        raise ExternalServiceUnavailable(str(exc)) from exc


def create_access_token(uid: str, *, expires_minutes: Optional[int] = None) -> str:
    settings = get_settings()
    expire_delta = timedelta(minutes=expires_minutes or settings.jwt_expires_minutes)
    now = datetime.now(timezone.utc)
    payload = {"sub": uid, "exp": now + expire_delta, "iat": now}
    return jwt.encode(payload, _jwt_secret(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    settings = get_settings()
    try:
        payload = jwt.decode(token, _jwt_secret(), algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise IdentityError("Invalid token") from exc
    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise IdentityError("Invalid token payload")
    return subject


class LocalIdentityProvider(IdentityProvider):
    """Email/password accounts in the local database with JWT bearer tokens."""

    def __init__(self, session_factory: Callable[[], Session] | None = None) -> None:
        super().__init__()
        if session_factory is None:
            from ..database import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    async def sign_up(self, email: str, password: str) -> str:
        normalized = email.strip().lower()
        if not normalized or not password:
            raise IdentityError("Email and password are required")
        return await run_in_threadpool(self._create_credential, normalized, password)

    async def authenticate(self, email: str, password: str) -> ForumSession:
        normalized = email.strip().lower()
        uid = await run_in_threadpool(self._check_credential, normalized, password)
        if uid is None:
            raise IdentityError("Invalid email or password")
        return ForumSession(uid=uid, email=normalized, token=create_access_token(uid))

    def verify_token(self, token: str) -> str:
        return decode_access_token(token)

    async def delete_account(self, uid: str) -> None:
        await run_in_threadpool(self._delete_credential, uid)

    def _create_credential(self, email: str, password: str) -> str:
        with self._session_factory() as db:
            existing = db.scalar(select(Credential).where(Credential.email == email))
            if existing is not None:
                raise IdentityError("Email already registered")
            credential = Credential(email=email, hashed_password=hash_password(password))
            try:
                db.add(credential)
                db.commit()
                db.refresh(credential)
            except IntegrityError as exc:
                db.rollback()
                raise IdentityError("Email already registered") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Failed to register %s", email)
                raise ExternalServiceUnavailable("Unable to register account") from exc
            return str(credential.uid)

    def _delete_credential(self, uid: str) -> None:
        with self._session_factory() as db:
            credential = db.get(Credential, uid)
            if credential is None:
                return
            try:
                db.delete(credential)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Failed to delete credentials of %s", uid)
                raise ExternalServiceUnavailable("Unable to delete account") from exc

    def _check_credential(self, email: str, password: str) -> str | None:
        with self._session_factory() as db:
            credential = db.scalar(select(Credential).where(Credential.email == email))
            if credential is None:
                return None
            if not verify_password(password, str(credential.hashed_password)):
                return None
            return str(credential.uid)


__all__ = [
    "IdentityError",
    "ForumSession",
    "IdentityProvider",
    "LocalIdentityProvider",
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_access_token",
]
