"""Credentials kept by the local identity provider."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, String

from forum.database import Base

from .base import TimestampMixin


def _new_uid() -> str:
    return uuid.uuid4().hex


class Credential(TimestampMixin, Base):
    __tablename__ = "credentials"

    uid = Column(String(64), primary_key=True, default=_new_uid)
    email = Column(String(320), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)


__all__ = ["Credential"]
