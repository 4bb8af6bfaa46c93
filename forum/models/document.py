"""SQLAlchemy ORM model backing the reference document store."""
from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, PrimaryKeyConstraint, String

from forum.database import Base

from .base import TimestampMixin


class DocumentRecord(TimestampMixin, Base):
    """One document of one collection, stored as a JSON object."""

    __tablename__ = "documents"

    collection = Column(String(64), nullable=False, index=True)
    doc_id = Column(String(128), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    # Bumped on every committed write; lets listeners tell stale rows apart.
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (PrimaryKeyConstraint("collection", "doc_id", name="pk_documents"),)


__all__ = ["DocumentRecord"]
