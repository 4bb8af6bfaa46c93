"""Schemas for Pro upgrade requests."""
from __future__ import annotations

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_email: str
    tx_id: str
    image_url: str | None = None
    status: str
    plan: str
    created_at: int


class TransactionListResponse(BaseModel):
    items: list[TransactionResponse]


class TransactionReviewRequest(BaseModel):
    approve: bool
