"""Schemas for identity verification requests."""
from __future__ import annotations

from pydantic import BaseModel


class VerificationRequestResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    user_photo: str
    image_url: str
    status: str
    created_at: int


class VerificationListResponse(BaseModel):
    items: list[VerificationRequestResponse]


class VerificationReviewRequest(BaseModel):
    approve: bool
