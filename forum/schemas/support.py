"""Schemas for support conversations."""
from __future__ import annotations

from pydantic import BaseModel, Field


class SupportMessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)
    subject: str | None = None


class SupportMessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_name: str
    sender_photo: str
    subject: str
    message: str
    created_at: int
    read: bool
    is_admin_reply: bool


class SupportMessageListResponse(BaseModel):
    items: list[SupportMessageResponse]


class SupportSubjectsResponse(BaseModel):
    subjects: list[str]
    default: str
