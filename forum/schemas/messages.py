"""Schemas used by messaging endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class MessageSendRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class MessageResponse(BaseModel):
    id: str
    chat_id: str | None = None
    sender_id: str
    sender_name: str | None = None
    sender_photo: str | None = None
    sender_role: str
    badge: str | None = None
    text: str
    created_at: int


class MessageListResponse(BaseModel):
    chat_id: str | None = None
    items: list[MessageResponse]


class DirectThreadResponse(BaseModel):
    chat_id: str
    partner_id: str


class ThreadSummaryResponse(BaseModel):
    chat_id: str
    partner_id: str
    partner_name: str | None = None
    partner_photo: str | None = None
    last_message: str
    last_sender_id: str
    last_sender_name: str
    last_timestamp: int


class InboxResponse(BaseModel):
    items: list[ThreadSummaryResponse]
