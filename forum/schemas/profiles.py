"""Schemas for profile endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class SocialsPayload(BaseModel):
    telegram: str = Field(default="", max_length=128)
    facebook: str = Field(default="", max_length=256)


class ProfileResponse(BaseModel):
    uid: str
    display_name: str
    email: str
    photo_url: str
    bio: str
    is_pro: bool
    role: str
    badge: str | None = None
    joined_at: int
    age: int | None = None
    gender: str | None = None
    interests: str | None = None
    socials: SocialsPayload | None = None
    is_verified: bool = False
    verification_status: str | None = None


class ProfileUpdateRequest(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=64)
    bio: str | None = Field(default=None, max_length=500)
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = Field(default=None, max_length=32)
    interests: str | None = Field(default=None, max_length=500)
    socials: SocialsPayload | None = None
    photo_url: str | None = None


class MemberListResponse(BaseModel):
    items: list[ProfileResponse]
