"""Schemas for bio suggestions and the support assistant."""
from __future__ import annotations

from pydantic import BaseModel, Field


class BioRequest(BaseModel):
    interests: str = Field(..., min_length=1, max_length=500)


class BioResponse(BaseModel):
    bio: str


class SupportRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=2000)


class SupportResponse(BaseModel):
    reply: str
