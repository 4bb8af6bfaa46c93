"""Schemas for the admin dashboard."""
from __future__ import annotations

from pydantic import BaseModel


class ForumStatsResponse(BaseModel):
    total_users: int
    total_posts: int
    total_comments: int


class SiteSettingsResponse(BaseModel):
    maintenance_mode: bool


class MaintenanceRequest(BaseModel):
    enabled: bool


class RoleChangeRequest(BaseModel):
    role: str
