"""Admin dashboard routes and the public site settings."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import ForumStatsResponse, MaintenanceRequest, ProfileResponse, RoleChangeRequest, SiteSettingsResponse
from ..schemas.documents import UserDocument
from ..services import (
    change_member_role,
    forum_stats,
    get_current_user,
    get_site_settings,
    get_store,
    require_admin,
    set_maintenance_mode,
)
from ..sync.errors import SyncError
from .errors import http_error
from .profiles import to_profile_response

router = APIRouter(tags=["admin"])


@router.get("/settings/site", response_model=SiteSettingsResponse)
async def site_settings_endpoint() -> SiteSettingsResponse:
    try:
        site = await get_site_settings(get_store())
    except SyncError as exc:
        raise http_error(exc) from exc
    return SiteSettingsResponse(maintenance_mode=site.maintenance_mode)


@router.get("/admin/stats", response_model=ForumStatsResponse)
async def stats_endpoint(current_user: UserDocument = Depends(get_current_user)) -> ForumStatsResponse:
    try:
        require_admin(current_user)
        stats = await forum_stats(get_store())
    except SyncError as exc:
        raise http_error(exc) from exc
    return ForumStatsResponse(
        total_users=stats.total_users,
        total_posts=stats.total_posts,
        total_comments=stats.total_comments,
    )


@router.put("/admin/maintenance", response_model=SiteSettingsResponse)
async def maintenance_endpoint(
    payload: MaintenanceRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> SiteSettingsResponse:
    try:
        site = await set_maintenance_mode(get_store(), actor=current_user, enabled=payload.enabled)
    except SyncError as exc:
        raise http_error(exc) from exc
    return SiteSettingsResponse(maintenance_mode=site.maintenance_mode)


@router.put("/admin/members/{uid}/role", response_model=ProfileResponse)
async def change_role_endpoint(
    uid: str,
    payload: RoleChangeRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> ProfileResponse:
    try:
        profile = await change_member_role(get_store(), actor=current_user, uid=uid, role=payload.role)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_profile_response(profile)
