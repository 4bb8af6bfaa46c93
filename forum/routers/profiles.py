"""Profile routes: public profiles, owner edits and the member directory."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query as QueryParam

from ..schemas import MemberListResponse, ProfileResponse, ProfileUpdateRequest, SocialsPayload
from ..schemas.documents import UserDocument
from ..services import get_current_user, get_profile, get_store, list_members, update_profile
from ..sync.errors import SyncError
from ..sync.projections import badge_for
from .errors import http_error

router = APIRouter(prefix="/profiles", tags=["profiles"])

# Request attribute -> document field.
_FIELD_NAMES = {
    "display_name": "displayName",
    "bio": "bio",
    "age": "age",
    "gender": "gender",
    "interests": "interests",
    "socials": "socials",
    "photo_url": "photoURL",
}


def to_profile_response(profile: UserDocument) -> ProfileResponse:
    return ProfileResponse(
        uid=profile.uid,
        display_name=profile.display_name,
        email=profile.email,
        photo_url=profile.photo_url,
        bio=profile.bio,
        is_pro=profile.is_pro,
        role=profile.role,
        badge=badge_for(profile.role),
        joined_at=profile.joined_at,
        age=profile.age,
        gender=profile.gender,
        interests=profile.interests,
        socials=SocialsPayload(**profile.socials.model_dump()) if profile.socials else None,
        is_verified=profile.is_verified,
        verification_status=profile.verification_status,
    )


@router.get("/", response_model=MemberListResponse)
async def list_members_endpoint(
    limit: int = QueryParam(100, ge=1, le=500),
    current_user: UserDocument = Depends(get_current_user),
) -> MemberListResponse:
    members = await list_members(get_store(), limit=limit)
    return MemberListResponse(items=[to_profile_response(member) for member in members])


@router.get("/me", response_model=ProfileResponse)
async def my_profile_endpoint(current_user: UserDocument = Depends(get_current_user)) -> ProfileResponse:
    return to_profile_response(current_user)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile_endpoint(
    payload: ProfileUpdateRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> ProfileResponse:
    updates: dict[str, Any] = {
        _FIELD_NAMES[name]: value for name, value in payload.model_dump(exclude_unset=True).items()
    }
    try:
        profile = await update_profile(get_store(), actor=current_user, uid=current_user.uid, updates=updates)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_profile_response(profile)


@router.get("/{uid}", response_model=ProfileResponse)
async def get_profile_endpoint(uid: str, current_user: UserDocument = Depends(get_current_user)) -> ProfileResponse:
    try:
        profile = await get_profile(get_store(), uid)
    except SyncError as exc:
        raise http_error(exc) from exc
    return to_profile_response(profile)
