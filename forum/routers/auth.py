"""Authentication routes: registration, login and the current profile."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas import AuthResponse, LoginRequest, ProfileResponse, RegisterRequest
from ..schemas.documents import UserDocument
from ..services import AccountGrant, IdentityError, get_current_user, login, register_account
from ..sync.errors import SyncError
from .errors import http_error
from .profiles import to_profile_response

router = APIRouter(prefix="/auth", tags=["auth"])


def _to_auth_response(grant: AccountGrant) -> AuthResponse:
    return AuthResponse(
        access_token=grant.token,
        user_id=grant.profile.uid,
        display_name=grant.profile.display_name,
        role=grant.profile.role,
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(payload: RegisterRequest) -> AuthResponse:
    try:
        grant = await register_account(
            email=str(payload.email),
            password=payload.password,
            display_name=payload.display_name,
        )
    except IdentityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return _to_auth_response(grant)


@router.post("/login", response_model=AuthResponse)
async def login_endpoint(payload: LoginRequest) -> AuthResponse:
    try:
        grant = await login(email=str(payload.email), password=payload.password)
    except IdentityError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials") from exc
    except SyncError as exc:
        raise http_error(exc) from exc
    return _to_auth_response(grant)


@router.get("/me", response_model=ProfileResponse)
async def me_endpoint(current_user: UserDocument = Depends(get_current_user)) -> ProfileResponse:
    return to_profile_response(current_user)
