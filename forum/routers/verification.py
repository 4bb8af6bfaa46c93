"""Identity verification routes: ID submissions and admin review."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status

from ..clients.imgbb import get_uploader
from ..schemas import VerificationListResponse, VerificationRequestResponse, VerificationReviewRequest
from ..schemas.documents import UserDocument
from ..services import (
    get_current_user,
    get_store,
    list_pending_verifications,
    require_admin,
    review_verification,
    submit_verification,
)
from ..sync.errors import SyncError
from .errors import http_error
from .presenters import to_verification_response

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/", response_model=VerificationRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_verification_endpoint(
    file: UploadFile = File(...),
    current_user: UserDocument = Depends(get_current_user),
) -> VerificationRequestResponse:
    """Upload an identity document and queue it for review."""

    try:
        image_url = await get_uploader().upload(await file.read(), filename=file.filename)
        request = await submit_verification(get_store(), user=current_user, image_url=image_url)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_verification_response(request)


@router.get("/pending", response_model=VerificationListResponse)
async def pending_verifications_endpoint(current_user: UserDocument = Depends(get_current_user)) -> VerificationListResponse:
    try:
        require_admin(current_user)
        requests = await list_pending_verifications(get_store())
    except SyncError as exc:
        raise http_error(exc) from exc
    return VerificationListResponse(items=[to_verification_response(item) for item in requests])


@router.post("/{request_id}/review", response_model=VerificationRequestResponse)
async def review_verification_endpoint(
    request_id: str,
    payload: VerificationReviewRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> VerificationRequestResponse:
    try:
        request = await review_verification(
            get_store(), reviewer=current_user, request_id=request_id, approve=payload.approve
        )
    except SyncError as exc:
        raise http_error(exc) from exc
    return to_verification_response(request)
