"""Bio suggestions and the support assistant."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..schemas import BioRequest, BioResponse, SupportRequest, SupportResponse
from ..schemas.documents import UserDocument
from ..services import generate_bio, get_current_user, support_response

router = APIRouter(prefix="/ai", tags=["ai"])


@router.post("/bio", response_model=BioResponse)
async def bio_endpoint(payload: BioRequest, current_user: UserDocument = Depends(get_current_user)) -> BioResponse:
    return BioResponse(bio=await generate_bio(payload.interests))


@router.post("/support", response_model=SupportResponse)
async def support_endpoint(
    payload: SupportRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> SupportResponse:
    return SupportResponse(reply=await support_response(payload.query))
