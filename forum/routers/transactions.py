"""Pro upgrade routes: submitting payment references and admin review."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from ..clients.imgbb import get_uploader
from ..schemas import TransactionListResponse, TransactionResponse, TransactionReviewRequest
from ..schemas.documents import UserDocument
from ..services import (
    get_current_user,
    get_store,
    list_pending_transactions,
    list_user_transactions,
    require_admin,
    review_transaction,
    submit_upgrade,
)
from ..sync.errors import SyncError
from .errors import http_error
from .presenters import to_transaction_response

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("/", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def submit_upgrade_endpoint(
    tx_id: str = Form(..., min_length=1, max_length=128),
    file: UploadFile | None = File(None),
    current_user: UserDocument = Depends(get_current_user),
) -> TransactionResponse:
    """Submit a payment reference, optionally with a receipt screenshot."""

    try:
        image_url = None
        if file is not None:
            image_url = await get_uploader().upload(await file.read(), filename=file.filename)
        transaction = await submit_upgrade(get_store(), user=current_user, tx_id=tx_id, image_url=image_url)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_transaction_response(transaction)


@router.get("/mine", response_model=TransactionListResponse)
async def my_transactions_endpoint(current_user: UserDocument = Depends(get_current_user)) -> TransactionListResponse:
    try:
        transactions = await list_user_transactions(get_store(), current_user.uid)
    except SyncError as exc:
        raise http_error(exc) from exc
    return TransactionListResponse(items=[to_transaction_response(item) for item in transactions])


@router.get("/pending", response_model=TransactionListResponse)
async def pending_transactions_endpoint(current_user: UserDocument = Depends(get_current_user)) -> TransactionListResponse:
    try:
        require_admin(current_user)
        transactions = await list_pending_transactions(get_store())
    except SyncError as exc:
        raise http_error(exc) from exc
    return TransactionListResponse(items=[to_transaction_response(item) for item in transactions])


@router.post("/{transaction_id}/review", response_model=TransactionResponse)
async def review_transaction_endpoint(
    transaction_id: str,
    payload: TransactionReviewRequest,
    current_user: UserDocument = Depends(get_current_user),
) -> TransactionResponse:
    try:
        transaction = await review_transaction(
            get_store(), reviewer=current_user, transaction_id=transaction_id, approve=payload.approve
        )
    except SyncError as exc:
        raise http_error(exc) from exc
    return to_transaction_response(transaction)
