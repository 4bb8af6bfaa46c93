"""Support inbox routes: member conversations with the admins."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query as QueryParam, status

from ..constants import DEFAULT_SUPPORT_SUBJECT, SUPPORT_SUBJECTS
from ..schemas import SupportMessageCreate, SupportMessageListResponse, SupportMessageResponse, SupportSubjectsResponse
from ..schemas.documents import UserDocument
from ..services import (
    get_current_user,
    get_store,
    list_conversation,
    list_support_messages,
    mark_replies_read,
    reply_to_conversation,
    send_support_message,
)
from ..sync.errors import SyncError
from .errors import http_error
from .presenters import to_support_message_response

router = APIRouter(prefix="/support", tags=["support"])


@router.get("/subjects", response_model=SupportSubjectsResponse)
async def subjects_endpoint() -> SupportSubjectsResponse:
    return SupportSubjectsResponse(subjects=list(SUPPORT_SUBJECTS), default=DEFAULT_SUPPORT_SUBJECT)


@router.get("/messages", response_model=SupportMessageListResponse)
async def my_conversation_endpoint(current_user: UserDocument = Depends(get_current_user)) -> SupportMessageListResponse:
    """The caller's own conversation; unread admin replies are marked read."""

    store = get_store()
    try:
        messages = await list_conversation(store, current_user.uid, current_user)
        await mark_replies_read(store, current_user, messages)
    except SyncError as exc:
        raise http_error(exc) from exc
    return SupportMessageListResponse(items=[to_support_message_response(item) for item in messages])


@router.post("/messages", response_model=SupportMessageResponse, status_code=status.HTTP_201_CREATED)
async def send_support_message_endpoint(
    payload: SupportMessageCreate,
    current_user: UserDocument = Depends(get_current_user),
) -> SupportMessageResponse:
    try:
        message = await send_support_message(
            get_store(), sender=current_user, text=payload.message, subject=payload.subject
        )
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_support_message_response(message)


@router.get("/inbox", response_model=SupportMessageListResponse)
async def support_inbox_endpoint(
    limit: int = QueryParam(500, ge=1, le=1000),
    current_user: UserDocument = Depends(get_current_user),
) -> SupportMessageListResponse:
    try:
        messages = await list_support_messages(get_store(), current_user, limit=limit)
    except SyncError as exc:
        raise http_error(exc) from exc
    return SupportMessageListResponse(items=[to_support_message_response(item) for item in messages])


@router.get("/conversations/{conversation_id}", response_model=SupportMessageListResponse)
async def conversation_endpoint(
    conversation_id: str,
    current_user: UserDocument = Depends(get_current_user),
) -> SupportMessageListResponse:
    try:
        messages = await list_conversation(get_store(), conversation_id, current_user)
    except SyncError as exc:
        raise http_error(exc) from exc
    return SupportMessageListResponse(items=[to_support_message_response(item) for item in messages])


@router.post(
    "/conversations/{conversation_id}/replies",
    response_model=SupportMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def reply_endpoint(
    conversation_id: str,
    payload: SupportMessageCreate,
    current_user: UserDocument = Depends(get_current_user),
) -> SupportMessageResponse:
    try:
        message = await reply_to_conversation(
            get_store(),
            admin=current_user,
            conversation_id=conversation_id,
            text=payload.message,
            subject=payload.subject,
        )
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_support_message_response(message)
