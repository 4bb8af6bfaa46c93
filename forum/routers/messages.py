"""Chat routes: the global lobby, private threads and the inbox."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..schemas import DirectThreadResponse, InboxResponse, MessageListResponse, MessageResponse, MessageSendRequest
from ..schemas.documents import UserDocument
from ..services import (
    get_current_user,
    get_profile,
    get_store,
    list_inbox_messages,
    list_lobby,
    list_thread,
    load_role_table,
    require_site_open,
    send_message,
    start_direct_thread,
)
from ..sync.errors import SyncError
from ..sync.projections import annotate_author_badges, summarize_threads
from .errors import http_error
from .presenters import to_message_response, to_thread_summary_response

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/lobby", response_model=MessageListResponse)
async def lobby_endpoint(current_user: UserDocument = Depends(get_current_user)) -> MessageListResponse:
    store = get_store()
    try:
        messages = await list_lobby(store)
        role_table = await load_role_table(store)
    except SyncError as exc:
        raise http_error(exc) from exc
    return MessageListResponse(
        chat_id=None,
        items=[to_message_response(item) for item in annotate_author_badges(messages, role_table)],
    )


@router.post("/lobby", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_lobby_message_endpoint(
    payload: MessageSendRequest,
    current_user: UserDocument = Depends(require_site_open),
) -> MessageResponse:
    try:
        message = await send_message(get_store(), sender=current_user, text=payload.text)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_message_response(annotate_author_badges([message], {current_user.uid: current_user.role})[0])


@router.post("/direct/{partner_id}", response_model=DirectThreadResponse)
async def start_direct_thread_endpoint(
    partner_id: str,
    current_user: UserDocument = Depends(get_current_user),
) -> DirectThreadResponse:
    try:
        await get_profile(get_store(), partner_id)
        chat_id = start_direct_thread(current_user.uid, partner_id)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return DirectThreadResponse(chat_id=chat_id, partner_id=partner_id)


@router.get("/inbox", response_model=InboxResponse)
async def inbox_endpoint(current_user: UserDocument = Depends(get_current_user)) -> InboxResponse:
    try:
        messages = await list_inbox_messages(get_store(), current_user.uid)
    except SyncError as exc:
        raise http_error(exc) from exc
    summaries = summarize_threads(messages, current_user.uid)
    return InboxResponse(items=[to_thread_summary_response(summary) for summary in summaries])


@router.get("/threads/{chat_id}", response_model=MessageListResponse)
async def thread_endpoint(chat_id: str, current_user: UserDocument = Depends(get_current_user)) -> MessageListResponse:
    store = get_store()
    try:
        messages = await list_thread(store, chat_id, current_user.uid)
        role_table = await load_role_table(store)
    except SyncError as exc:
        raise http_error(exc) from exc
    return MessageListResponse(
        chat_id=chat_id,
        items=[to_message_response(item) for item in annotate_author_badges(messages, role_table)],
    )


@router.post("/threads/{chat_id}", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_thread_message_endpoint(
    chat_id: str,
    payload: MessageSendRequest,
    current_user: UserDocument = Depends(require_site_open),
) -> MessageResponse:
    try:
        message = await send_message(get_store(), sender=current_user, text=payload.text, chat_id=chat_id)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_message_response(annotate_author_badges([message], {current_user.uid: current_user.role})[0])
