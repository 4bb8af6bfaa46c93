"""WebSocket endpoints that stream live query snapshots.

Each socket holds one live query plus the live role table. A fresh
rendering is pushed whenever either changes or the viewer's optimistic
view changes; identical renderings are not resent.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Literal, Optional

from fastapi import APIRouter, Query as QueryParam, WebSocket, WebSocketDisconnect, status

from ..config import get_settings
from ..constants import PRIVILEGED_ROLES, SITE_SETTINGS_ID
from ..schemas.documents import UserDocument, parse_documents
from ..services import (
    IdentityError,
    SyncContext,
    get_registry,
    get_store,
    open_comments,
    open_conversation,
    open_feed,
    open_inbox,
    open_lobby,
    open_pending_transactions,
    open_pending_verifications,
    open_role_table,
    open_site_settings,
    open_support_inbox,
    open_thread,
    user_from_token,
)
from ..sync.errors import DocumentValidationError, SubscriptionError, SyncError
from ..sync.live_query import Snapshot, SubscriptionHandle
from ..sync.projections import annotate_author_badges, page_of, summarize_threads
from .presenters import (
    feed_entries,
    optimistic_posts,
    to_comment_response,
    to_message_response,
    to_support_message_response,
    to_thread_summary_response,
    to_transaction_response,
    to_verification_response,
)

router = APIRouter()
logger = logging.getLogger(__name__)

Opener = Callable[[SyncContext, UserDocument], Awaitable[SubscriptionHandle]]
Renderer = Callable[[Snapshot, dict[str, str], SyncContext, UserDocument], list[Any]]


async def _authenticate(websocket: WebSocket, token: str | None) -> UserDocument | None:
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None
    try:
        return await user_from_token(token)
    except (IdentityError, SyncError):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return None


async def _serve(websocket: WebSocket, name: str, token: str | None, opener: Opener, renderer: Renderer) -> None:
    await websocket.accept()
    user = await _authenticate(websocket, token)
    if user is None:
        return
    context = get_registry().get(user.uid)
    wake = asyncio.Event()
    role_table: dict[str, str] = {}
    failure: list[SubscriptionError] = []

    def _on_roles(table: dict[str, str]) -> None:
        role_table.clear()
        role_table.update(table)
        wake.set()

    def _on_failure(error: SubscriptionError) -> None:
        failure.append(error)
        wake.set()

    try:
        handle = await opener(context, user)
    except SubscriptionError as exc:
        await websocket.send_json({"type": "error", "stream": name, "code": exc.code, "detail": str(exc)})
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    roles = await open_role_table(get_store(), _on_roles, _on_failure)
    remove_listener = context.engine.add_listener(wake.set)

    async def _pump() -> None:
        try:
            async for _snapshot in handle.stream():
                wake.set()
        except SubscriptionError as exc:
            _on_failure(exc)

    async def _send() -> None:
        last_payload: list[Any] | None = None
        while True:
            await wake.wait()
            wake.clear()
            if failure:
                error = failure[0]
                await websocket.send_json({"type": "error", "stream": name, "code": error.code, "detail": str(error)})
                await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
                return
            snapshot = handle.last_snapshot
            if snapshot is None:
                continue
            try:
                payload = renderer(snapshot, role_table, context, user)
            except DocumentValidationError:
                logger.exception("Skipping invalid %s snapshot %s", name, snapshot.sequence)
                continue
            if payload == last_payload:
                continue
            last_payload = payload
            await websocket.send_json(
                {"type": "snapshot", "stream": name, "sequence": snapshot.sequence, "items": payload}
            )

    pump = asyncio.create_task(_pump())
    sender = asyncio.create_task(_send())
    logger.info("%s socket opened for %s", name, user.uid)
    try:
        while not sender.done():
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                message = {"type": raw}
            if str(message.get("type") or "").lower() == "ping":
                await websocket.send_json({"type": "pong"})
    finally:
        handle.close()
        roles.close()
        remove_listener()
        for task in (pump, sender):
            task.cancel()
        await asyncio.gather(pump, sender, return_exceptions=True)
        logger.info("%s socket closed for %s", name, user.uid)


def _annotated_items(snapshot: Snapshot, role_table: dict[str, str], present) -> list[Any]:
    items = annotate_author_badges(parse_documents(snapshot.documents), role_table)
    return [present(item).model_dump(mode="json") for item in items]


@router.websocket("/ws/feed")
async def feed_socket(
    websocket: WebSocket,
    token: str | None = QueryParam(None),
    page: int = QueryParam(0, ge=0),
    post_type: Optional[Literal["text", "video"]] = QueryParam(None, alias="type"),
) -> None:
    settings = get_settings()

    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_feed(get_store(), limit=settings.feed_limit, post_type=post_type)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        posts = optimistic_posts(snapshot.documents, context.engine)
        entries = feed_entries(
            page_of(posts, settings.feed_page_size, page),
            role_table,
            viewer_id=user.uid,
            viewer_role=role_table.get(user.uid, user.role),
        )
        return [entry.model_dump(mode="json") for entry in entries]

    await _serve(websocket, "feed", token, _open, _render)


@router.websocket("/ws/posts/{post_id}/comments")
async def comments_socket(websocket: WebSocket, post_id: str, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_comments(get_store(), post_id)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return _annotated_items(snapshot, role_table, to_comment_response)

    await _serve(websocket, "comments", token, _open, _render)


@router.websocket("/ws/lobby")
async def lobby_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_lobby(get_store())

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return _annotated_items(snapshot, role_table, to_message_response)

    await _serve(websocket, "lobby", token, _open, _render)


@router.websocket("/ws/threads/{chat_id}")
async def thread_socket(websocket: WebSocket, chat_id: str, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_thread(get_store(), chat_id, user.uid)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return _annotated_items(snapshot, role_table, to_message_response)

    await _serve(websocket, "thread", token, _open, _render)


@router.websocket("/ws/inbox")
async def inbox_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_inbox(get_store(), user.uid)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        summaries = summarize_threads(parse_documents(snapshot.documents), user.uid)
        return [to_thread_summary_response(summary).model_dump(mode="json") for summary in summaries]

    await _serve(websocket, "inbox", token, _open, _render)


@router.websocket("/ws/settings")
async def settings_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_site_settings(get_store())

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        sites = [item for item in parse_documents(snapshot.documents) if item.id == SITE_SETTINGS_ID]
        maintenance = sites[0].maintenance_mode if sites else False
        return [{"maintenance_mode": maintenance}]

    await _serve(websocket, "settings", token, _open, _render)


@router.websocket("/ws/transactions/pending")
async def pending_transactions_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        if user.role not in PRIVILEGED_ROLES:
            raise SubscriptionError("Administrator role required", code="permission-denied")
        return await open_pending_transactions(get_store())

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return [to_transaction_response(item).model_dump(mode="json") for item in parse_documents(snapshot.documents)]

    await _serve(websocket, "pending-transactions", token, _open, _render)


@router.websocket("/ws/verifications/pending")
async def pending_verifications_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        if user.role not in PRIVILEGED_ROLES:
            raise SubscriptionError("Administrator role required", code="permission-denied")
        return await open_pending_verifications(get_store())

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return [to_verification_response(item).model_dump(mode="json") for item in parse_documents(snapshot.documents)]

    await _serve(websocket, "pending-verifications", token, _open, _render)


@router.websocket("/ws/support")
async def support_socket(
    websocket: WebSocket,
    token: str | None = QueryParam(None),
    conversation_id: str | None = QueryParam(None),
) -> None:
    """A support conversation; members get their own, admins may name any."""

    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_conversation(get_store(), conversation_id or user.uid, user)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return [to_support_message_response(item).model_dump(mode="json") for item in parse_documents(snapshot.documents)]

    await _serve(websocket, "support", token, _open, _render)


@router.websocket("/ws/support/inbox")
async def support_inbox_socket(websocket: WebSocket, token: str | None = QueryParam(None)) -> None:
    async def _open(context: SyncContext, user: UserDocument) -> SubscriptionHandle:
        return await open_support_inbox(get_store(), user)

    def _render(snapshot: Snapshot, role_table: dict[str, str], context: SyncContext, user: UserDocument) -> list[Any]:
        return [to_support_message_response(item).model_dump(mode="json") for item in parse_documents(snapshot.documents)]

    await _serve(websocket, "support-inbox", token, _open, _render)


__all__ = ["router"]
