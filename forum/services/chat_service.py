"""Global lobby and private 1:1 threads over the ``messages`` collection."""
from __future__ import annotations

import logging

from ..config import get_settings
from ..constants import MESSAGES
from ..schemas.documents import ChatMessageDocument, UserDocument, build_document_data, parse_document, parse_documents
from ..sync.errors import MutationError, SubscriptionError
from ..sync.live_query import ErrorHandler, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.query import FieldFilter, Order, Query
from ..sync.store import CollectionStore
from ..sync.threads import is_participant, thread_id, thread_participants
from .profile_service import now_ms

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


class ChatPermissionError(MutationError):
    """The sender is not a participant of the private thread."""


def lobby_query(limit: int | None = None) -> Query:
    # Lobby messages carry no chatId at all.
    return Query(MESSAGES, (FieldFilter("chatId", "==", None),), Order("createdAt"), limit)


def thread_query(chat_id: str, limit: int | None = None) -> Query:
    return Query(MESSAGES, (FieldFilter("chatId", "==", chat_id),), Order("createdAt"), limit)


def inbox_query(viewer_id: str, limit: int | None = None) -> Query:
    return Query(
        MESSAGES,
        (FieldFilter("participants", "array-contains", viewer_id),),
        Order("createdAt", descending=True),
        limit,
    )


def start_direct_thread(viewer_id: str, partner_id: str) -> str:
    """Return the thread id shared by the viewer and ``partner_id``."""

    return thread_id(viewer_id, partner_id)


async def open_lobby(
    store: CollectionStore,
    *,
    limit: int | None = None,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    if limit is None:
        limit = get_settings().lobby_message_limit
    return await open_query(store, lobby_query(limit), on_snapshot, on_error)


async def open_thread(
    store: CollectionStore,
    chat_id: str,
    viewer_id: str,
    *,
    limit: int | None = None,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    """Subscribe to a private thread the viewer takes part in."""

    if not is_participant(chat_id, viewer_id):
        raise SubscriptionError(f"{viewer_id} is not a participant of {chat_id}", code="permission-denied")
    if limit is None:
        limit = get_settings().thread_message_limit
    return await open_query(store, thread_query(chat_id, limit), on_snapshot, on_error)


async def open_inbox(
    store: CollectionStore,
    viewer_id: str,
    *,
    limit: int | None = None,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    if limit is None:
        limit = get_settings().inbox_scan_limit
    return await open_query(store, inbox_query(viewer_id, limit), on_snapshot, on_error)


async def list_lobby(store: CollectionStore, *, limit: int | None = None) -> list[ChatMessageDocument]:
    if limit is None:
        limit = get_settings().lobby_message_limit
    return parse_documents(await store.run_query(lobby_query(limit)))


async def list_thread(
    store: CollectionStore,
    chat_id: str,
    viewer_id: str,
    *,
    limit: int | None = None,
) -> list[ChatMessageDocument]:
    if not is_participant(chat_id, viewer_id):
        raise SubscriptionError(f"{viewer_id} is not a participant of {chat_id}", code="permission-denied")
    if limit is None:
        limit = get_settings().thread_message_limit
    return parse_documents(await store.run_query(thread_query(chat_id, limit)))


async def list_inbox_messages(store: CollectionStore, viewer_id: str) -> list[ChatMessageDocument]:
    limit = get_settings().inbox_scan_limit
    return parse_documents(await store.run_query(inbox_query(viewer_id, limit)))


async def send_message(
    store: CollectionStore,
    *,
    sender: UserDocument,
    text: str,
    chat_id: str | None = None,
) -> ChatMessageDocument:
    """Append a message to the lobby (``chat_id=None``) or a private thread."""

    body = (text or "").strip()
    if not body:
        raise ValueError("Message cannot be empty")
    if len(body) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Message exceeds {MAX_MESSAGE_LENGTH} characters")

    fields = {
        "senderId": sender.uid,
        "senderName": sender.display_name,
        "senderPhoto": sender.photo_url,
        "senderRole": sender.role,
        "text": body,
        "createdAt": now_ms(),
    }
    if chat_id is not None:
        participants = thread_participants(chat_id)
        if participants is None:
            raise ValueError(f"Not a private thread id: {chat_id}")
        if sender.uid not in participants:
            raise ChatPermissionError(
                "Only thread participants can send messages", collection=MESSAGES, doc_id=chat_id
            )
        fields["chatId"] = chat_id
        fields["participants"] = list(participants)

    document = await store.add(MESSAGES, build_document_data(MESSAGES, fields))
    logger.debug("Message %s sent to %s", document.id, chat_id or "lobby")
    return parse_document(document)


__all__ = [
    "MAX_MESSAGE_LENGTH",
    "ChatPermissionError",
    "lobby_query",
    "thread_query",
    "inbox_query",
    "start_direct_thread",
    "open_lobby",
    "open_thread",
    "open_inbox",
    "list_lobby",
    "list_thread",
    "list_inbox_messages",
    "send_message",
]
