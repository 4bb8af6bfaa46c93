"""Member-to-admin support conversations over the ``adminMessages`` collection.

Every member has exactly one conversation, keyed by their uid. Members write
into their own conversation; admins reply into any of them. Admin replies are
marked read once the member has seen them.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from ..constants import ADMIN_MESSAGES, DEFAULT_SUPPORT_SUBJECT, PRIVILEGED_ROLES, SUPPORT_SUBJECTS
from ..schemas.documents import SupportMessageDocument, UserDocument, build_document_data, parse_document, parse_documents
from ..sync.errors import MutationError, SubscriptionError, SyncError
from ..sync.live_query import ErrorHandler, Snapshot, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.operations import Merge
from ..sync.query import FieldFilter, Order, Query
from ..sync.store import CollectionStore
from .profile_service import get_profile, now_ms

logger = logging.getLogger(__name__)

MAX_SUPPORT_MESSAGE_LENGTH = 2000

# Mark-read writes started from snapshot callbacks; kept so they are not collected mid-flight.
_mark_tasks: set[asyncio.Task] = set()


class SupportPermissionError(MutationError):
    """The actor may not write to this support conversation."""


def conversation_query(conversation_id: str) -> Query:
    return Query(ADMIN_MESSAGES, (FieldFilter("conversationId", "==", conversation_id),), Order("createdAt"))


def support_inbox_query(limit: int | None = None) -> Query:
    return Query(ADMIN_MESSAGES, order=Order("createdAt", descending=True), limit=limit)


def _can_read(conversation_id: str, viewer: UserDocument) -> bool:
    return viewer.uid == conversation_id or viewer.role in PRIVILEGED_ROLES


def _clean(text: str, subject: str | None) -> tuple[str, str]:
    body = (text or "").strip()
    if not body:
        raise ValueError("Message cannot be empty")
    if len(body) > MAX_SUPPORT_MESSAGE_LENGTH:
        raise ValueError(f"Message exceeds {MAX_SUPPORT_MESSAGE_LENGTH} characters")
    topic = subject or DEFAULT_SUPPORT_SUBJECT
    if topic not in SUPPORT_SUBJECTS:
        raise ValueError(f"Unknown support subject: {topic}")
    return body, topic


async def _append(
    store: CollectionStore,
    *,
    conversation_id: str,
    sender: UserDocument,
    body: str,
    subject: str,
    is_admin_reply: bool,
) -> SupportMessageDocument:
    fields = {
        "conversationId": conversation_id,
        "senderId": sender.uid,
        "senderName": sender.display_name,
        "senderEmail": sender.email,
        "senderPhoto": sender.photo_url,
        "subject": subject,
        "message": body,
        "createdAt": now_ms(),
        "read": False,
        "isAdminReply": is_admin_reply,
    }
    document = await store.add(ADMIN_MESSAGES, build_document_data(ADMIN_MESSAGES, fields))
    return parse_document(document)


async def send_support_message(
    store: CollectionStore,
    *,
    sender: UserDocument,
    text: str,
    subject: str | None = None,
) -> SupportMessageDocument:
    """Append a member message to the sender's own conversation."""

    body, topic = _clean(text, subject)
    message = await _append(
        store, conversation_id=sender.uid, sender=sender, body=body, subject=topic, is_admin_reply=False
    )
    logger.info("Support message %s from %s (%s)", message.id, sender.uid, topic)
    return message


async def reply_to_conversation(
    store: CollectionStore,
    *,
    admin: UserDocument,
    conversation_id: str,
    text: str,
    subject: str | None = None,
) -> SupportMessageDocument:
    """Append an admin reply to a member's conversation."""

    if admin.role not in PRIVILEGED_ROLES:
        raise SupportPermissionError(
            "Only admins can reply to support conversations", collection=ADMIN_MESSAGES, doc_id=conversation_id
        )
    body, topic = _clean(text, subject)
    await get_profile(store, conversation_id)
    message = await _append(
        store, conversation_id=conversation_id, sender=admin, body=body, subject=topic, is_admin_reply=True
    )
    logger.info("Support reply %s to %s by %s", message.id, conversation_id, admin.uid)
    return message


async def list_conversation(
    store: CollectionStore,
    conversation_id: str,
    viewer: UserDocument,
) -> list[SupportMessageDocument]:
    if not _can_read(conversation_id, viewer):
        raise SubscriptionError(f"{viewer.uid} cannot read conversation {conversation_id}", code="permission-denied")
    return parse_documents(await store.run_query(conversation_query(conversation_id)))


async def mark_replies_read(
    store: CollectionStore,
    viewer: UserDocument,
    messages: Iterable[SupportMessageDocument],
) -> int:
    """Mark the unread admin replies of the viewer's own conversation as read."""

    marked = 0
    for message in messages:
        if message.conversation_id != viewer.uid or not message.is_admin_reply or message.read:
            continue
        await store.mutate(ADMIN_MESSAGES, message.id, Merge({"read": True}))
        marked += 1
    return marked


def _schedule_mark_read(store: CollectionStore, viewer: UserDocument, snapshot: Snapshot) -> None:
    messages = parse_documents(snapshot.documents)
    if not any(m.is_admin_reply and not m.read and m.conversation_id == viewer.uid for m in messages):
        return

    async def _mark() -> None:
        try:
            await mark_replies_read(store, viewer, messages)
        except SyncError:
            logger.exception("Could not mark support replies read for %s", viewer.uid)

    task = asyncio.get_running_loop().create_task(_mark())
    _mark_tasks.add(task)
    task.add_done_callback(_mark_tasks.discard)


async def open_conversation(
    store: CollectionStore,
    conversation_id: str,
    viewer: UserDocument,
    *,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    """Subscribe to a support conversation.

    When the viewer owns the conversation, admin replies in each snapshot are
    marked read in the background.
    """

    if not _can_read(conversation_id, viewer):
        raise SubscriptionError(f"{viewer.uid} cannot read conversation {conversation_id}", code="permission-denied")

    def _on_snapshot(snapshot: Snapshot) -> None:
        if viewer.uid == conversation_id:
            _schedule_mark_read(store, viewer, snapshot)
        if on_snapshot is not None:
            on_snapshot(snapshot)

    return await open_query(store, conversation_query(conversation_id), _on_snapshot, on_error)


async def list_support_messages(store: CollectionStore, admin: UserDocument, *, limit: int = 500) -> list[SupportMessageDocument]:
    """All support messages, newest first; admins only."""

    if admin.role not in PRIVILEGED_ROLES:
        raise SubscriptionError("Administrator role required", code="permission-denied")
    return parse_documents(await store.run_query(support_inbox_query(limit)))


async def open_support_inbox(
    store: CollectionStore,
    admin: UserDocument,
    *,
    limit: int = 500,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    if admin.role not in PRIVILEGED_ROLES:
        raise SubscriptionError("Administrator role required", code="permission-denied")
    return await open_query(store, support_inbox_query(limit), on_snapshot, on_error)


__all__ = [
    "MAX_SUPPORT_MESSAGE_LENGTH",
    "SupportPermissionError",
    "conversation_query",
    "support_inbox_query",
    "send_support_message",
    "reply_to_conversation",
    "list_conversation",
    "mark_replies_read",
    "open_conversation",
    "list_support_messages",
    "open_support_inbox",
]
