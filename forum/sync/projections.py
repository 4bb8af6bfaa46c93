"""Pure projections from validated snapshots to display-ready structures.

Every function here recomputes its result from the full snapshot it is given,
never from earlier output, so a skipped or reordered snapshot cannot leave
stale state behind.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, TypeVar

from ..constants import AD_FREE_ROLES
from ..schemas.documents import ChatMessageDocument, CommentDocument, PostDocument
from .threads import thread_participants

T = TypeVar("T")

BADGES: dict[str, str] = {
    "admin": "ADMIN",
    "pro": "PRO",
    "premium": "PREMIUM",
}


@dataclass(frozen=True, slots=True)
class Annotated:
    item: Any
    role: str
    badge: str | None


@dataclass(frozen=True, slots=True)
class AdSlot:
    slot_id: str


@dataclass(frozen=True, slots=True)
class ThreadSummary:
    chat_id: str
    partner_id: str
    last_message: str
    last_sender_id: str
    last_sender_name: str
    last_timestamp: int
    partner_name: str | None
    partner_photo: str | None


@dataclass(frozen=True, slots=True)
class EngagementCounts:
    post_id: str
    like_count: int
    dislike_count: int
    comment_count: int
    viewer_has_liked: bool
    viewer_has_disliked: bool


def group_comments_by_post(
    comments: Iterable[CommentDocument],
    posts: Iterable[PostDocument] | None = None,
) -> dict[str, list[CommentDocument]]:
    """Comments per post id, oldest first.

    Known posts always get an entry; comments whose parent post is not in
    ``posts`` yet are still grouped under their ``post_id``.
    """

    grouped: dict[str, list[CommentDocument]] = {post.id: [] for post in posts or ()}
    for comment in sorted(comments, key=lambda item: (item.created_at, item.id)):
        grouped.setdefault(comment.post_id, []).append(comment)
    return grouped


def paginate_by(items: Sequence[T], count: int) -> list[list[T]]:
    if count <= 0:
        raise ValueError("count must be positive")
    return [list(items[start:start + count]) for start in range(0, len(items), count)]


def page_of(items: Sequence[T], count: int, page: int) -> list[T]:
    """Return page ``page`` (0-based) or an empty list past the end."""

    if page < 0:
        raise ValueError("page must be >= 0")
    pages = paginate_by(items, count)
    return pages[page] if page < len(pages) else []


def _author_of(item: Any) -> tuple[str | None, str | None]:
    if isinstance(item, ChatMessageDocument):
        return item.sender_id, item.sender_role
    return getattr(item, "author_id", None), getattr(item, "author_role", None)


def badge_for(role: str | None) -> str | None:
    return BADGES.get(role or "user")


def annotate_author_badges(items: Iterable[Any], role_table: Mapping[str, str]) -> list[Annotated]:
    """Attach the author's current role and badge.

    The live role table wins over the role copied onto the document when it
    was written, so promotions show up on old posts too.
    """

    annotated: list[Annotated] = []
    for item in items:
        author_id, stored_role = _author_of(item)
        role = (role_table.get(author_id) if author_id else None) or stored_role or "user"
        annotated.append(Annotated(item=item, role=role, badge=badge_for(role)))
    return annotated


def shows_ads(viewer_role: str | None) -> bool:
    return (viewer_role or "user") not in AD_FREE_ROLES


def place_ad_slots(items: Sequence[T], *, viewer_role: str | None, every: int = 3, prefix: str = "feed-ad") -> list[Any]:
    """Insert an ``AdSlot`` before every ``every``-th item for ad-supported viewers."""

    if every <= 0:
        raise ValueError("every must be positive")
    if not shows_ads(viewer_role):
        return list(items)
    placed: list[Any] = []
    for index, item in enumerate(items):
        if index > 0 and index % every == 0:
            placed.append(AdSlot(f"{prefix}-{index}"))
        placed.append(item)
    return placed


def summarize_threads(
    messages: Iterable[ChatMessageDocument],
    viewer_id: str,
    *,
    directory: Mapping[str, Mapping[str, Any]] | None = None,
) -> list[ThreadSummary]:
    """Latest message of each private thread the viewer takes part in, newest first.

    ``directory`` maps user ids to ``{"displayName", "photoURL"}`` for partner details.
    """

    latest: dict[str, ChatMessageDocument] = {}
    for message in messages:
        participants = thread_participants(message.chat_id)
        if participants is None or viewer_id not in participants:
            continue
        current = latest.get(message.chat_id or "")
        if current is None or (message.created_at, message.id) > (current.created_at, current.id):
            latest[message.chat_id or ""] = message

    summaries: list[ThreadSummary] = []
    for chat_id, message in latest.items():
        first, second = thread_participants(chat_id) or ("", "")
        partner_id = second if first == viewer_id else first
        partner_name: str | None = None
        partner_photo: str | None = None
        if directory is not None and partner_id in directory:
            partner_name = directory[partner_id].get("displayName")
            partner_photo = directory[partner_id].get("photoURL")
        elif message.sender_id == partner_id:
            partner_name = message.sender_name
            partner_photo = message.sender_photo
        summaries.append(
            ThreadSummary(
                chat_id=chat_id,
                partner_id=partner_id,
                last_message=message.text,
                last_sender_id=message.sender_id,
                last_sender_name=message.sender_name or "",
                last_timestamp=message.created_at,
                partner_name=partner_name,
                partner_photo=partner_photo,
            )
        )
    summaries.sort(key=lambda summary: (summary.last_timestamp, summary.chat_id), reverse=True)
    return summaries


def engagement_counts(post: PostDocument, viewer_id: str | None = None) -> EngagementCounts:
    return EngagementCounts(
        post_id=post.id,
        like_count=len(post.likes),
        dislike_count=len(post.dislikes),
        comment_count=post.comments_count,
        viewer_has_liked=bool(viewer_id) and viewer_id in post.likes,
        viewer_has_disliked=bool(viewer_id) and viewer_id in post.dislikes,
    )


__all__ = [
    "BADGES",
    "Annotated",
    "AdSlot",
    "ThreadSummary",
    "EngagementCounts",
    "group_comments_by_post",
    "paginate_by",
    "page_of",
    "badge_for",
    "annotate_author_badges",
    "shows_ads",
    "place_ad_slots",
    "summarize_threads",
    "engagement_counts",
]
