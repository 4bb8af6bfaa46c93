"""Business logic for the public post feed and its comment threads."""
from __future__ import annotations

import logging
from urllib.parse import parse_qs, urlparse

from ..constants import COMMENTS, POSTS, PRIVILEGED_ROLES, VIDEO_POST, VIDEO_ROLES
from ..schemas.documents import CommentDocument, PostDocument, UserDocument, build_document_data, parse_document
from ..sync.errors import DocumentNotFoundError, MutationError, SyncError
from ..sync.live_query import ErrorHandler, SnapshotHandler, SubscriptionHandle, open_query
from ..sync.operations import Delete
from ..sync.optimistic import OptimisticMutationEngine
from ..sync.query import Document, FieldFilter, Order, Query
from ..sync.store import CollectionStore
from .profile_service import now_ms

logger = logging.getLogger(__name__)

LIKES = "likes"
DISLIKES = "dislikes"
COMMENTS_COUNT = "commentsCount"


class PostPermissionError(MutationError):
    """The actor may not create or delete this post."""


def feed_query(limit: int | None = None, *, author_id: str | None = None, post_type: str | None = None) -> Query:
    """Newest posts first, optionally narrowed to one author or one post type."""

    filters: list[FieldFilter] = []
    if author_id is not None:
        filters.append(FieldFilter("authorId", "==", author_id))
    if post_type is not None:
        filters.append(FieldFilter("type", "==", post_type))
    return Query(POSTS, tuple(filters), Order("createdAt", descending=True), limit)


def comments_query(post_id: str, limit: int | None = None) -> Query:
    return Query(COMMENTS, (FieldFilter("postId", "==", post_id),), Order("createdAt"), limit)


async def open_feed(
    store: CollectionStore,
    *,
    limit: int | None = None,
    author_id: str | None = None,
    post_type: str | None = None,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    return await open_query(store, feed_query(limit, author_id=author_id, post_type=post_type), on_snapshot, on_error)


async def open_comments(
    store: CollectionStore,
    post_id: str,
    *,
    on_snapshot: SnapshotHandler | None = None,
    on_error: ErrorHandler | None = None,
) -> SubscriptionHandle:
    return await open_query(store, comments_query(post_id), on_snapshot, on_error)


async def get_post_document(store: CollectionStore, post_id: str) -> Document:
    document = await store.get_once(POSTS, post_id)
    if document is None:
        raise DocumentNotFoundError(f"No post {post_id}", collection=POSTS, doc_id=post_id)
    return document


async def create_post(
    store: CollectionStore,
    *,
    author: UserDocument,
    content: str,
    image_url: str | None = None,
) -> PostDocument:
    """Create a new post for ``author``; text or an image is required."""

    text = (content or "").strip()
    if not text and not image_url:
        raise ValueError("A post needs text or an image")
    fields = {
        "authorId": author.uid,
        "authorName": author.display_name,
        "authorPhoto": author.photo_url,
        "authorRole": author.role,
        "authorVerified": author.is_verified,
        "content": text,
        "imageUrl": image_url,
        "likes": [],
        "dislikes": [],
        "commentsCount": 0,
        "createdAt": now_ms(),
    }
    document = await store.add(POSTS, build_document_data(POSTS, fields))
    logger.info("Post %s created by %s", document.id, author.uid)
    return parse_document(document)


def video_embed_url(video_url: str | None) -> str | None:
    """Return the YouTube embed address for a YouTube link, else ``None`` (played directly)."""

    if not video_url:
        return None
    parsed = urlparse(video_url)
    host = (parsed.hostname or "").lower()
    video_id: str | None = None
    if host == "youtu.be":
        video_id = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    elif host == "youtube.com" or host.endswith(".youtube.com"):
        video_id = (parse_qs(parsed.query).get("v") or [None])[0]
        if not video_id:
            video_id = parsed.path.rstrip("/").rsplit("/", 1)[-1]
    if not video_id:
        return None
    return f"https://www.youtube.com/embed/{video_id}"


async def create_video_post(
    store: CollectionStore,
    *,
    author: UserDocument,
    title: str,
    video_url: str,
) -> PostDocument:
    """Create a video post; hosting videos needs a premium, pro or admin role."""

    if author.role not in VIDEO_ROLES:
        raise PostPermissionError("Upgrade required to host video posts", collection=POSTS)
    heading = (title or "").strip()
    source = (video_url or "").strip()
    if not heading or not source:
        raise ValueError("A video post needs a title and a video URL")
    if urlparse(source).scheme not in ("http", "https"):
        raise ValueError("Video URL must be an http(s) address")
    fields = {
        "authorId": author.uid,
        "authorName": author.display_name,
        "authorPhoto": author.photo_url,
        "authorRole": author.role,
        "authorVerified": author.is_verified,
        "type": VIDEO_POST,
        "title": heading,
        "content": "",
        "videoUrl": source,
        "likes": [],
        "dislikes": [],
        "commentsCount": 0,
        "createdAt": now_ms(),
    }
    document = await store.add(POSTS, build_document_data(POSTS, fields))
    logger.info("Video post %s created by %s", document.id, author.uid)
    return parse_document(document)


async def delete_post(store: CollectionStore, *, actor: UserDocument, post_id: str) -> None:
    """Delete a post when the actor is its author or an admin."""

    post: PostDocument = parse_document(await get_post_document(store, post_id))
    if post.author_id != actor.uid and actor.role not in PRIVILEGED_ROLES:
        raise PostPermissionError("Not allowed to delete this post", collection=POSTS, doc_id=post_id)
    await store.mutate(POSTS, post_id, Delete())
    logger.info("Post %s deleted by %s", post_id, actor.uid)


async def toggle_like(
    engine: OptimisticMutationEngine,
    post: Document,
    actor_id: str,
    *,
    click_id: str | None = None,
) -> str | None:
    return await engine.toggle_membership(post, LIKES, DISLIKES, actor_id, click_id=click_id)


async def toggle_dislike(
    engine: OptimisticMutationEngine,
    post: Document,
    actor_id: str,
    *,
    click_id: str | None = None,
) -> str | None:
    return await engine.toggle_membership(post, DISLIKES, LIKES, actor_id, click_id=click_id)


async def add_comment(
    engine: OptimisticMutationEngine,
    *,
    post_id: str,
    author: UserDocument,
    text: str,
) -> CommentDocument:
    """Create a comment and bump the parent's ``commentsCount`` atomically.

    If the counter cannot be incremented the comment is removed again, so the
    count keeps matching the number of comments.
    """

    body = (text or "").strip()
    if not body:
        raise ValueError("Comment cannot be empty")
    store = engine.store
    fields = {
        "postId": post_id,
        "authorId": author.uid,
        "authorName": author.display_name,
        "authorPhoto": author.photo_url,
        "authorRole": author.role,
        "text": body,
        "createdAt": now_ms(),
    }
    document = await store.add(COMMENTS, build_document_data(COMMENTS, fields))
    try:
        await engine.increment_counter(POSTS, post_id, COMMENTS_COUNT, 1)
    except MutationError:
        try:
            await store.mutate(COMMENTS, document.id, Delete())
        except SyncError:
            logger.exception("Could not remove orphaned comment %s", document.id)
        raise
    return parse_document(document)


__all__ = [
    "LIKES",
    "DISLIKES",
    "COMMENTS_COUNT",
    "PostPermissionError",
    "feed_query",
    "comments_query",
    "open_feed",
    "open_comments",
    "get_post_document",
    "create_post",
    "video_embed_url",
    "create_video_post",
    "delete_post",
    "toggle_like",
    "toggle_dislike",
    "add_comment",
]
