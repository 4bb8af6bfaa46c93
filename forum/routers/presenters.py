"""Shape validated documents and projections into response schemas.

Shared by the REST routes and the WebSocket snapshot streams so both
render the same view of a snapshot.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from ..schemas import (
    CommentResponse,
    FeedEntry,
    MessageResponse,
    PostEngagementResponse,
    PostResponse,
    SupportMessageResponse,
    ThreadSummaryResponse,
    TransactionResponse,
    VerificationRequestResponse,
)
from ..schemas.documents import (
    ChatMessageDocument,
    CommentDocument,
    PostDocument,
    SupportMessageDocument,
    TransactionDocument,
    VerificationRequestDocument,
    parse_documents,
)
from ..services.feed_service import video_embed_url
from ..sync.optimistic import OptimisticMutationEngine
from ..sync.projections import (
    AdSlot,
    Annotated,
    ThreadSummary,
    annotate_author_badges,
    engagement_counts,
    place_ad_slots,
)
from ..sync.query import Document


def to_post_response(annotated: Annotated, viewer_id: str | None) -> PostResponse:
    post: PostDocument = annotated.item
    counts = engagement_counts(post, viewer_id)
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        author_name=post.author_name,
        author_photo=post.author_photo,
        author_role=annotated.role,
        badge=annotated.badge,
        author_verified=post.author_verified,
        post_type=post.post_type,
        title=post.title,
        content=post.content,
        image_url=post.image_url,
        video_url=post.video_url,
        embed_url=video_embed_url(post.video_url),
        created_at=post.created_at,
        like_count=counts.like_count,
        dislike_count=counts.dislike_count,
        comment_count=counts.comment_count,
        viewer_has_liked=counts.viewer_has_liked,
        viewer_has_disliked=counts.viewer_has_disliked,
    )


def to_engagement_response(post: PostDocument, viewer_id: str | None) -> PostEngagementResponse:
    counts = engagement_counts(post, viewer_id)
    return PostEngagementResponse(
        post_id=counts.post_id,
        like_count=counts.like_count,
        dislike_count=counts.dislike_count,
        comment_count=counts.comment_count,
        viewer_has_liked=counts.viewer_has_liked,
        viewer_has_disliked=counts.viewer_has_disliked,
    )


def to_comment_response(annotated: Annotated) -> CommentResponse:
    comment: CommentDocument = annotated.item
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        author_id=comment.author_id,
        author_name=comment.author_name,
        author_photo=comment.author_photo,
        author_role=annotated.role,
        badge=annotated.badge,
        text=comment.text,
        created_at=comment.created_at,
    )


def to_message_response(annotated: Annotated) -> MessageResponse:
    message: ChatMessageDocument = annotated.item
    return MessageResponse(
        id=message.id,
        chat_id=message.chat_id,
        sender_id=message.sender_id,
        sender_name=message.sender_name,
        sender_photo=message.sender_photo,
        sender_role=annotated.role,
        badge=annotated.badge,
        text=message.text,
        created_at=message.created_at,
    )


def to_thread_summary_response(summary: ThreadSummary) -> ThreadSummaryResponse:
    return ThreadSummaryResponse(
        chat_id=summary.chat_id,
        partner_id=summary.partner_id,
        partner_name=summary.partner_name,
        partner_photo=summary.partner_photo,
        last_message=summary.last_message,
        last_sender_id=summary.last_sender_id,
        last_sender_name=summary.last_sender_name,
        last_timestamp=summary.last_timestamp,
    )


def to_transaction_response(transaction: TransactionDocument) -> TransactionResponse:
    return TransactionResponse(
        id=transaction.id,
        user_id=transaction.user_id,
        user_name=transaction.user_name,
        user_email=transaction.user_email,
        tx_id=transaction.tx_id,
        image_url=transaction.image_url,
        status=transaction.status,
        plan=transaction.plan,
        created_at=transaction.created_at,
    )



def to_support_message_response(message: SupportMessageDocument) -> SupportMessageResponse:
    return SupportMessageResponse(
        id=message.id,
        conversation_id=message.conversation_id,
        sender_id=message.sender_id,
        sender_name=message.sender_name,
        sender_photo=message.sender_photo,
        subject=message.subject,
        message=message.message,
        created_at=message.created_at,
        read=message.read,
        is_admin_reply=message.is_admin_reply,
    )


def to_verification_response(request: VerificationRequestDocument) -> VerificationRequestResponse:
    return VerificationRequestResponse(
        id=request.id,
        user_id=request.user_id,
        user_name=request.user_name,
        user_photo=request.user_photo,
        image_url=request.image_url,
        status=request.status,
        created_at=request.created_at,
    )

def optimistic_posts(documents: Iterable[Document], engine: OptimisticMutationEngine | None) -> list[PostDocument]:
    """Fold a snapshot into the engine and return the posts as the viewer sees them."""

    documents = list(documents)
    if engine is not None:
        engine.reconcile(documents)
        documents = engine.view_all(documents)
    return parse_documents(documents)


def feed_entries(
    posts: Sequence[PostDocument],
    role_table: Mapping[str, str],
    *,
    viewer_id: str | None,
    viewer_role: str | None,
) -> list[FeedEntry]:
    annotated = annotate_author_badges(posts, role_table)
    entries: list[FeedEntry] = []
    for item in place_ad_slots(annotated, viewer_role=viewer_role):
        if isinstance(item, AdSlot):
            entries.append(FeedEntry(kind="ad", slot_id=item.slot_id))
        else:
            entries.append(FeedEntry(kind="post", post=to_post_response(item, viewer_id)))
    return entries


__all__ = [
    "to_post_response",
    "to_engagement_response",
    "to_comment_response",
    "to_message_response",
    "to_thread_summary_response",
    "to_transaction_response",
    "to_support_message_response",
    "to_verification_response",
    "optimistic_posts",
    "feed_entries",
]
