"""Pure projections from validated snapshots to display structures."""
from __future__ import annotations

import pytest

from forum.schemas.documents import ChatMessageDocument, CommentDocument, PostDocument
from forum.sync.projections import (
    AdSlot,
    annotate_author_badges,
    badge_for,
    engagement_counts,
    group_comments_by_post,
    page_of,
    paginate_by,
    place_ad_slots,
    shows_ads,
    summarize_threads,
)
from forum.sync.threads import thread_id


def _post(post_id: str, author_id: str = "alice", **extra) -> PostDocument:
    return PostDocument(id=post_id, author_id=author_id, created_at=extra.pop("created_at", 1), **extra)


def _comment(comment_id: str, post_id: str, created_at: int) -> CommentDocument:
    return CommentDocument(id=comment_id, post_id=post_id, author_id="bob", text=comment_id, created_at=created_at)


def _message(message_id: str, sender: str, chat_id: str | None, created_at: int, text: str = "hi") -> ChatMessageDocument:
    return ChatMessageDocument(
        id=message_id,
        sender_id=sender,
        sender_name=sender.title(),
        text=text,
        created_at=created_at,
        chat_id=chat_id,
    )


def test_group_comments_keeps_children_of_unseen_parents() -> None:
    comments = [_comment("c2", "p1", 2), _comment("c1", "p1", 1), _comment("c3", "p9", 3)]

    grouped = group_comments_by_post(comments, [_post("p1"), _post("p2")])

    assert [comment.id for comment in grouped["p1"]] == ["c1", "c2"]
    assert grouped["p2"] == []
    assert [comment.id for comment in grouped["p9"]] == ["c3"]


def test_group_comments_is_recomputed_from_scratch() -> None:
    comments = [_comment("c1", "p1", 1)]

    assert group_comments_by_post(comments) == group_comments_by_post(list(comments))


def test_paginate_by_splits_into_pages() -> None:
    assert paginate_by([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert paginate_by([], 3) == []
    with pytest.raises(ValueError):
        paginate_by([1], 0)


def test_page_of_returns_empty_past_the_end() -> None:
    assert page_of([1, 2, 3], 2, 1) == [3]
    assert page_of([1, 2, 3], 2, 5) == []
    with pytest.raises(ValueError):
        page_of([1], 1, -1)


def test_badges_follow_live_role_table_then_denormalized_role() -> None:
    posts = [
        _post("p1", "alice", author_role="user"),
        _post("p2", "bob", author_role="pro"),
        _post("p3", "carol"),
    ]

    annotated = annotate_author_badges(posts, {"alice": "admin"})

    assert [(item.role, item.badge) for item in annotated] == [("admin", "ADMIN"), ("pro", "PRO"), ("user", None)]


def test_badges_for_chat_messages_use_sender() -> None:
    message = ChatMessageDocument(id="m1", sender_id="dave", sender_role="premium", text="x", created_at=1)

    annotated = annotate_author_badges([message], {})

    assert annotated[0].badge == "PREMIUM"
    assert badge_for(None) is None


def test_ad_slots_only_for_ad_supported_viewers() -> None:
    items = ["a", "b", "c", "d", "e", "f", "g"]

    placed = place_ad_slots(items, viewer_role="user")

    assert placed == ["a", "b", "c", AdSlot("feed-ad-3"), "d", "e", "f", AdSlot("feed-ad-6"), "g"]
    assert place_ad_slots(items, viewer_role="pro") == items
    assert shows_ads(None)
    assert not shows_ads("admin")


def test_summarize_threads_keeps_latest_message_per_thread() -> None:
    with_bob = thread_id("alice", "bob")
    with_carol = thread_id("alice", "carol")
    messages = [
        _message("m1", "alice", with_bob, 1, "hey bob"),
        _message("m2", "bob", with_bob, 5, "hey alice"),
        _message("m3", "carol", with_carol, 3, "yo"),
        _message("m4", "dave", None, 9, "lobby"),
        _message("m5", "bob", thread_id("bob", "carol"), 10, "not alice's"),
    ]

    summaries = summarize_threads(messages, "alice", directory={"carol": {"displayName": "Carol C", "photoURL": "c.png"}})

    assert [summary.chat_id for summary in summaries] == [with_bob, with_carol]
    assert summaries[0].partner_id == "bob"
    assert summaries[0].last_message == "hey alice"
    assert summaries[0].partner_name == "Bob"
    assert summaries[1].partner_name == "Carol C"
    assert summaries[1].partner_photo == "c.png"


def test_engagement_counts_reports_viewer_flags() -> None:
    post = _post("p1", likes=["u1", "u2"], dislikes=["u3"], comments_count=4)

    counts = engagement_counts(post, "u1")

    assert (counts.like_count, counts.dislike_count, counts.comment_count) == (2, 1, 4)
    assert counts.viewer_has_liked and not counts.viewer_has_disliked
    assert not engagement_counts(post, None).viewer_has_liked
