"""Pydantic schemas for posts, comments and reactions."""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class PostResponse(BaseModel):
    id: str
    author_id: str
    author_name: str
    author_photo: str
    author_role: str
    badge: str | None = None
    author_verified: bool = False
    post_type: Literal["text", "video"] = "text"
    title: str | None = None
    content: str
    image_url: str | None = None
    video_url: str | None = None
    embed_url: str | None = None
    created_at: int
    like_count: int = 0
    dislike_count: int = 0
    comment_count: int = 0
    viewer_has_liked: bool = False
    viewer_has_disliked: bool = False


class VideoPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    video_url: str = Field(..., min_length=1, max_length=500)


class FeedEntry(BaseModel):
    """Either a post or an ad slot marker."""

    kind: Literal["post", "ad"]
    post: PostResponse | None = None
    slot_id: str | None = None


class PostFeedResponse(BaseModel):
    items: list[FeedEntry]
    page: int
    page_count: int


class ReactionRequest(BaseModel):
    click_id: str | None = Field(default=None, max_length=64)


class PostEngagementResponse(BaseModel):
    post_id: str
    like_count: int
    dislike_count: int
    comment_count: int
    viewer_has_liked: bool
    viewer_has_disliked: bool


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    author_name: str
    author_photo: str
    author_role: str
    badge: str | None = None
    text: str
    created_at: int


class CommentListResponse(BaseModel):
    items: list[CommentResponse]
