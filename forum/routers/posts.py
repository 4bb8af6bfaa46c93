"""Post feed routes: creation, reactions, comments and deletion."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query as QueryParam, UploadFile, status

from ..clients.imgbb import get_uploader
from ..config import get_settings
from ..schemas import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
    ReactionRequest,
    VideoPostCreate,
)
from ..schemas.documents import CommentDocument, PostDocument, UserDocument, parse_document, parse_documents
from ..services import (
    SyncContext,
    add_comment,
    create_post,
    create_video_post,
    delete_post,
    get_optional_user,
    get_post_document,
    get_registry,
    get_store,
    get_sync_context,
    load_role_table,
    require_site_open,
    toggle_dislike,
    toggle_like,
)
from ..services.feed_service import comments_query, feed_query
from ..sync.errors import SyncError
from ..sync.projections import annotate_author_badges, page_of, paginate_by
from .errors import http_error
from .presenters import feed_entries, optimistic_posts, to_comment_response, to_engagement_response, to_post_response

router = APIRouter(prefix="/posts", tags=["posts"])

logger = logging.getLogger(__name__)


@router.get("/", response_model=PostFeedResponse)
async def feed_endpoint(
    page: int = QueryParam(0, ge=0),
    author_id: Optional[str] = QueryParam(None),
    post_type: Optional[Literal["text", "video"]] = QueryParam(None, alias="type"),
    current_user: UserDocument | None = Depends(get_optional_user),
) -> PostFeedResponse:
    settings = get_settings()
    store = get_store()
    engine = get_registry().get(current_user.uid).engine if current_user else None
    try:
        documents = await store.run_query(feed_query(settings.feed_limit, author_id=author_id, post_type=post_type))
        posts = optimistic_posts(documents, engine)
        role_table = await load_role_table(store)
    except SyncError as exc:
        raise http_error(exc) from exc

    items = feed_entries(
        page_of(posts, settings.feed_page_size, page),
        role_table,
        viewer_id=current_user.uid if current_user else None,
        viewer_role=current_user.role if current_user else None,
    )
    return PostFeedResponse(items=items, page=page, page_count=len(paginate_by(posts, settings.feed_page_size)))


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post_endpoint(
    content: str = Form(""),
    file: UploadFile | None = File(None),
    current_user: UserDocument = Depends(require_site_open),
) -> PostResponse:
    """Create a post; an attached image is uploaded to the image host first."""

    image_url: str | None = None
    try:
        if file is not None:
            image_url = await get_uploader().upload(await file.read(), filename=file.filename)
        post = await create_post(get_store(), author=current_user, content=content, image_url=image_url)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    annotated = annotate_author_badges([post], {current_user.uid: current_user.role})[0]
    return to_post_response(annotated, current_user.uid)


@router.post("/videos", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_video_post_endpoint(
    payload: VideoPostCreate,
    current_user: UserDocument = Depends(require_site_open),
) -> PostResponse:
    try:
        post = await create_video_post(
            get_store(), author=current_user, title=payload.title, video_url=payload.video_url
        )
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    annotated = annotate_author_badges([post], {current_user.uid: current_user.role})[0]
    return to_post_response(annotated, current_user.uid)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post_endpoint(post_id: str, current_user: UserDocument = Depends(require_site_open)) -> None:
    try:
        await delete_post(get_store(), actor=current_user, post_id=post_id)
    except SyncError as exc:
        raise http_error(exc) from exc


async def _react(post_id: str, context: SyncContext, payload: ReactionRequest | None, *, like: bool) -> PostEngagementResponse:
    toggle = toggle_like if like else toggle_dislike
    click_id = payload.click_id if payload else None
    try:
        document = await get_post_document(context.engine.store, post_id)
        await toggle(context.engine, document, context.uid, click_id=click_id)
        latest = await get_post_document(context.engine.store, post_id)
    except SyncError as exc:
        raise http_error(exc) from exc
    context.engine.reconcile([latest])
    post: PostDocument = parse_document(context.engine.view(latest))
    return to_engagement_response(post, context.uid)


@router.post("/{post_id}/like", response_model=PostEngagementResponse)
async def like_post_endpoint(
    post_id: str,
    payload: ReactionRequest | None = Body(None),
    context: SyncContext = Depends(get_sync_context),
) -> PostEngagementResponse:
    return await _react(post_id, context, payload, like=True)


@router.post("/{post_id}/dislike", response_model=PostEngagementResponse)
async def dislike_post_endpoint(
    post_id: str,
    payload: ReactionRequest | None = Body(None),
    context: SyncContext = Depends(get_sync_context),
) -> PostEngagementResponse:
    return await _react(post_id, context, payload, like=False)


@router.get("/{post_id}/engagement", response_model=PostEngagementResponse)
async def engagement_endpoint(
    post_id: str,
    current_user: UserDocument | None = Depends(get_optional_user),
) -> PostEngagementResponse:
    try:
        document = await get_post_document(get_store(), post_id)
    except SyncError as exc:
        raise http_error(exc) from exc
    engine = get_registry().get(current_user.uid).engine if current_user else None
    post = optimistic_posts([document], engine)[0]
    return to_engagement_response(post, current_user.uid if current_user else None)


@router.get("/{post_id}/comments", response_model=CommentListResponse)
async def list_comments_endpoint(
    post_id: str,
    current_user: UserDocument | None = Depends(get_optional_user),
) -> CommentListResponse:
    store = get_store()
    try:
        await get_post_document(store, post_id)
        comments: list[CommentDocument] = parse_documents(await store.run_query(comments_query(post_id)))
        role_table = await load_role_table(store)
    except SyncError as exc:
        raise http_error(exc) from exc
    return CommentListResponse(
        items=[to_comment_response(item) for item in annotate_author_badges(comments, role_table)]
    )


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment_endpoint(
    post_id: str,
    payload: CommentCreate,
    current_user: UserDocument = Depends(require_site_open),
) -> CommentResponse:
    context = get_registry().get(current_user.uid)
    try:
        await get_post_document(context.engine.store, post_id)
        comment = await add_comment(context.engine, post_id=post_id, author=current_user, text=payload.text)
    except (SyncError, ValueError) as exc:
        raise http_error(exc) from exc
    return to_comment_response(annotate_author_badges([comment], {current_user.uid: current_user.role})[0])
