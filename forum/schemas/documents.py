"""Typed schemas for every document collection.

Documents arrive from the store as untyped mappings. ``parse_document``
validates them against the schema of their collection once, at the read
boundary, so projections and routers can rely on a fixed shape.
"""
from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..constants import (
    ADMIN_MESSAGES,
    COMMENTS,
    MESSAGES,
    POSTS,
    SETTINGS,
    TRANSACTIONS,
    USERS,
    VERIFICATION_REQUESTS,
)
from ..sync.errors import DocumentValidationError
from ..sync.query import Document

UserRole = Literal["user", "premium", "pro", "admin"]
ReviewStatus = Literal["pending", "approved", "rejected"]
TransactionStatus = ReviewStatus
VerificationStatus = Literal["pending", "verified", "rejected"]
PostType = Literal["text", "video"]


class ForumDocument(BaseModel):
    """Common base: camelCase field names on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str


class Socials(BaseModel):
    telegram: str = ""
    facebook: str = ""


class UserDocument(ForumDocument):
    uid: str
    display_name: str
    email: str = ""
    photo_url: str = Field(default="", alias="photoURL")
    bio: str = ""
    is_pro: bool = False
    role: UserRole = "user"
    joined_at: int = 0
    age: int | None = None
    gender: str | None = None
    interests: str | None = None
    socials: Socials | None = None
    is_verified: bool = False
    verification_status: VerificationStatus | None = None


class PostDocument(ForumDocument):
    author_id: str
    author_name: str = ""
    author_photo: str = ""
    author_role: UserRole | None = None
    author_verified: bool = False
    post_type: PostType = Field(default="text", alias="type")
    title: str | None = None
    video_url: str | None = None
    content: str = ""
    image_url: str | None = None
    likes: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)
    comments_count: int = Field(default=0, ge=0)
    created_at: int


class CommentDocument(ForumDocument):
    post_id: str
    author_id: str
    author_name: str = ""
    author_photo: str = ""
    author_role: UserRole | None = None
    text: str
    created_at: int


class ChatMessageDocument(ForumDocument):
    sender_id: str
    sender_name: str | None = None
    sender_photo: str | None = None
    sender_role: UserRole | None = None
    text: str
    created_at: int
    chat_id: str | None = None
    participants: list[str] | None = None


class TransactionDocument(ForumDocument):
    user_id: str
    user_name: str = ""
    user_email: str = ""
    tx_id: str
    image_url: str | None = None
    status: TransactionStatus = "pending"
    plan: str = "pro"
    created_at: int


class SiteSettingsDocument(ForumDocument):
    maintenance_mode: bool = False


class SupportMessageDocument(ForumDocument):
    """One message of a member's support conversation; the conversation id is the member's uid."""

    conversation_id: str
    sender_id: str
    sender_name: str = ""
    sender_email: str = ""
    sender_photo: str = ""
    subject: str
    message: str
    created_at: int
    read: bool = False
    is_admin_reply: bool = False


class VerificationRequestDocument(ForumDocument):
    user_id: str
    user_name: str = ""
    user_photo: str = ""
    image_url: str
    status: ReviewStatus = "pending"
    created_at: int


_SCHEMAS: dict[str, type[ForumDocument]] = {
    USERS: UserDocument,
    POSTS: PostDocument,
    COMMENTS: CommentDocument,
    MESSAGES: ChatMessageDocument,
    TRANSACTIONS: TransactionDocument,
    SETTINGS: SiteSettingsDocument,
    ADMIN_MESSAGES: SupportMessageDocument,
    VERIFICATION_REQUESTS: VerificationRequestDocument,
}


def schema_for(collection: str) -> type[ForumDocument]:
    try:
        return _SCHEMAS[collection]
    except KeyError as exc:
        raise DocumentValidationError(f"Unknown collection: {collection}") from exc


def parse_document(document: Document) -> Any:
    """Validate a raw document against its collection schema."""

    schema = schema_for(document.collection)
    try:
        return schema.model_validate({**document.data, "id": document.id})
    except ValidationError as exc:
        raise DocumentValidationError(
            f"Invalid {document.collection} document {document.id}",
            errors=exc.errors(include_url=False),
        ) from exc


def parse_documents(documents: list[Document] | tuple[Document, ...]) -> list[Any]:
    return [parse_document(document) for document in documents]


def document_data(model: ForumDocument) -> dict[str, Any]:
    """Serialize a schema instance back into store field data (without ``id``)."""

    return model.model_dump(by_alias=True, exclude={"id"})


def build_document_data(collection: str, fields: Mapping[str, Any], *, doc_id: str | None = None) -> dict[str, Any]:
    """Validate freshly composed fields and return them in store shape."""

    schema = schema_for(collection)
    try:
        model = schema.model_validate({**fields, "id": doc_id or ""})
    except ValidationError as exc:
        raise DocumentValidationError(
            f"Invalid {collection} document",
            errors=exc.errors(include_url=False),
        ) from exc
    return document_data(model)


__all__ = [
    "UserRole",
    "ReviewStatus",
    "TransactionStatus",
    "VerificationStatus",
    "PostType",
    "ForumDocument",
    "Socials",
    "UserDocument",
    "PostDocument",
    "CommentDocument",
    "ChatMessageDocument",
    "TransactionDocument",
    "SiteSettingsDocument",
    "SupportMessageDocument",
    "VerificationRequestDocument",
    "schema_for",
    "parse_document",
    "parse_documents",
    "document_data",
    "build_document_data",
]
