"""Convenience exports for schema layer."""
from .admin import ForumStatsResponse, MaintenanceRequest, RoleChangeRequest, SiteSettingsResponse
from .ai import BioRequest, BioResponse, SupportRequest, SupportResponse
from .auth import AuthResponse, LoginRequest, RegisterRequest
from .messages import (
    DirectThreadResponse,
    InboxResponse,
    MessageListResponse,
    MessageResponse,
    MessageSendRequest,
    ThreadSummaryResponse,
)
from .posts import (
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    FeedEntry,
    PostEngagementResponse,
    PostFeedResponse,
    PostResponse,
    ReactionRequest,
    VideoPostCreate,
)
from .profiles import MemberListResponse, ProfileResponse, ProfileUpdateRequest, SocialsPayload
from .support import (
    SupportMessageCreate,
    SupportMessageListResponse,
    SupportMessageResponse,
    SupportSubjectsResponse,
)
from .transactions import TransactionListResponse, TransactionResponse, TransactionReviewRequest
from .verification import VerificationListResponse, VerificationRequestResponse, VerificationReviewRequest

__all__ = [
    "ForumStatsResponse",
    "MaintenanceRequest",
    "RoleChangeRequest",
    "SiteSettingsResponse",
    "BioRequest",
    "BioResponse",
    "SupportRequest",
    "SupportResponse",
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "DirectThreadResponse",
    "InboxResponse",
    "MessageListResponse",
    "MessageResponse",
    "MessageSendRequest",
    "ThreadSummaryResponse",
    "CommentCreate",
    "CommentListResponse",
    "CommentResponse",
    "FeedEntry",
    "PostEngagementResponse",
    "PostFeedResponse",
    "PostResponse",
    "ReactionRequest",
    "VideoPostCreate",
    "MemberListResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "SocialsPayload",
    "TransactionListResponse",
    "TransactionResponse",
    "TransactionReviewRequest",
    "SupportMessageCreate",
    "SupportMessageListResponse",
    "SupportMessageResponse",
    "SupportSubjectsResponse",
    "VerificationListResponse",
    "VerificationRequestResponse",
    "VerificationReviewRequest",
]
