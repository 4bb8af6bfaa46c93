"""Convenience exports for service layer."""
from .admin_service import (
    AdminPermissionError,
    ForumStats,
    change_member_role,
    forum_stats,
    get_site_settings,
    open_site_settings,
    require_admin,
    set_maintenance_mode,
)
from .ai_service import generate_bio, support_response
from .auth_service import (
    AccountGrant,
    configure_runtime,
    get_current_user,
    get_identity,
    get_optional_user,
    get_registry,
    get_store,
    get_sync_context,
    login,
    register_account,
    require_site_open,
    user_from_token,
)
from .chat_service import (
    ChatPermissionError,
    list_inbox_messages,
    list_lobby,
    list_thread,
    open_inbox,
    open_lobby,
    open_thread,
    send_message,
    start_direct_thread,
)
from .feed_service import (
    PostPermissionError,
    add_comment,
    create_post,
    create_video_post,
    delete_post,
    get_post_document,
    open_comments,
    open_feed,
    toggle_dislike,
    toggle_like,
    video_embed_url,
)
from .identity_service import ForumSession, IdentityError, IdentityProvider, LocalIdentityProvider
from .profile_service import (
    ProfilePermissionError,
    create_user_profile,
    get_profile,
    list_members,
    load_role_table,
    open_role_table,
    set_role,
    update_profile,
)
from .session import SessionManager, SyncContext, SyncContextRegistry
from .support_service import (
    SupportPermissionError,
    list_conversation,
    list_support_messages,
    mark_replies_read,
    open_conversation,
    open_support_inbox,
    reply_to_conversation,
    send_support_message,
)
from .transaction_service import (
    PendingTransactionExists,
    TransactionAlreadyReviewed,
    TransactionError,
    TransactionPermissionError,
    list_pending_transactions,
    list_user_transactions,
    open_pending_transactions,
    review_transaction,
    submit_upgrade,
)
from .verification_service import (
    PendingVerificationExists,
    VerificationAlreadyReviewed,
    VerificationError,
    VerificationPermissionError,
    list_pending_verifications,
    open_pending_verifications,
    review_verification,
    submit_verification,
)

__all__ = [
    "AdminPermissionError",
    "ForumStats",
    "change_member_role",
    "forum_stats",
    "get_site_settings",
    "open_site_settings",
    "require_admin",
    "set_maintenance_mode",
    "generate_bio",
    "support_response",
    "AccountGrant",
    "configure_runtime",
    "get_current_user",
    "get_identity",
    "get_optional_user",
    "get_registry",
    "get_store",
    "get_sync_context",
    "login",
    "register_account",
    "require_site_open",
    "user_from_token",
    "ChatPermissionError",
    "list_inbox_messages",
    "list_lobby",
    "list_thread",
    "open_inbox",
    "open_lobby",
    "open_thread",
    "send_message",
    "start_direct_thread",
    "PostPermissionError",
    "add_comment",
    "create_post",
    "delete_post",
    "get_post_document",
    "open_comments",
    "open_feed",
    "toggle_dislike",
    "toggle_like",
    "create_video_post",
    "video_embed_url",
    "ForumSession",
    "IdentityError",
    "IdentityProvider",
    "LocalIdentityProvider",
    "ProfilePermissionError",
    "create_user_profile",
    "get_profile",
    "list_members",
    "load_role_table",
    "open_role_table",
    "set_role",
    "update_profile",
    "SessionManager",
    "SyncContext",
    "SyncContextRegistry",
    "SupportPermissionError",
    "list_conversation",
    "list_support_messages",
    "mark_replies_read",
    "open_conversation",
    "open_support_inbox",
    "reply_to_conversation",
    "send_support_message",
    "PendingTransactionExists",
    "TransactionAlreadyReviewed",
    "TransactionError",
    "TransactionPermissionError",
    "list_pending_transactions",
    "list_user_transactions",
    "open_pending_transactions",
    "review_transaction",
    "submit_upgrade",
    "PendingVerificationExists",
    "VerificationAlreadyReviewed",
    "VerificationError",
    "VerificationPermissionError",
    "list_pending_verifications",
    "open_pending_verifications",
    "review_verification",
    "submit_verification",
]
