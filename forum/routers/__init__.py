"""Aggregate router exports."""
from .admin import router as admin_router
from .ai import router as ai_router
from .auth import router as auth_router
from .messages import router as messages_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router
from .support import router as support_router
from .transactions import router as transactions_router
from .verification import router as verification_router

__all__ = [
    "admin_router",
    "ai_router",
    "auth_router",
    "messages_router",
    "posts_router",
    "profiles_router",
    "realtime_router",
    "support_router",
    "transactions_router",
    "verification_router",
]
