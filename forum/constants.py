"""Project-wide constant values."""
from __future__ import annotations

USERS = "users"
POSTS = "posts"
COMMENTS = "comments"
MESSAGES = "messages"
TRANSACTIONS = "transactions"
SETTINGS = "settings"
ADMIN_MESSAGES = "adminMessages"
VERIFICATION_REQUESTS = "verificationRequests"

COLLECTIONS = frozenset(
    {USERS, POSTS, COMMENTS, MESSAGES, TRANSACTIONS, SETTINGS, ADMIN_MESSAGES, VERIFICATION_REQUESTS}
)

SITE_SETTINGS_ID = "site"

ROLES = ("user", "premium", "pro", "admin")
PRIVILEGED_ROLES = frozenset({"admin"})
AD_FREE_ROLES = frozenset({"premium", "pro", "admin"})

DIRECT_THREAD_PREFIX = "dm_"

DEFAULT_BIO = "Hey there! I am new to Akti Forum."
ADMIN_BIO = "Akti Forum Official Administrator"
PRO_PLAN = "pro"

VIDEO_POST = "video"
# Roles allowed to host video posts.
VIDEO_ROLES = frozenset({"premium", "pro", "admin"})

SUPPORT_SUBJECTS = (
    "General Support Signal",
    "Verification Assistance",
    "Billing / Premium Node",
    "Technical Glitch",
    "Reporting Citizen",
)
DEFAULT_SUPPORT_SUBJECT = SUPPORT_SUBJECTS[0]

BIO_FALLBACK = "Exploring the digital frontier of Akti Forum."
BIO_EMPTY_FALLBACK = "I am a new Akti Forum member!"
SUPPORT_FALLBACK = "Technical difficulties. Please contact our admin."
SUPPORT_EMPTY_FALLBACK = "I'm sorry, I couldn't process that. How can I help you?"
SUPPORT_SYSTEM_INSTRUCTION = (
    "You are Akti Assistant, a helpful support bot for the Akti Forum. Help users with forum features like "
    "posting, liking, upgrading to Pro, and managing their profiles. Be concise and friendly."
)

__all__ = [
    "USERS",
    "POSTS",
    "COMMENTS",
    "MESSAGES",
    "TRANSACTIONS",
    "SETTINGS",
    "ADMIN_MESSAGES",
    "VERIFICATION_REQUESTS",
    "COLLECTIONS",
    "SITE_SETTINGS_ID",
    "ROLES",
    "PRIVILEGED_ROLES",
    "AD_FREE_ROLES",
    "DIRECT_THREAD_PREFIX",
    "DEFAULT_BIO",
    "ADMIN_BIO",
    "PRO_PLAN",
    "VIDEO_POST",
    "VIDEO_ROLES",
    "SUPPORT_SUBJECTS",
    "DEFAULT_SUPPORT_SUBJECT",
    "BIO_FALLBACK",
    "BIO_EMPTY_FALLBACK",
    "SUPPORT_FALLBACK",
    "SUPPORT_EMPTY_FALLBACK",
    "SUPPORT_SYSTEM_INSTRUCTION",
]
