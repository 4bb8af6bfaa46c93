"""Profile bio suggestions and the support widget, with static fallbacks."""
from __future__ import annotations

import logging

from ..clients.gemini import GenerativeTextClient, get_text_client
from ..constants import (
    BIO_EMPTY_FALLBACK,
    BIO_FALLBACK,
    SUPPORT_EMPTY_FALLBACK,
    SUPPORT_FALLBACK,
    SUPPORT_SYSTEM_INSTRUCTION,
)
from ..sync.errors import ExternalServiceUnavailable

logger = logging.getLogger(__name__)

MAX_BIO_LENGTH = 150


def _bio_prompt(interests: str) -> str:
    return (
        "Write a creative, short social media bio based on these interests: "
        f"{interests}. Keep it under {MAX_BIO_LENGTH} characters. No hashtags."
    )


async def generate_bio(interests: str, *, client: GenerativeTextClient | None = None) -> str:
    """Suggest a bio for ``interests``; never raises."""

    text_client = client or get_text_client()
    try:
        text = await text_client.complete(_bio_prompt(interests.strip()))
    except ExternalServiceUnavailable as exc:
        logger.warning("Bio generation unavailable: %s", exc)
        return BIO_FALLBACK
    text = (text or "").strip()
    if not text:
        return BIO_EMPTY_FALLBACK
    return text[:MAX_BIO_LENGTH]


async def support_response(query: str, *, client: GenerativeTextClient | None = None) -> str:
    text_client = client or get_text_client()
    try:
        text = await text_client.complete(query, SUPPORT_SYSTEM_INSTRUCTION)
    except ExternalServiceUnavailable as exc:
        logger.warning("Support assistant unavailable: %s", exc)
        return SUPPORT_FALLBACK
    return (text or "").strip() or SUPPORT_EMPTY_FALLBACK


__all__ = ["MAX_BIO_LENGTH", "generate_bio", "support_response"]
