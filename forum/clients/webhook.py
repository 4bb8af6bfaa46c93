"""Fire-and-forget outbound webhook."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)


class WebhookNotifier:
    """Posts structured messages; failures are logged and never raised or retried."""

    def __init__(
        self,
        url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._url = url if url is not None else settings.registration_webhook_url
        self._timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def send(self, message: Mapping[str, Any]) -> None:
        if not self._url:
            return
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=dict(message))
            if not response.is_success:
                logger.warning("Webhook responded with status %s", response.status_code)
        except httpx.HTTPError:
            logger.exception("Webhook delivery failed")

    def fire(self, message: Mapping[str, Any]) -> None:
        """Schedule ``send`` on the running loop without waiting for it."""

        if not self._url:
            return
        task = asyncio.create_task(self.send(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


_notifier: WebhookNotifier | None = None


def get_webhook_notifier() -> WebhookNotifier:
    global _notifier
    if _notifier is None:
        _notifier = WebhookNotifier()
    return _notifier


def set_webhook_notifier(notifier: WebhookNotifier | None) -> None:
    global _notifier
    _notifier = notifier


__all__ = ["WebhookNotifier", "get_webhook_notifier", "set_webhook_notifier"]
