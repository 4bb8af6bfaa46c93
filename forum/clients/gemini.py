"""Generative text through the Gemini REST API."""
from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from ..config import get_settings
from ..security.secrets import optional_secret
from ..sync.errors import ExternalServiceUnavailable

logger = logging.getLogger(__name__)


class GenerativeTextClient(Protocol):
    async def complete(self, prompt: str, system_instruction: str | None = None) -> str:
        """Return generated text or raise ``ExternalServiceUnavailable``."""


class GeminiClient:
    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = optional_secret(api_key if api_key is not None else settings.gemini_api_key)
        self._model = model or settings.gemini_model
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    @property
    def configured(self) -> bool:
        return self._api_key is not None

    async def complete(self, prompt: str, system_instruction: str | None = None) -> str:
        if self._api_key is None:
            raise ExternalServiceUnavailable("Generative text credentials are not configured")

        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        url = f"{self._base_url}/models/{self._model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self._api_key}, json=payload)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Gemini request failed")
            raise ExternalServiceUnavailable("Generative text request failed") from exc
        return _extract_text(data)


def _extract_text(data: Any) -> str:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return ""
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()


_text_client: GenerativeTextClient | None = None


def get_text_client() -> GenerativeTextClient:
    global _text_client
    if _text_client is None:
        _text_client = GeminiClient()
    return _text_client


def set_text_client(client: GenerativeTextClient | None) -> None:
    global _text_client
    _text_client = client


__all__ = ["GenerativeTextClient", "GeminiClient", "get_text_client", "set_text_client"]
