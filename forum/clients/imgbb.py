"""Blob upload through the ImgBB API."""
from __future__ import annotations

import base64
import logging
from typing import Protocol

import httpx

from ..config import get_settings
from ..security.secrets import MissingSecretError, configured_secret
from ..sync.errors import UploadError

logger = logging.getLogger(__name__)


class BlobUploader(Protocol):
    async def upload(self, file_bytes: bytes, *, filename: str | None = None) -> str:
        """Store ``file_bytes`` and return its public URL."""


class ImgBBUploader:
    """Single request/response upload; any non-2xx answer is an ``UploadError``."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        upload_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.imgbb_api_key
        self._upload_url = upload_url or settings.imgbb_upload_url
        self._timeout = timeout or settings.http_timeout_seconds
        self._transport = transport

    async def upload(self, file_bytes: bytes, *, filename: str | None = None) -> str:
        if not file_bytes:
            raise UploadError("Cannot upload an empty file")
        try:
            key = configured_secret(self._api_key, "IMGBB_API_KEY")
        except MissingSecretError as exc:
            raise UploadError(str(exc)) from exc

        form = {"image": base64.b64encode(file_bytes).decode("ascii")}
        if filename:
            form["name"] = filename
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._upload_url, params={"key": key}, data=form)
        except httpx.HTTPError as exc:
            logger.exception("ImgBB upload request failed")
            raise UploadError("Image upload failed") from exc

        if not response.is_success:
            logger.warning("ImgBB upload rejected with status %s", response.status_code)
            raise UploadError(f"Image upload failed with status {response.status_code}")

        try:
            url = response.json()["data"]["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise UploadError("Invalid response from image host") from exc
        if not isinstance(url, str) or not url:
            raise UploadError("Image host returned no URL")
        return url


_uploader: BlobUploader | None = None


def get_uploader() -> BlobUploader:
    global _uploader
    if _uploader is None:
        _uploader = ImgBBUploader()
    return _uploader


def set_uploader(uploader: BlobUploader | None) -> None:
    """Override the uploader (tests inject stubs here)."""

    global _uploader
    _uploader = uploader


__all__ = ["BlobUploader", "ImgBBUploader", "get_uploader", "set_uploader"]
