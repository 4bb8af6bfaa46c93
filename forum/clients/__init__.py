"""HTTP clients for the external services the forum relies on."""
from .gemini import GeminiClient, GenerativeTextClient, get_text_client, set_text_client
from .imgbb import BlobUploader, ImgBBUploader, get_uploader, set_uploader
from .webhook import WebhookNotifier, get_webhook_notifier, set_webhook_notifier

__all__ = [
    "GeminiClient",
    "GenerativeTextClient",
    "get_text_client",
    "set_text_client",
    "BlobUploader",
    "ImgBBUploader",
    "get_uploader",
    "set_uploader",
    "WebhookNotifier",
    "get_webhook_notifier",
    "set_webhook_notifier",
]
