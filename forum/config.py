"""
Runtime configuration helpers for the forum sync service.

Loads DATABASE_URL, external service credentials and sync tuning knobs from
the environment or the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite+pysqlite:///./forum.db", alias="DATABASE_URL")

    app_name: str = Field(default="Akti Forum Sync", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")

    # Identity
    jwt_secret_key: str | None = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")
    admin_email: str | None = Field(default=None, alias="FORUM_ADMIN_EMAIL")

    # External services
    imgbb_api_key: str | None = Field(default=None, alias="IMGBB_API_KEY")
    imgbb_upload_url: str = Field(default="https://api.imgbb.com/1/upload", alias="IMGBB_UPLOAD_URL")
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )
    registration_webhook_url: str | None = Field(default=None, alias="REGISTRATION_WEBHOOK_URL")
    http_timeout_seconds: float = Field(default=15.0, alias="HTTP_TIMEOUT_SECONDS")

    # Sync tuning
    toggle_debounce_seconds: float = Field(default=0.35, alias="TOGGLE_DEBOUNCE_SECONDS")
    feed_page_size: int = Field(default=20, alias="FEED_PAGE_SIZE")
    feed_limit: int = Field(default=200, alias="FEED_LIMIT")
    lobby_message_limit: int = Field(default=100, alias="LOBBY_MESSAGE_LIMIT")
    thread_message_limit: int = Field(default=150, alias="THREAD_MESSAGE_LIMIT")
    inbox_scan_limit: int = Field(default=500, alias="INBOX_SCAN_LIMIT")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
