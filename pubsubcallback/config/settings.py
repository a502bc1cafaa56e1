"""Application settings and environment variable management."""

import os
from functools import lru_cache
from typing import Optional
from urllib.parse import urlsplit

from dotenv import load_dotenv

from pubsubcallback.utils.dedup import DEFAULT_DEDUP_CAPACITY
from pubsubcallback.webhooks.feed_parser import DEFAULT_NEW_VIDEO_THRESHOLD_SECONDS
from pubsubcallback.webhooks.subscription import (
    DEFAULT_HUB_URL,
    DEFAULT_LEASE_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    youtube_topic_url,
)

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, '').strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def _get_int(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name, '').strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {value}")
    return value


class Settings:
    """Application configuration settings."""

    # WebSub configuration
    CALLBACK_URL: str
    WEBSUB_HUB_URL: str
    LEASE_SECONDS: int
    SUBSCRIBE_ON_STARTUP: bool
    HUB_REQUEST_TIMEOUT: int

    # YouTube configuration
    YOUTUBE_CHANNEL_ID: str

    # Notification handling
    NEW_VIDEO_THRESHOLD_SECONDS: int
    DEDUP_CAPACITY: int
    DEDUP_DATABASE_URL: str
    DATABASE_ECHO: bool

    # Server configuration
    HOST: str
    PORT: int
    SERVER_THREADS: int

    # Logging configuration
    LOG_LEVEL: str

    def __init__(self):
        """Initialize settings from environment variables."""
        self.CALLBACK_URL = self._resolve_callback_url()
        self.WEBSUB_HUB_URL = os.getenv('WEBSUB_HUB_URL', '').strip() or DEFAULT_HUB_URL
        self.LEASE_SECONDS = _get_int('LEASE_SECONDS', DEFAULT_LEASE_SECONDS, minimum=1)
        self.SUBSCRIBE_ON_STARTUP = _get_bool('SUBSCRIBE_ON_STARTUP', True)
        self.HUB_REQUEST_TIMEOUT = _get_int('HUB_REQUEST_TIMEOUT', DEFAULT_TIMEOUT_SECONDS, minimum=1)

        self.YOUTUBE_CHANNEL_ID = os.getenv('YOUTUBE_CHANNEL_ID', '').strip()

        self.NEW_VIDEO_THRESHOLD_SECONDS = _get_int('NEW_VIDEO_THRESHOLD_SECONDS', DEFAULT_NEW_VIDEO_THRESHOLD_SECONDS, minimum=0)
        self.DEDUP_CAPACITY = _get_int('DEDUP_CAPACITY', DEFAULT_DEDUP_CAPACITY, minimum=0)
        self.DEDUP_DATABASE_URL = os.getenv('DEDUP_DATABASE_URL', '').strip()
        self.DATABASE_ECHO = _get_bool('DATABASE_ECHO', False)

        self.HOST = os.getenv('HOST', '0.0.0.0').strip() or '0.0.0.0'
        self.PORT = _get_int('PORT', 8000, minimum=1)
        self.SERVER_THREADS = _get_int('SERVER_THREADS', 4, minimum=1)

        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').strip() or 'INFO'

        self._validate_required_settings()

    def _resolve_callback_url(self) -> str:
        """Read and validate the public base URL the hub will call back."""
        raw_url = os.getenv('CALLBACK_URL', '').strip()
        if not raw_url:
            raise ValueError("CALLBACK_URL environment variable must be set.")

        parsed = urlsplit(raw_url)
        if parsed.scheme.lower() not in ('http', 'https') or not parsed.netloc:
            raise ValueError("CALLBACK_URL must include an http(s) scheme and hostname (e.g. https://example.com).")

        return raw_url

    def _validate_required_settings(self):
        """Validate that required settings are present."""
        required_settings = [
            ('YOUTUBE_CHANNEL_ID', self.YOUTUBE_CHANNEL_ID),
        ]

        missing_settings = [name for name, value in required_settings if not value]
        if missing_settings:
            raise ValueError(f"Missing required environment variables: {', '.join(missing_settings)}")

        if self.PORT > 65535:
            raise ValueError("PORT must be between 1 and 65535")

    @property
    def youtube_topic_url(self) -> str:
        """The YouTube WebSub topic URL for the configured channel."""
        return youtube_topic_url(self.YOUTUBE_CHANNEL_ID)


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """Load settings once, reading a .env file if one exists."""
    load_dotenv()
    return Settings()
