from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Barber Booth settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "Barber Booth Pro"
    DEBUG: bool = False
    USE_MOCK_API: bool = False

    # --- Gemini (image + video generation) ---
    GEMINI_API_KEY: str = ""
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    IMAGE_MODEL: str = "gemini-2.5-flash-image-preview"
    VIDEO_MODEL: str = "veo-2.0-generate-001"

    # --- Image generation retry policy ---
    IMAGE_TIMEOUT: float = 180.0
    IMAGE_MAX_ATTEMPTS: int = 3
    IMAGE_RETRY_DELAY: float = 1.0
    TRANSIENT_ERROR_MARKERS: list[str] = ['"code":500', '"code": 500', "INTERNAL"]

    # --- Video operation polling ---
    VIDEO_POLL_INTERVAL: float = 10.0
    VIDEO_POLL_TIMEOUT: float | None = None  # None = poll until the operation finishes
    VIDEO_HTTP_TIMEOUT: float = 120.0

    # --- Sheet codec ---
    SHEET_IMAGE_QUALITY: int = 90
    SHEET_FONT_PATH: str | None = None
    API_IMAGE_MAX_DIMENSION: int = 1024
    STORAGE_IMAGE_MAX_DIMENSION: int = 512

    # --- Session export ---
    MEDIA_VOLUME: str = "media_volume"
    EXPORT_SESSIONS: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
