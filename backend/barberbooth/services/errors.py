"""Barber Booth exceptions.

Every terminal failure of the generation pipeline is one of these, so the
hosting UI can tell a refused prompt from a broken video download.
"""

from __future__ import annotations

from typing import Any

DETAILS_MARKER = "Details:"


class BoothError(Exception):
    """Base exception for all Barber Booth errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class InvalidInputError(BoothError):
    """Raised before any network call when the request cannot be served."""


class SessionBusyError(BoothError):
    """Raised when a session already has the same operation in flight."""


class CapabilityError(BoothError):
    """Raised by a provider when the remote capability rejects a call."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message, {"status_code": status_code})
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Image generation
# ---------------------------------------------------------------------------

class GenerationFailedError(BoothError):
    """The composite image could not be generated."""

    def __init__(self, message: str, *, attempts: int = 1, transient: bool = False):
        super().__init__(message, {"attempts": attempts, "transient": transient})
        self.attempts = attempts
        self.transient = transient


class ModelRefusalError(GenerationFailedError):
    """The model answered with text instead of an image."""

    def __init__(self, text: str):
        super().__init__(
            f'The AI model responded with text instead of an image: '
            f'"{text or "No text response received."}"'
        )
        self.text = text


# ---------------------------------------------------------------------------
# Sheet codec
# ---------------------------------------------------------------------------

class SheetCodecError(BoothError):
    """An image could not be decoded, cropped or encoded."""


class DecompositionFailedError(SheetCodecError):
    """The composite could not be split into four quadrants."""


# ---------------------------------------------------------------------------
# Video generation
# ---------------------------------------------------------------------------

class VideoError(BoothError):
    """Base for the terminal states of the video pipeline."""

    kind = "unknown"


class VideoInitializationError(VideoError):
    kind = "initialization"


class VideoPollError(VideoError):
    kind = "poll"


class VideoOperationError(VideoError):
    kind = "operation"

    def __init__(self, message: str, code: int | str | None = None):
        super().__init__(message, {"code": code})
        self.code = code


class VideoMissingResultError(VideoOperationError):
    kind = "missing_result"


class VideoDownloadError(VideoError):
    kind = "download"


def split_error_message(message: str | None) -> tuple[str, str]:
    """Split an error message into (friendly, diagnostic) parts.

    Messages built by the pipeline put technical detail after a
    ``Details:`` marker.
    """
    text = message or ""
    friendly, _, details = text.partition(DETAILS_MARKER)
    friendly = friendly.strip() or "An unknown error occurred."
    return friendly, details.strip()
