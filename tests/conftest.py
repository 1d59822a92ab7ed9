"""Pytest configuration helpers and shared fixtures.

This conftest puts ``backend/`` on ``sys.path`` so tests can import the
``barberbooth`` package without installing it, and provides image fixtures
plus scripted fakes for the image/video capabilities.
"""
import io
import os
import sys
from typing import Any, Sequence

import pytest
from PIL import Image

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

from barberbooth.config import Settings  # noqa: E402
from barberbooth.schemas import (  # noqa: E402
    GenerationInputs,
    ImagePart,
    ImageResponse,
    OperationStatus,
)

# Quadrant colors in grid order: front, left, right, back.
QUADRANT_COLORS = [(220, 20, 20), (20, 200, 20), (20, 20, 220), (230, 220, 20)]


def make_image(size=(64, 48), color=(128, 128, 128), fmt="JPEG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, fmt)
    return buf.getvalue()


def make_sheet(size=(400, 300), colors=QUADRANT_COLORS, fmt="PNG") -> bytes:
    """A 2x2 composite with one solid color per quadrant."""
    width, height = size
    img = Image.new("RGB", size)
    half_w, half_h = width // 2, height // 2
    boxes = [
        (0, 0, half_w, half_h),
        (half_w, 0, width, half_h),
        (0, half_h, half_w, height),
        (half_w, half_h, width, height),
    ]
    for box, color in zip(boxes, colors):
        img.paste(color, box)
    buf = io.BytesIO()
    img.save(buf, fmt)
    return buf.getvalue()


def color_close(actual: Sequence[int], expected: Sequence[int], tolerance: int = 12) -> bool:
    return all(abs(a - e) <= tolerance for a, e in zip(actual, expected))


class FakeImageCapability:
    """Replays scripted outcomes; an Exception instance is raised, anything else returned."""

    def __init__(self, outcomes: list[Any]):
        self.outcomes = list(outcomes)
        self.calls: list[list[Any]] = []

    async def generate(self, parts):
        self.calls.append(list(parts))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeVideoCapability:
    """Scripted video operation: start, a sequence of poll results, then fetch."""

    def __init__(
        self,
        statuses: list[Any] | None = None,
        start_error: Exception | None = None,
        fetch_result: Any = b"video-bytes",
    ):
        self.statuses = list(statuses or [OperationStatus(done=True, result_uri="https://example.test/v.mp4")])
        self.start_error = start_error
        self.fetch_result = fetch_result
        self.start_calls: list[tuple[ImagePart, str]] = []
        self.poll_calls: list[str] = []
        self.fetch_calls: list[str] = []

    async def start(self, image, prompt):
        self.start_calls.append((image, prompt))
        if self.start_error is not None:
            raise self.start_error
        return "operations/test-op"

    async def poll(self, handle):
        self.poll_calls.append(handle)
        outcome = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def fetch(self, uri):
        self.fetch_calls.append(uri)
        if isinstance(self.fetch_result, BaseException):
            raise self.fetch_result
        return self.fetch_result

    @property
    def touched(self) -> bool:
        return bool(self.start_calls or self.poll_calls or self.fetch_calls)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment's .env file."""
    return Settings(_env_file=None, GEMINI_API_KEY="test-key", EXPORT_SESSIONS=False)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image((320, 240), (150, 110, 90))


@pytest.fixture
def source_image(jpeg_bytes) -> ImagePart:
    return ImagePart(data=jpeg_bytes, mime_type="image/jpeg")


@pytest.fixture
def fade_inputs(source_image) -> GenerationInputs:
    return GenerationInputs(source_image=source_image, style_description="a short fade")


@pytest.fixture
def sheet_bytes() -> bytes:
    return make_sheet()


@pytest.fixture
def sheet_response(sheet_bytes) -> ImageResponse:
    return ImageResponse(data=sheet_bytes, mime_type="image/png")
