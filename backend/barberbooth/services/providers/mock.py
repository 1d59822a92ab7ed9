"""Offline providers used when USE_MOCK_API is set."""

from __future__ import annotations

import io
import logging
import uuid
from typing import Sequence, Union

from PIL import Image, ImageDraw, ImageFont

from barberbooth.schemas.parts import (
    ImagePart,
    ImageResponse,
    OperationHandle,
    OperationStatus,
    TextOnlyResponse,
    TextPart,
)

logger = logging.getLogger(__name__)

_QUADRANT_COLORS = [(35, 35, 60), (60, 35, 35), (35, 60, 35), (60, 60, 35)]
_QUADRANT_LABELS = ["FRONT", "LEFT", "RIGHT", "BACK"]


class MockImageProvider:
    """Returns a placeholder 2x2 sheet with one labeled color block per view."""

    def __init__(self, size: tuple[int, int] = (1024, 1024)) -> None:
        self.size = size
        self.calls = 0

    async def generate(
        self, parts: Sequence[Union[ImagePart, TextPart]],
    ) -> Union[ImageResponse, TextOnlyResponse]:
        self.calls += 1
        width, height = self.size
        half_w, half_h = width // 2, height // 2

        img = Image.new("RGB", (width, height))
        draw = ImageDraw.Draw(img)
        font = ImageFont.load_default()

        for index, (color, label) in enumerate(zip(_QUADRANT_COLORS, _QUADRANT_LABELS)):
            x = (index % 2) * half_w
            y = (index // 2) * half_h
            draw.rectangle([x, y, x + half_w - 1, y + half_h - 1], fill=color)
            draw.text((x + 20, y + 20), f"[MOCK] {label}", fill=(255, 255, 255), font=font)

        buf = io.BytesIO()
        img.save(buf, "PNG")
        logger.info("Mock image provider produced %dx%d sheet", width, height)
        return ImageResponse(data=buf.getvalue(), mime_type="image/png")


class MockVideoProvider:
    """Pretends to run a video operation that finishes after ``polls_until_done`` polls."""

    def __init__(self, polls_until_done: int = 1) -> None:
        self.polls_until_done = polls_until_done
        self._polls: dict[str, int] = {}

    async def start(self, image: ImagePart, prompt: str) -> OperationHandle:
        handle = f"operations/mock-{uuid.uuid4().hex[:12]}"
        self._polls[handle] = 0
        logger.info("Mock video operation started: %s", handle)
        return handle

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        self._polls[handle] = self._polls.get(handle, 0) + 1
        if self._polls[handle] < self.polls_until_done:
            return OperationStatus(done=False)
        return OperationStatus(done=True, result_uri=f"mock://{handle}.mp4")

    async def fetch(self, uri: str) -> bytes:
        return b"\x00" * 1024
