"""Image/video capability interfaces and their implementations.

Each video provider implements the async operation pattern:
  start operation → poll status → fetch result bytes
"""

from __future__ import annotations

from typing import Protocol, Sequence, Union

from barberbooth.schemas.parts import (
    ImagePart,
    ImageResponse,
    OperationHandle,
    OperationStatus,
    TextOnlyResponse,
    TextPart,
)


class ImageGenerationCapability(Protocol):
    async def generate(
        self, parts: Sequence[Union[ImagePart, TextPart]],
    ) -> Union[ImageResponse, TextOnlyResponse]:
        """Single-shot call; raises ``CapabilityError`` on remote failure."""
        ...


class VideoGenerationCapability(Protocol):
    async def start(self, image: ImagePart, prompt: str) -> OperationHandle:
        ...

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        ...


class ResultFetcher(Protocol):
    async def fetch(self, uri: str) -> bytes:
        ...
