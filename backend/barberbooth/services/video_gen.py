from __future__ import annotations
"""Video generation service: turntable video from the front view.

Async operation pattern:
1. start  → submit image + prompt, get an operation handle
2. poll   → every 10s until the operation reports done
3. fetch  → download the result bytes from the returned URI

Progress is delivered as an async event stream: zero or more
VideoProgress events, then exactly one VideoCompleted. Failures are
raised from the stream as VideoError subclasses.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Sequence, Union

from barberbooth.config import Settings, get_settings
from barberbooth.schemas.parts import ImagePart, OperationStatus
from barberbooth.services.errors import (
    VideoDownloadError,
    VideoInitializationError,
    VideoMissingResultError,
    VideoOperationError,
    VideoPollError,
)
from barberbooth.services.prompt_builder import build_video_prompt
from barberbooth.services.providers import ResultFetcher, VideoGenerationCapability

logger = logging.getLogger(__name__)

PROGRESS_MESSAGES: tuple[str, ...] = (
    "Briefing the AI stylist on your vision...",
    "Calibrating the virtual camera rig...",
    "Mapping your facial geometry in 3D...",
    "Simulating hair follicles strand by strand...",
    "Rendering the right profile view...",
    "Generating the view from the back...",
    "Painting in the left profile...",
    "Stitching the orbital path together...",
    "Applying cinematic lighting and color grade...",
    "Finalizing the 360° masterpiece...",
)
DOWNLOAD_MESSAGE = "Downloading final video..."

ProgressCallback = Callable[[str], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class VideoProgress:
    message: str


@dataclass(frozen=True)
class VideoCompleted:
    data: bytes
    result_uri: str


VideoEvent = Union[VideoProgress, VideoCompleted]


class VideoOperationPoller:
    """Drives one start → poll → fetch cycle per call.

    Holds no per-operation state, so a single poller can serve many
    sessions sequentially or concurrently.
    """

    def __init__(
        self,
        capability: VideoGenerationCapability,
        fetcher: ResultFetcher,
        *,
        poll_interval: float = 10.0,
        poll_timeout: float | None = None,
        progress_messages: Sequence[str] = PROGRESS_MESSAGES,
        prompt_style: str = "default",
    ) -> None:
        if not progress_messages:
            raise ValueError("progress_messages must not be empty")
        self.capability = capability
        self.fetcher = fetcher
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.progress_messages = tuple(progress_messages)
        self.prompt_style = prompt_style

    @classmethod
    def from_settings(
        cls,
        capability: VideoGenerationCapability,
        fetcher: ResultFetcher,
        settings: Settings | None = None,
    ) -> VideoOperationPoller:
        settings = settings or get_settings()
        return cls(
            capability,
            fetcher,
            poll_interval=settings.VIDEO_POLL_INTERVAL,
            poll_timeout=settings.VIDEO_POLL_TIMEOUT,
        )

    async def stream(self, source_image: ImagePart, description: str) -> AsyncIterator[VideoEvent]:
        """Yield progress events, then one VideoCompleted. Raises VideoError on failure."""
        prompt = build_video_prompt(description, self.prompt_style)

        # --- starting ---
        yield VideoProgress(self.progress_messages[0])
        try:
            handle = await self.capability.start(source_image, prompt)
        except Exception as e:
            logger.error("Failed to start video generation (prompt length=%d): %s", len(prompt), e)
            raise VideoInitializationError(
                "The AI model failed to initialize the video generation process. "
                f"Details: {e}"
            ) from e
        logger.info("Video operation started: %s", handle)

        # --- polling ---
        status = OperationStatus(done=False)
        progress_index = 1
        elapsed = 0.0
        while not status.done:
            if self.poll_timeout is not None and elapsed >= self.poll_timeout:
                logger.error("Video operation %s still running after %.0fs", handle, elapsed)
                raise VideoPollError(
                    "The video generation is taking longer than expected. "
                    f"Details: operation {handle} not done after {elapsed:.0f}s"
                )
            yield VideoProgress(self.progress_messages[progress_index % len(self.progress_messages)])
            progress_index += 1
            await asyncio.sleep(self.poll_interval)
            elapsed += self.poll_interval
            try:
                status = await self.capability.poll(handle)
            except Exception as e:
                logger.error("Error while polling video operation %s: %s", handle, e)
                raise VideoPollError(
                    "There was a problem checking the status of your video generation. "
                    f"Details: {e}"
                ) from e
            logger.debug("Video operation poll: handle=%s done=%s elapsed=%.0fs", handle, status.done, elapsed)

        # --- terminal ---
        if status.error is not None:
            logger.error("Video operation %s failed: %s", handle, status.error.model_dump())
            raise VideoOperationError(
                f"The video generation failed with code {status.error.code}: {status.error.message}",
                code=status.error.code,
            )
        if not status.result_uri:
            logger.error("Video operation %s finished without a result URI", handle)
            raise VideoMissingResultError("The AI model finished but did not provide a video URL.")

        yield VideoProgress(DOWNLOAD_MESSAGE)
        try:
            data = await self.fetcher.fetch(status.result_uri)
        except Exception as e:
            logger.error("Failed to download video %s: %s", status.result_uri, e)
            raise VideoDownloadError(
                f"There was an error retrieving the final video file. Details: {e}"
            ) from e

        logger.info("Video ready: %d bytes from %s", len(data), status.result_uri)
        yield VideoCompleted(data=data, result_uri=status.result_uri)

    async def run(
        self,
        source_image: ImagePart,
        description: str,
        on_progress: ProgressCallback | None = None,
    ) -> bytes:
        """Callback form of ``stream``: returns the video bytes."""
        async for event in self.stream(source_image, description):
            if isinstance(event, VideoCompleted):
                return event.data
            if on_progress is not None:
                maybe = on_progress(event.message)
                if asyncio.iscoroutine(maybe):
                    await maybe
        raise VideoMissingResultError("The video stream ended without a result.")
