from __future__ import annotations
"""Generation session: one user request from inputs to four views and an optional video.

State machine::

    idle → running → completed ─┬─ video: idle → generating → done | error
                   ↘ failed     │
                                └─ (video never touches angle results)

Only the session holds mutable state; the image client, codec and poller
it drives are shared and stateless.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Mapping

from barberbooth.config import Settings, get_settings
from barberbooth.schemas.generation import (
    ANGLES,
    Angle,
    AngleResult,
    AngleStatus,
    GenerationInputs,
    SessionSnapshot,
    SessionStatus,
    VideoOperationState,
    VideoStatus,
)
from barberbooth.schemas.parts import ImagePart
from barberbooth.services.errors import (
    DecompositionFailedError,
    GenerationFailedError,
    InvalidInputError,
    SessionBusyError,
    VideoError,
    VideoMissingResultError,
)
from barberbooth.services.exporter import MediaVolumeExporter, SessionExporter
from barberbooth.services.image_gen import ImageGenService
from barberbooth.services.prompt_builder import build_request_parts, describe_for_video
from barberbooth.services.providers.gemini_image import GeminiImageProvider
from barberbooth.services.providers.gemini_video import GeminiVideoProvider
from barberbooth.services.providers.mock import MockImageProvider, MockVideoProvider
from barberbooth.services.sheet_codec import SheetCodec
from barberbooth.services.video_gen import (
    ProgressCallback,
    VideoCompleted,
    VideoOperationPoller,
)

logger = logging.getLogger(__name__)

VIDEO_INITIAL_MESSAGE = "Initializing video generation..."


class GenerationSession:
    """Owns one generation request and its results.

    ``start`` and ``generate_video`` are single-flight: calling either while
    the session already has work in flight raises ``SessionBusyError``.
    """

    def __init__(
        self,
        image_client: ImageGenService,
        codec: SheetCodec,
        video_poller: VideoOperationPoller | None = None,
        exporter: SessionExporter | None = None,
        settings: Settings | None = None,
        session_id: str | None = None,
    ) -> None:
        self.image_client = image_client
        self.codec = codec
        self.video_poller = video_poller
        self.exporter = exporter
        self.settings = settings or get_settings()
        self.session_id = session_id or uuid.uuid4().hex
        self.created_at = datetime.now(timezone.utc)

        self._inputs: GenerationInputs | None = None
        self._status = SessionStatus.IDLE
        self._results: dict[Angle, AngleResult] = {angle: AngleResult.pending() for angle in ANGLES}
        self._video = VideoOperationState()
        self._video_bytes: bytes | None = None
        self._error: str | None = None

    # -----------------------------------------------------------------------
    # Read-only views
    # -----------------------------------------------------------------------

    @property
    def inputs(self) -> GenerationInputs | None:
        return self._inputs

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def angle_results(self) -> dict[Angle, AngleResult]:
        return dict(self._results)

    @property
    def video(self) -> VideoOperationState:
        return self._video.model_copy()

    @property
    def video_bytes(self) -> bytes | None:
        return self._video_bytes

    @property
    def error(self) -> str | None:
        """Message of the last pipeline failure, if the session failed."""
        return self._error

    # -----------------------------------------------------------------------
    # Generation
    # -----------------------------------------------------------------------

    async def start(self, inputs: GenerationInputs) -> SessionStatus:
        """Run the full four-view generation for ``inputs``.

        Pipeline failures are recorded on the session (all four results set
        to ``error``) and reflected in the returned status; only invalid
        inputs and busy sessions raise.
        """
        if self._status == SessionStatus.RUNNING or self._video.status == VideoStatus.GENERATING:
            raise SessionBusyError("A generation is already in progress for this session.")
        if not inputs.has_style_driver():
            raise InvalidInputError(
                "Either a hairstyle description, a reference image, "
                "or just a hair color must be provided."
            )
        parts = build_request_parts(inputs, max_dimension=self.settings.API_IMAGE_MAX_DIMENSION)

        self._inputs = inputs
        self._results = {angle: AngleResult.pending() for angle in ANGLES}
        self._video = VideoOperationState()
        self._video_bytes = None
        self._error = None
        self._status = SessionStatus.RUNNING
        logger.info("Session %s: generation started (%d parts)", self.session_id[:8], len(parts))

        try:
            try:
                response = await self.image_client.generate(parts)
                quadrants = self.codec.decompose(response.data)
            except (GenerationFailedError, DecompositionFailedError) as e:
                self._fail(str(e))
                return self._status

            self._results = {angle: AngleResult.done(quadrants[angle]) for angle in ANGLES}
            self._status = SessionStatus.COMPLETED
            logger.info("Session %s: all four views ready", self.session_id[:8])
        finally:
            if self._status == SessionStatus.RUNNING:
                # Interrupted: results stay pending, the session can be started again.
                self._status = SessionStatus.IDLE

        self._export()
        return self._status

    async def regenerate_angle(self, angle: Angle) -> SessionStatus:
        """Regenerate one view. All four views come from one sheet, so this reruns ``start``."""
        if self._inputs is None:
            raise InvalidInputError("Nothing to regenerate: the session was never started.")
        logger.info("Session %s: regenerating %s via full restart", self.session_id[:8], angle.value)
        return await self.start(self._inputs)

    def _fail(self, message: str) -> None:
        self._results = {angle: AngleResult.failed(message) for angle in ANGLES}
        self._error = message
        self._status = SessionStatus.FAILED
        logger.error("Session %s: generation failed: %s", self.session_id[:8], message)

    # -----------------------------------------------------------------------
    # Video
    # -----------------------------------------------------------------------

    async def generate_video(self, on_progress: ProgressCallback | None = None) -> VideoOperationState:
        """Generate the turntable video from the front view.

        Video failures are recorded in ``video`` (with ``error_kind``) and
        never change the angle results.
        """
        if self._video.status == VideoStatus.GENERATING:
            raise SessionBusyError("A video is already being generated for this session.")
        front = self._results[Angle.FRONT]
        if self._status != SessionStatus.COMPLETED or front.status != AngleStatus.DONE:
            raise InvalidInputError("Front image must be generated first.")
        description = describe_for_video(self._inputs)
        if not description:
            raise InvalidInputError("A text description or color is required for video generation.")
        if self.video_poller is None:
            raise InvalidInputError("Video generation is not configured for this session.")

        source = ImagePart(data=front.image_bytes, mime_type=self.codec.mime_type)
        self._video = VideoOperationState(
            status=VideoStatus.GENERATING, progress_message=VIDEO_INITIAL_MESSAGE,
        )
        self._video_bytes = None
        logger.info("Session %s: video generation started", self.session_id[:8])

        try:
            async for event in self.video_poller.stream(source, description):
                if isinstance(event, VideoCompleted):
                    self._video_bytes = event.data
                    self._video = VideoOperationState(
                        status=VideoStatus.DONE, result_uri=event.result_uri,
                    )
                    break
                self._video.progress_message = event.message
                if on_progress is not None:
                    maybe = on_progress(event.message)
                    if asyncio.iscoroutine(maybe):
                        await maybe
            else:
                raise VideoMissingResultError("The video stream ended without a result.")
        except VideoError as e:
            self._video = VideoOperationState(
                status=VideoStatus.ERROR, error_message=str(e), error_kind=e.kind,
            )
            logger.error("Session %s: video failed (%s): %s", self.session_id[:8], e.kind, e)
            return self.video
        finally:
            if self._video.status == VideoStatus.GENERATING:
                self._video = VideoOperationState()

        logger.info("Session %s: video ready (%d bytes)", self.session_id[:8], len(self._video_bytes))
        self._export()
        return self.video

    # -----------------------------------------------------------------------
    # Sheet & persistence
    # -----------------------------------------------------------------------

    def build_sheet(self, captions: Mapping[Angle, str] | None = None) -> bytes:
        """Compose the four finished views into one printable sheet."""
        if self._status != SessionStatus.COMPLETED:
            raise InvalidInputError("Please wait for all images to finish generating.")
        return self.codec.compose(
            {angle: result.image_bytes for angle, result in self._results.items()},
            captions,
        )

    def snapshot(self) -> SessionSnapshot:
        if self._inputs is None:
            raise InvalidInputError("The session has not been started.")
        return SessionSnapshot(
            session_id=self.session_id,
            created_at=self.created_at,
            status=self._status,
            inputs=self._inputs,
            angle_results=dict(self._results),
            video=self._video.model_copy(),
            video_bytes=self._video_bytes,
        )

    def _export(self) -> None:
        if self.exporter is None or self._status != SessionStatus.COMPLETED:
            return
        try:
            self.exporter.export(self.snapshot())
        except Exception:
            logger.exception("Session %s: export failed", self.session_id[:8])


def create_session(settings: Settings | None = None) -> GenerationSession:
    """Build a session wired to the providers selected by ``settings``."""
    settings = settings or get_settings()

    if settings.USE_MOCK_API:
        logger.info("Using mock image/video providers")
        image_capability = MockImageProvider()
        video_provider = MockVideoProvider()
    else:
        image_capability = GeminiImageProvider(
            api_key=settings.GEMINI_API_KEY,
            model=settings.IMAGE_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.IMAGE_TIMEOUT,
        )
        video_provider = GeminiVideoProvider(
            api_key=settings.GEMINI_API_KEY,
            model=settings.VIDEO_MODEL,
            base_url=settings.GEMINI_BASE_URL,
            timeout=settings.VIDEO_HTTP_TIMEOUT,
        )

    return GenerationSession(
        image_client=ImageGenService.from_settings(image_capability, settings),
        codec=SheetCodec(quality=settings.SHEET_IMAGE_QUALITY, font_path=settings.SHEET_FONT_PATH),
        video_poller=VideoOperationPoller.from_settings(video_provider, video_provider, settings),
        exporter=MediaVolumeExporter.from_settings(settings) if settings.EXPORT_SESSIONS else None,
        settings=settings,
    )
