from __future__ import annotations
"""Image generation service: four-up composite from ordered request parts.

Wraps a single-shot ImageGenerationCapability with the bounded retry of
BaseGenService. Only server errors are retried; a text-only answer is a
refusal and fails at once.
"""

import logging
from typing import Any, Sequence, Union

from barberbooth.config import Settings, get_settings
from barberbooth.schemas.parts import ImagePart, ImageResponse, TextOnlyResponse, TextPart
from barberbooth.services.base_gen_service import BaseGenService, GenServiceConfig
from barberbooth.services.errors import (
    GenerationFailedError,
    InvalidInputError,
    ModelRefusalError,
)
from barberbooth.services.providers import ImageGenerationCapability

logger = logging.getLogger(__name__)

FAILURE_PREFIX = "The AI model failed to generate the 4-up grid."


class ImageGenService(BaseGenService[ImageResponse]):
    """Retrying client over an image generation capability.

    Holds no per-session state; one instance can serve many sessions.
    """

    service_name = "image_gen"

    def __init__(
        self,
        capability: ImageGenerationCapability,
        config: GenServiceConfig | None = None,
        model: str = "",
    ) -> None:
        super().__init__(config)
        self.capability = capability
        self.model = model

    @classmethod
    def from_settings(
        cls,
        capability: ImageGenerationCapability,
        settings: Settings | None = None,
    ) -> ImageGenService:
        settings = settings or get_settings()
        return cls(
            capability,
            GenServiceConfig(
                max_attempts=settings.IMAGE_MAX_ATTEMPTS,
                retry_delay=settings.IMAGE_RETRY_DELAY,
                timeout=settings.IMAGE_TIMEOUT,
                transient_markers=tuple(settings.TRANSIENT_ERROR_MARKERS),
            ),
            model=settings.IMAGE_MODEL,
        )

    async def generate(self, parts: Sequence[Union[ImagePart, TextPart]]) -> ImageResponse:
        """Public API: returns the composite image or raises GenerationFailedError."""
        if not any(isinstance(part, TextPart) for part in parts):
            raise InvalidInputError("A request must contain at least one text part.")
        result = await self.execute(parts=list(parts))
        logger.info(
            "image_gen: composite ready (%d bytes, %s) after %d attempt(s) in %dms",
            len(result.data.data), result.data.mime_type,
            result.attempts_used, result.latency_ms,
        )
        return result.data

    async def _generate(self, **kwargs: Any) -> ImageResponse:
        response = await self.capability.generate(kwargs["parts"])
        if isinstance(response, TextOnlyResponse):
            raise ModelRefusalError(response.text)
        return response

    def is_transient(self, error: BaseException) -> bool:
        if isinstance(error, ModelRefusalError):
            return False
        return super().is_transient(error)

    def _wrap_error(self, error: Exception, *, attempts: int, transient: bool) -> Exception:
        return GenerationFailedError(
            f"{FAILURE_PREFIX} Details: {str(error) or type(error).__name__}",
            attempts=attempts,
            transient=transient,
        )

    def _log_failure_context(self, **kwargs: Any) -> None:
        parts = kwargs.get("parts") or []
        prompt_length = sum(len(p.text) for p in parts if isinstance(p, TextPart))
        logger.error(
            "image_gen request details: model=%s parts=%d kinds=%s prompt_length=%d",
            self.model or "?", len(parts), [p.kind for p in parts], prompt_length,
        )
