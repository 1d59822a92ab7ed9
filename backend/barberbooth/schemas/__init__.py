"""Pydantic v2 schemas package."""

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
from barberbooth.schemas.parts import (
    CapabilityResponse,
    ImagePart,
    ImageResponse,
    OperationError,
    OperationHandle,
    OperationStatus,
    RequestPart,
    TextOnlyResponse,
    TextPart,
)

__all__ = [
    "ANGLES",
    "Angle",
    "AngleResult",
    "AngleStatus",
    "GenerationInputs",
    "SessionSnapshot",
    "SessionStatus",
    "VideoOperationState",
    "VideoStatus",
    "CapabilityResponse",
    "ImagePart",
    "ImageResponse",
    "OperationError",
    "OperationHandle",
    "OperationStatus",
    "RequestPart",
    "TextOnlyResponse",
    "TextPart",
]
