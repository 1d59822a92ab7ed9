from __future__ import annotations
"""Pydantic v2 schemas for a generation session and its results."""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from barberbooth.schemas.parts import ImagePart


class Angle(str, enum.Enum):
    """The four views of one sheet, in grid order."""

    FRONT = "front"
    LEFT = "left"
    RIGHT = "right"
    BACK = "back"

    @property
    def label(self) -> str:
        return self.value.capitalize()


# Grid order: top-left, top-right, bottom-left, bottom-right.
ANGLES: tuple[Angle, ...] = (Angle.FRONT, Angle.LEFT, Angle.RIGHT, Angle.BACK)


class AngleStatus(str, enum.Enum):
    PENDING = "pending"
    DONE = "done"
    ERROR = "error"


class AngleResult(BaseModel):
    """Result of one angle; image present iff done, message present iff error."""

    model_config = ConfigDict(frozen=True)

    status: AngleStatus = AngleStatus.PENDING
    image_bytes: bytes | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> AngleResult:
        if (self.image_bytes is not None) != (self.status == AngleStatus.DONE):
            raise ValueError("image_bytes must be set exactly when status is done")
        if (self.error_message is not None) != (self.status == AngleStatus.ERROR):
            raise ValueError("error_message must be set exactly when status is error")
        return self

    @classmethod
    def pending(cls) -> AngleResult:
        return cls()

    @classmethod
    def done(cls, image_bytes: bytes) -> AngleResult:
        return cls(status=AngleStatus.DONE, image_bytes=image_bytes)

    @classmethod
    def failed(cls, message: str) -> AngleResult:
        return cls(status=AngleStatus.ERROR, error_message=message)


class GenerationInputs(BaseModel):
    """What the user asked for. Immutable once a session starts."""

    model_config = ConfigDict(frozen=True)

    source_image: ImagePart
    style_description: str | None = None
    style_reference_image: ImagePart | None = None
    style_modification: str | None = None
    hair_color: str | None = None

    @property
    def description(self) -> str:
        return (self.style_description or "").strip()

    @property
    def modification(self) -> str:
        return (self.style_modification or "").strip()

    @property
    def color(self) -> str:
        return (self.hair_color or "").strip()

    def has_style_driver(self) -> bool:
        """True if a description, a reference image or a hair color is given."""
        return bool(self.description or self.style_reference_image or self.color)


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class VideoStatus(str, enum.Enum):
    IDLE = "idle"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


class VideoOperationState(BaseModel):
    """Video sub-state of a completed session."""

    status: VideoStatus = VideoStatus.IDLE
    progress_message: str = ""
    result_uri: str | None = None
    error_message: str | None = None
    error_kind: str | None = None


class SessionSnapshot(BaseModel):
    """Read-only view of a finished session, handed to exporters."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    created_at: datetime
    status: SessionStatus
    inputs: GenerationInputs
    angle_results: dict[Angle, AngleResult] = Field(default_factory=dict)
    video: VideoOperationState = Field(default_factory=VideoOperationState)
    video_bytes: bytes | None = None
