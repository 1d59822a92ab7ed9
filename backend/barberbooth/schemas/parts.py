from __future__ import annotations
"""Pydantic v2 schemas for request parts and capability responses."""

import base64
import binascii
import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from barberbooth.services.errors import InvalidInputError

_DATA_URL_RE = re.compile(r"^data:(image/[\w.+-]+);base64,(.*)$", re.DOTALL)


class ImagePart(BaseModel):
    """Inline image bytes plus their MIME type."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, data_url: str) -> ImagePart:
        """Parse a ``data:image/...;base64,...`` URL."""
        match = _DATA_URL_RE.match(data_url or "")
        if not match:
            raise InvalidInputError(
                "Invalid data URL format. Expected 'data:image/...;base64,...'"
            )
        mime_type, payload = match.groups()
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError(f"Invalid base64 payload in data URL: {e}") from e
        return cls(data=data, mime_type=mime_type)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class TextPart(BaseModel):
    """A text instruction block."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str


RequestPart = Annotated[Union[ImagePart, TextPart], Field(discriminator="kind")]


class ImageResponse(BaseModel):
    """The capability produced an image."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes
    mime_type: str = "image/png"

    def as_part(self) -> ImagePart:
        return ImagePart(data=self.data, mime_type=self.mime_type)


class TextOnlyResponse(BaseModel):
    """The capability answered with text only (usually a refusal)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    text: str = ""


CapabilityResponse = Annotated[
    Union[ImageResponse, TextOnlyResponse], Field(discriminator="kind")
]


# Opaque handle of a remote long-running operation.
OperationHandle = str


class OperationError(BaseModel):
    code: int | str | None = None
    message: str = "unknown"


class OperationStatus(BaseModel):
    """One poll of a long-running video operation."""

    done: bool = False
    result_uri: str | None = None
    error: OperationError | None = None
