"""Gemini image generation provider.

Calls ``models/{model}:generateContent`` with inline image parts and a text
instruction block, asking for IMAGE + TEXT response modalities.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Sequence, Union

import httpx

from barberbooth.schemas.parts import ImagePart, ImageResponse, TextOnlyResponse, TextPart
from barberbooth.services.errors import CapabilityError

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


class GeminiImageProvider:
    """ImageGenerationCapability backed by the Gemini REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 180.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.endpoint = (base_url or _DEFAULT_ENDPOINT).rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def generate(
        self, parts: Sequence[Union[ImagePart, TextPart]],
    ) -> Union[ImageResponse, TextOnlyResponse]:
        if not self.api_key:
            raise CapabilityError("Gemini API key is required")

        body = {
            "contents": [{"parts": [_encode_part(p) for p in parts]}],
            "generationConfig": {"responseModalities": ["IMAGE", "TEXT"]},
        }
        url = f"{self.endpoint}/models/{self.model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        own_client = self._http_client is None

        try:
            try:
                resp = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as e:
                raise CapabilityError(f"Gemini request failed: {e}") from e

            if resp.status_code >= 400:
                # Gemini error bodies carry {"error": {"code": 500, "status": "INTERNAL"}}
                raise CapabilityError(
                    f"HTTP {resp.status_code}: {resp.text[:1000]}",
                    status_code=resp.status_code,
                )

            return parse_generate_content(resp.json())
        finally:
            if own_client:
                await client.aclose()


def _encode_part(part: Union[ImagePart, TextPart]) -> dict[str, Any]:
    if isinstance(part, ImagePart):
        return {"inline_data": {"mime_type": part.mime_type, "data": part.to_base64()}}
    return {"text": part.text}


def parse_generate_content(data: dict[str, Any]) -> Union[ImageResponse, TextOnlyResponse]:
    """Turn a generateContent response into the tagged response type.

    The first inline image wins; with no image, the concatenated text parts
    (or the finish/block reason) become a ``TextOnlyResponse``.
    """
    candidates = data.get("candidates") or []
    if not candidates:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            return TextOnlyResponse(text=f"Request blocked by safety filters ({block_reason}).")
        raise CapabilityError(
            f"Gemini returned no candidates. Response keys: {list(data.keys())}"
        )

    candidate = candidates[0]
    texts: list[str] = []
    for part in (candidate.get("content") or {}).get("parts") or []:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
            return ImageResponse(data=base64.b64decode(inline["data"]), mime_type=mime_type)
        if part.get("text"):
            texts.append(part["text"])

    text = "".join(texts).strip()
    if not text and candidate.get("finishReason"):
        text = f"finish_reason={candidate['finishReason']}"
    logger.warning("Gemini returned no image part, text=%s", text[:200])
    return TextOnlyResponse(text=text)
