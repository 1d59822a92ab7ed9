"""Gemini Veo video generation provider.

Veo runs as a long-running operation:
1. POST models/{model}:predictLongRunning → operation name
2. GET  {operation name}                  → poll until done
3. GET  result URI (API key header)       → video bytes
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from barberbooth.schemas.parts import ImagePart, OperationError, OperationHandle, OperationStatus
from barberbooth.services.errors import CapabilityError

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"


class GeminiVideoProvider:
    """VideoGenerationCapability and ResultFetcher backed by the Gemini REST API."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.endpoint = (base_url or _DEFAULT_ENDPOINT).rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def start(self, image: ImagePart, prompt: str) -> OperationHandle:
        body = {
            "instances": [{
                "prompt": prompt,
                "image": {
                    "bytesBase64Encoded": image.to_base64(),
                    "mimeType": image.mime_type,
                },
            }],
            "parameters": {"sampleCount": 1},
        }
        resp = await self._request(
            "POST", f"{self.endpoint}/models/{self.model}:predictLongRunning", json=body,
        )
        data = resp.json()
        operation_name = data.get("name")
        if not operation_name:
            raise CapabilityError(f"Gemini Veo returned no operation name: {data}")

        logger.info("Gemini Veo operation started: %s (model=%s)", operation_name, self.model)
        return operation_name

    async def poll(self, handle: OperationHandle) -> OperationStatus:
        resp = await self._request("GET", f"{self.endpoint}/{handle}")
        return parse_operation(resp.json())

    async def fetch(self, uri: str) -> bytes:
        resp = await self._request("GET", uri, follow_redirects=True)
        return resp.content

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if not self.api_key:
            raise CapabilityError("Gemini API key is required")

        headers = {"x-goog-api-key": self.api_key}
        client = self._http_client or httpx.AsyncClient(timeout=self.timeout)
        own_client = self._http_client is None

        try:
            try:
                resp = await client.request(method, url, headers=headers, **kwargs)
            except httpx.HTTPError as e:
                raise CapabilityError(f"Gemini Veo request failed: {e}") from e

            if resp.status_code >= 400:
                raise CapabilityError(
                    f"HTTP {resp.status_code}: {resp.text[:500]}",
                    status_code=resp.status_code,
                )
            # Read the body before the owned client goes away.
            await resp.aread()
            return resp
        finally:
            if own_client:
                await client.aclose()


def parse_operation(data: dict[str, Any]) -> OperationStatus:
    """Map a long-running operation payload onto ``OperationStatus``."""
    error = data.get("error")
    if error:
        return OperationStatus(
            done=True,
            error=OperationError(
                code=error.get("code"),
                message=error.get("message", "unknown"),
            ),
        )

    if not data.get("done"):
        return OperationStatus(done=False)

    response = data.get("response") or {}
    samples = (
        (response.get("generateVideoResponse") or {}).get("generatedSamples")
        or response.get("generatedVideos")
        or []
    )
    for sample in samples:
        uri = (sample.get("video") or {}).get("uri")
        if uri:
            return OperationStatus(done=True, result_uri=uri)

    return OperationStatus(done=True)
