"""
Gemini streaming text generation client.

Uses the ``streamGenerateContent`` endpoint in server-sent-events mode and
yields the text of each chunk as it arrives.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from .base import ClientError, TextGenerationClient

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiClient(TextGenerationClient):
    """Streams answers from a Gemini model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        base_url: str = DEFAULT_BASE_URL,
        max_output_tokens: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__("gemini", api_key, **kwargs)

        if not api_key:
            raise ValueError("Gemini API key is required")

        self.model = model
        self.max_output_tokens = max_output_tokens

        self._http_client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "x-goog-api-key": api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(self.timeout),
        )

    async def generate(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream the answer to ``prompt``.

        Yields:
            Non-empty text fragments in arrival order
        """
        payload = self._prepare_request(prompt)

        try:
            async with self._http_client.stream(
                "POST",
                f"/models/{self.model}:streamGenerateContent",
                params={"alt": "sse"},
                json=payload,
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    self._handle_http_error(response)

                async for line in response.aiter_lines():
                    fragment = self._parse_event(line)
                    if fragment:
                        yield fragment
        except httpx.HTTPError as e:
            logger.error(f"Gemini stream failed: {e}")
            raise ClientError(
                f"Streaming request failed: {e}",
                provider=self.provider_name,
                details={"error_type": type(e).__name__},
            ) from e

    def _prepare_request(self, prompt: str) -> dict[str, Any]:
        request: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        }
        if self.max_output_tokens is not None:
            request["generationConfig"] = {"maxOutputTokens": self.max_output_tokens}
        return request

    def _parse_event(self, line: str) -> str:
        """Extract the text carried by one SSE line; empty for anything else."""
        if not line.startswith("data:"):
            return ""

        try:
            data = json.loads(line[len("data:"):].strip())
        except json.JSONDecodeError as e:
            raise ClientError(
                f"Malformed stream event: {e}", provider=self.provider_name
            ) from e

        candidates = data.get("candidates") or []
        if not candidates:
            return ""

        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)

    async def close(self) -> None:
        await self._http_client.aclose()
