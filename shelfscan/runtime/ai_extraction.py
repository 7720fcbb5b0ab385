"""HTTP client for AI-assisted receipt extraction (OpenAI-compatible chat API)."""

from __future__ import annotations

import json
import time
from typing import Any

import httpx

from shelfscan.receipt.ai_response import build_extraction_prompt
from shelfscan.runtime.logging import get_logger
from shelfscan.runtime.settings import DEFAULT_AI_BASE_URL, DEFAULT_AI_MODEL, DEFAULT_AI_TIMEOUT, PipelineSettings

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are an expert receipt parser. Analyze receipt OCR text and extract structured data. "
    "Always return valid JSON with confidence scores for each item."
)
TEMPERATURE = 0.1
MAX_TOKENS = 2000


class AIExtractionUnavailable(RuntimeError):
    """Raised when the extraction service cannot be reached or returns an unusable reply."""


class AIReceiptExtractor:
    """Callable returning the decoded JSON object the model produced for a receipt.

    Exactly one request is made per call; there is no retry.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_AI_MODEL,
        base_url: str = DEFAULT_AI_BASE_URL,
        timeout: float = DEFAULT_AI_TIMEOUT,
        client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for AI extraction")
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: PipelineSettings, client: httpx.Client | None = None) -> AIReceiptExtractor:
        if not settings.ai_api_key:
            raise ValueError("AI extraction is not configured")
        return cls(
            settings.ai_api_key,
            model=settings.ai_model,
            base_url=settings.ai_base_url,
            timeout=settings.ai_timeout,
            client=client,
        )

    def _request_body(self, text: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_extraction_prompt(text)},
            ],
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

    def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self._client is not None:
            return self._client.post(url, json=body, headers=headers, timeout=self.timeout)
        return httpx.post(url, json=body, headers=headers, timeout=self.timeout)

    def __call__(self, text: str) -> dict[str, Any]:
        url = f"{self.base_url}/chat/completions"
        logger.info("Requesting AI extraction from %s (%d chars)", self.base_url, len(text))

        start_time = time.time()
        try:
            response = self._post(url, self._request_body(text))
        except httpx.HTTPError as e:
            logger.error("Failed to reach AI extraction service: %s", e)
            raise AIExtractionUnavailable(f"Failed to reach AI extraction service: {e}") from e
        logger.info("AI extraction returned in %.2f seconds", time.time() - start_time)

        if response.status_code != 200:
            # Response bodies may echo receipt text; log the status only.
            logger.error("AI extraction service error: %s", response.status_code)
            raise AIExtractionUnavailable(f"AI extraction service error: {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
            payload = json.loads(content)
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Malformed AI extraction response: %s", e)
            raise AIExtractionUnavailable(f"Malformed AI extraction response: {e}") from e

        if not isinstance(payload, dict):
            raise AIExtractionUnavailable("AI extraction response is not a JSON object")
        return payload
