"""Environment-driven settings for the parsing pipeline and its collaborators.

Environment variables:
    SHELFSCAN_AI_API_KEY: enables AI-assisted extraction when set
    SHELFSCAN_AI_MODEL: chat model name (default gpt-4o)
    SHELFSCAN_AI_BASE_URL: OpenAI-compatible API root
    SHELFSCAN_AI_TIMEOUT: seconds (default 30)
    SHELFSCAN_PLACES_API_KEY: enables online address lookup when set
    SHELFSCAN_PLACES_TIMEOUT: seconds (default 10)
    SHELFSCAN_PLACES_MIN_INTERVAL: minimum seconds between lookups (default 1)
    SHELFSCAN_MAX_INPUT_CHARS: largest accepted OCR text (default 100000)
    SHELFSCAN_LEARNING_MAX_RECORDS: feedback log cap (default 500)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_AI_MODEL = "gpt-4o"
DEFAULT_AI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_AI_TIMEOUT = 30.0
DEFAULT_PLACES_TIMEOUT = 10.0
DEFAULT_PLACES_MIN_INTERVAL = 1.0
DEFAULT_MAX_INPUT_CHARS = 100_000
DEFAULT_LEARNING_MAX_RECORDS = 500


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class PipelineSettings:
    ai_api_key: str | None = None
    ai_model: str = DEFAULT_AI_MODEL
    ai_base_url: str = DEFAULT_AI_BASE_URL
    ai_timeout: float = DEFAULT_AI_TIMEOUT
    places_api_key: str | None = None
    places_timeout: float = DEFAULT_PLACES_TIMEOUT
    places_min_interval: float = DEFAULT_PLACES_MIN_INTERVAL
    max_input_chars: int = DEFAULT_MAX_INPUT_CHARS
    learning_max_records: int = DEFAULT_LEARNING_MAX_RECORDS

    @property
    def ai_enabled(self) -> bool:
        return bool(self.ai_api_key)

    @property
    def geocoding_enabled(self) -> bool:
        return bool(self.places_api_key)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> PipelineSettings:
        env = os.environ if env is None else env
        return cls(
            ai_api_key=env.get("SHELFSCAN_AI_API_KEY", "").strip() or None,
            ai_model=env.get("SHELFSCAN_AI_MODEL", "").strip() or DEFAULT_AI_MODEL,
            ai_base_url=(env.get("SHELFSCAN_AI_BASE_URL", "").strip() or DEFAULT_AI_BASE_URL).rstrip("/"),
            ai_timeout=_env_float(env, "SHELFSCAN_AI_TIMEOUT", DEFAULT_AI_TIMEOUT),
            places_api_key=env.get("SHELFSCAN_PLACES_API_KEY", "").strip() or None,
            places_timeout=_env_float(env, "SHELFSCAN_PLACES_TIMEOUT", DEFAULT_PLACES_TIMEOUT),
            places_min_interval=_env_float(env, "SHELFSCAN_PLACES_MIN_INTERVAL", DEFAULT_PLACES_MIN_INTERVAL),
            max_input_chars=_env_int(env, "SHELFSCAN_MAX_INPUT_CHARS", DEFAULT_MAX_INPUT_CHARS),
            learning_max_records=_env_int(env, "SHELFSCAN_LEARNING_MAX_RECORDS", DEFAULT_LEARNING_MAX_RECORDS),
        )
