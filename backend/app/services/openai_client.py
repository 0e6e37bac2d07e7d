"""Helpers for constructing OpenAI-compatible API clients."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from openai import OpenAI

from app.core.config import Settings


@lru_cache(maxsize=4)
def _client_cache(api_key: str, base_url: str | None, timeout: float) -> OpenAI:
    kwargs: dict[str, Any] = {"api_key": api_key, "timeout": timeout, "max_retries": 0}
    if base_url:
        kwargs["base_url"] = base_url
    return OpenAI(**kwargs)


def get_openai_client(settings: Settings) -> OpenAI:
    """Build or reuse a client for the configured reasoning endpoint."""

    if not settings.reasoning_api_key:
        raise ValueError("REASONING_API_KEY is not configured")
    base_url = str(settings.reasoning_api_base) if settings.reasoning_api_base else None
    return _client_cache(
        settings.reasoning_api_key,
        base_url,
        float(settings.reasoning_timeout_seconds),
    )


__all__ = ["get_openai_client"]
