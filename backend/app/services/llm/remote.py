"""Delegated reasoning provider that forwards prompts to a remote analysis service."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Sequence

import httpx
from loguru import logger

from app.core.config import Settings
from pipelines.analyzers.errors import ProviderError


@lru_cache(maxsize=4)
def _shared_client(timeout: float) -> httpx.Client:
    return httpx.Client(timeout=timeout)


@dataclass(slots=True)
class RemoteProvider:
    """POST ``{prompt, mode, model}`` to ``remote_analysis_url`` and read JSON back.

    The remote service owns credentials, so no API key is required locally.
    The response may be the assessment object itself or wrap it under
    ``assessment``/``result``.
    """

    name: str = "remote"
    require_api_key: bool = False

    def ensure_ready(self, *, settings: Settings, overrides: Mapping[str, Any]) -> None:
        if overrides.get("url") or overrides.get("client") or settings.remote_analysis_url:
            return
        raise ProviderError("REMOTE_ANALYSIS_URL is not configured; AI service unavailable")

    def build_client(self, *, settings: Settings, overrides: Mapping[str, Any]) -> Any:
        timeout = float(overrides.get("timeout_seconds") or settings.reasoning_timeout_seconds)
        return _shared_client(timeout)

    def default_model(self, mode: str, *, settings: Settings) -> str | None:
        if mode == "deep" and settings.reasoning_deep_model:
            return settings.reasoning_deep_model
        return settings.reasoning_model

    def default_request_options(
        self,
        mode: str,
        *,
        settings: Settings,
    ) -> Mapping[str, Any] | None:
        url = settings.remote_analysis_url
        return {"url": str(url)} if url else None

    def json_mode_kwargs(self) -> Mapping[str, Any]:
        return {}

    def invoke(
        self,
        request,
        *,
        messages: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None,
    ) -> Any:
        merged = dict(options or {})
        url = request.overrides.get("url") or merged.pop("url", None)
        if not url:
            raise ProviderError("Remote analysis URL is not configured")
        prompt = "\n\n".join(
            str(message.get("content", ""))
            for message in messages
            if message.get("role") == "user"
        )
        system = next(
            (str(message.get("content", "")) for message in messages if message.get("role") == "system"),
            None,
        )
        body: dict[str, Any] = {"prompt": prompt, "mode": request.mode, "model": request.model}
        if system:
            body["system"] = system
        body.update({key: value for key, value in merged.items() if key != "url"})
        try:
            response = request.client.post(str(url), json=body)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Remote analysis timed out url={} mode={}", url, request.mode)
            raise ProviderError(f"Remote analysis timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Remote analysis failed url={} mode={} error={}", url, request.mode, exc)
            raise ProviderError(f"Remote analysis failed: {exc}") from exc
        return response

    def extract_json(self, response: Any) -> Mapping[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Remote analysis returned a non-JSON body") from exc
        if isinstance(payload, Mapping):
            for key in ("assessment", "result"):
                nested = payload.get(key)
                if isinstance(nested, Mapping) and "analysis" in nested:
                    return nested
            return payload
        raise ProviderError("Remote analysis JSON payload is not an object")

    def usage_dict(self, response: Any) -> Mapping[str, Any] | None:
        try:
            payload = response.json()
        except ValueError:
            return None
        usage = payload.get("usage") if isinstance(payload, Mapping) else None
        return dict(usage) if isinstance(usage, Mapping) else None


__all__ = ["RemoteProvider"]
