"""OpenAI-compatible provider hooks (direct call)."""

from __future__ import annotations

import json
import random
import time
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from http.client import IncompleteRead

import httpx
from loguru import logger
from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, OpenAI

from app.core.config import Settings
from app.services.openai_client import get_openai_client
from pipelines.analyzers.errors import ProviderError

_TOTAL_MAX_ATTEMPTS = 3
_RETRY_BASE_SLEEP_SECONDS = 1.5
_RETRY_MAX_SLEEP_SECONDS = 10.0
_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _extract_request_id(exc: Exception) -> str | None:
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        request_id = headers.get("x-request-id")
        if isinstance(request_id, str) and request_id:
            return request_id
    request_id = getattr(exc, "request_id", None)
    if isinstance(request_id, str) and request_id:
        return request_id
    return None


def _status_code_from_exception(exc: Exception) -> int | None:
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    if response is not None:
        status = getattr(response, "status_code", None)
        if isinstance(status, int):
            return status
    return None


def _should_retry_exception(exc: Exception) -> bool:
    if isinstance(
        exc,
        (httpx.RemoteProtocolError, IncompleteRead, APITimeoutError, APIConnectionError),
    ):
        return True
    if isinstance(exc, APIStatusError):
        return exc.status_code in _RETRYABLE_STATUS_CODES
    if isinstance(exc, APIError):
        return _status_code_from_exception(exc) in _RETRYABLE_STATUS_CODES
    return False


def _retry_sleep_seconds(attempt: int) -> float:
    backoff = _RETRY_BASE_SLEEP_SECONDS * (2 ** max(attempt - 1, 0))
    backoff = min(backoff, _RETRY_MAX_SLEEP_SECONDS)
    jitter = random.uniform(0.0, 0.75)
    return backoff + jitter


def _exception_summary(exc: Exception, *, request_id: str | None = None) -> str:
    parts = [exc.__class__.__name__]
    status = _status_code_from_exception(exc)
    if isinstance(status, int):
        parts.append(f"status={status}")
    if request_id:
        parts.append(f"request_id={request_id}")
    message = str(exc)
    if message:
        parts.append(message)
    return ": ".join([parts[0], " ".join(parts[1:])]) if len(parts) > 1 else parts[0]


def _override_openai_client(settings: Settings, overrides: Mapping[str, Any]) -> OpenAI:
    api_key = overrides.get("api_key") or settings.reasoning_api_key
    if not api_key:
        raise ProviderError("REASONING_API_KEY is not configured")
    kwargs: dict[str, Any] = {
        "api_key": api_key,
        "timeout": float(overrides.get("timeout_seconds") or settings.reasoning_timeout_seconds),
        "max_retries": 0,
    }
    base_url = overrides.get("api_base") or settings.reasoning_api_base
    if base_url:
        kwargs["base_url"] = str(base_url)
    return OpenAI(**kwargs)


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


@dataclass(slots=True)
class OpenAIProvider:
    name: str = "openai"
    require_api_key: bool = True

    def ensure_ready(self, *, settings: Settings, overrides: Mapping[str, Any]) -> None:
        if not self.require_api_key:
            return
        if overrides.get("api_key") or overrides.get("client"):
            return
        if settings.reasoning_api_key:
            return
        raise ProviderError("REASONING_API_KEY is not configured; AI service unavailable")

    def build_client(self, *, settings: Settings, overrides: Mapping[str, Any]) -> Any:
        if overrides.get("api_key") or overrides.get("api_base") or overrides.get("timeout_seconds"):
            return _override_openai_client(settings, overrides)
        return get_openai_client(settings)

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
        options: dict[str, Any] = {
            "temperature": settings.reasoning_temperature,
            "max_tokens": settings.reasoning_max_tokens,
        }
        venice_parameters: dict[str, Any] = {"strip_thinking_response": True}
        if mode == "deep":
            venice_parameters["enable_web_search"] = "auto"
            venice_parameters["enable_web_citations"] = True
        options["extra_body"] = {"venice_parameters": venice_parameters}
        return options

    def json_mode_kwargs(self) -> Mapping[str, Any]:
        return {"response_format": {"type": "json_object"}}

    def invoke(
        self,
        request,
        *,
        messages: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None,
    ) -> Any:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [dict(message) for message in messages],
        }
        payload.update(self.json_mode_kwargs())
        if options:
            payload.update(dict(options))

        total_attempts = max(int(request.overrides.get("max_attempts", _TOTAL_MAX_ATTEMPTS)), 1)
        attempt = 0
        last_exc: Exception | None = None
        last_request_id: str | None = None

        while attempt < total_attempts:
            attempt += 1
            try:
                return request.client.chat.completions.create(**payload)
            except Exception as exc:  # noqa: BLE001
                request_id = _extract_request_id(exc)
                retryable = _should_retry_exception(exc) and attempt < total_attempts
                diagnostics: dict[str, Any] = {
                    "error_type": exc.__class__.__name__,
                    "status": _status_code_from_exception(exc),
                    "request_id": request_id,
                    "attempt": attempt,
                }
                logger.warning(
                    "Reasoning request failed provider={} model={} mode={} diagnostics={} retryable={}",
                    self.name,
                    request.model,
                    request.mode,
                    diagnostics,
                    retryable,
                )
                if not retryable:
                    summary = _exception_summary(exc, request_id=request_id)
                    raise ProviderError(summary) from exc

                last_exc = exc
                last_request_id = request_id
                time.sleep(_retry_sleep_seconds(attempt))

        if last_exc is not None:
            summary = _exception_summary(last_exc, request_id=last_request_id)
            raise ProviderError(summary) from last_exc
        raise ProviderError("Reasoning provider failed without raising an exception")

    def extract_json(self, response: Any) -> Mapping[str, Any]:
        text_candidate: str | None = None
        choices = getattr(response, "choices", None)
        if choices is None and isinstance(response, Mapping):
            choices = response.get("choices")
        for choice in choices or []:
            message = getattr(choice, "message", None)
            if message is None and isinstance(choice, Mapping):
                message = choice.get("message")
            content = getattr(message, "content", None)
            if content is None and isinstance(message, Mapping):
                content = message.get("content")
            if isinstance(content, str) and content.strip():
                text_candidate = content
                break
        if not text_candidate:
            raise ProviderError("Reasoning response did not include a JSON payload")
        try:
            parsed = json.loads(_strip_code_fence(text_candidate))
        except json.JSONDecodeError as exc:
            raise ProviderError("Failed to decode JSON payload from reasoning response") from exc
        if not isinstance(parsed, Mapping):
            raise ProviderError("Reasoning response JSON payload is not an object")
        return parsed

    def usage_dict(self, response: Any) -> Mapping[str, Any] | None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        if hasattr(usage, "model_dump"):
            return usage.model_dump()
        try:
            return dict(usage)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return {"raw": str(usage)}


__all__ = ["OpenAIProvider"]
