from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest

from app.services.llm import (
    UnknownReasoningProviderError,
    available_providers,
    get_provider,
    resolve_reasoning_request,
)
from app.services.llm.openai import OpenAIProvider
from app.services.llm.remote import RemoteProvider
from pipelines.analyzers.errors import ProviderError


def _completion(content: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=None,
    )


def test_builtin_providers_are_registered() -> None:
    assert available_providers() == ("openai", "remote")
    assert isinstance(get_provider("OpenAI"), OpenAIProvider)
    with pytest.raises(UnknownReasoningProviderError):
        get_provider("gemini")


@pytest.mark.parametrize(
    "content",
    ['{"analysis": "ok"}', '\n  {"analysis": "ok"}\n', '```json\n{"analysis": "ok"}\n```'],
)
def test_openai_extract_json_parses_payload(content: str) -> None:
    assert OpenAIProvider().extract_json(_completion(content)) == {"analysis": "ok"}


@pytest.mark.parametrize("content", [None, "not json", "[1, 2]"])
def test_openai_extract_json_rejects_bad_payload(content) -> None:
    with pytest.raises(ProviderError):
        OpenAIProvider().extract_json(_completion(content))


def test_openai_deep_mode_enables_web_search(test_settings) -> None:
    options = OpenAIProvider().default_request_options("deep", settings=test_settings)
    venice = options["extra_body"]["venice_parameters"]

    assert venice["enable_web_search"] == "auto"
    assert options["max_tokens"] == test_settings.reasoning_max_tokens
    basic = OpenAIProvider().default_request_options("basic", settings=test_settings)
    assert "enable_web_search" not in basic["extra_body"]["venice_parameters"]


def test_openai_invoke_wraps_non_retryable_errors(test_settings) -> None:
    client = MagicMock()
    client.chat.completions.create.side_effect = ValueError("bad request")
    request = SimpleNamespace(client=client, model="m", mode="basic", overrides={})

    with pytest.raises(ProviderError, match="ValueError"):
        OpenAIProvider().invoke(request, messages=[{"role": "user", "content": "hi"}], options=None)
    assert client.chat.completions.create.call_count == 1


def test_resolve_request_uses_injected_client_and_overrides(test_settings) -> None:
    client = MagicMock()
    test_settings.provider_overrides = {
        "openai": {"client": client, "deep_model": "deep-x", "request_options": {"temperature": 0.0}},
    }

    request = resolve_reasoning_request(test_settings, "deep")

    assert request.client is client
    assert request.model == "deep-x"
    assert request.request_options["temperature"] == 0.0
    assert request.provider == "openai"


def test_resolve_request_requires_api_key(test_settings) -> None:
    test_settings.reasoning_api_key = None

    with pytest.raises(ProviderError, match="REASONING_API_KEY"):
        resolve_reasoning_request(test_settings, "basic")


def test_remote_provider_posts_prompt(test_settings) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.read())
        return httpx.Response(200, json={"assessment": {"analysis": "dry", "confidence": "LOW"}})

    test_settings.remote_analysis_url = "https://analysis.example/run"
    test_settings.provider_overrides = {
        "remote": {"client": httpx.Client(transport=httpx.MockTransport(handler))},
    }
    request = resolve_reasoning_request(test_settings, "basic", provider_name="remote")

    response = request.invoke(
        messages=[{"role": "system", "content": "sys"}, {"role": "user", "content": "Will it rain?"}],
        options=request.merge_options(),
    )

    assert RemoteProvider().extract_json(response) == {"analysis": "dry", "confidence": "LOW"}
    assert seen["body"]["prompt"] == "Will it rain?"
    assert seen["body"]["system"] == "sys"
    assert seen["body"]["mode"] == "basic"


def test_remote_provider_maps_http_errors(test_settings) -> None:
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
    test_settings.remote_analysis_url = "https://analysis.example/run"
    test_settings.provider_overrides = {"remote": {"client": client}}
    request = resolve_reasoning_request(test_settings, "basic", provider_name="remote")

    with pytest.raises(ProviderError, match="Remote analysis failed"):
        request.invoke(messages=[{"role": "user", "content": "x"}], options=request.merge_options())


def test_remote_provider_requires_url(test_settings) -> None:
    test_settings.remote_analysis_url = None

    with pytest.raises(ProviderError, match="REMOTE_ANALYSIS_URL"):
        resolve_reasoning_request(test_settings, "basic", provider_name="remote")


def test_remote_requests_share_one_http_client(test_settings) -> None:
    test_settings.remote_analysis_url = "https://analysis.example/run"
    test_settings.provider_overrides = {}

    clients = [resolve_reasoning_request(test_settings, "basic", provider_name="remote").client for _ in range(3)]

    assert clients[0] is clients[1] is clients[2]
    assert not clients[0].is_closed
