from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.domain import AnalysisMode, Confidence, Impact, OddsEfficiency
from app.services.analysis_cache import AnalysisCache
from app.services.analysis_executor import (
    AnalysisExecutor,
    build_cache_key,
    cache_ttl_seconds,
    normalize_assessment,
)
from app.services.llm import UnknownReasoningProviderError
from pipelines.analyzers.errors import ProviderError

from conftest import StubRequest, StubResolver

FACTS = {"temp_c": 4.0, "condition": "Snow", "wind_kph": 22.0}


def _execute(executor: AnalysisExecutor, facts=FACTS, mode=AnalysisMode.BASIC, place="Green Bay"):
    return executor.execute(
        "prompt",
        domain="weather",
        place=place,
        facts=facts,
        mode=mode,
    )


def test_second_identical_call_is_served_from_cache(executor_factory, stub_resolver) -> None:
    executor = executor_factory(stub_resolver)

    first = _execute(executor)
    second = _execute(executor)

    assert first.cached is False
    assert first.source == "provider"
    assert second.cached is True
    assert second.source == "cache"
    assert second.assessment == first.assessment
    assert stub_resolver.invocations == 1


def test_changed_facts_miss_the_cache(executor_factory, stub_resolver) -> None:
    executor = executor_factory(stub_resolver)
    _execute(executor)
    _execute(executor, facts={**FACTS, "temp_c": 5.0})
    _execute(executor, mode=AnalysisMode.DEEP)

    assert stub_resolver.invocations == 3


def test_malformed_response_yields_unknown_enums_with_text(executor_factory) -> None:
    resolver = StubResolver(StubRequest({"confidence": "very", "odds_efficiency": 7, "analysis": "  "}))
    result = _execute(executor_factory(resolver))

    assessment = result.assessment
    assert assessment.confidence is Confidence.UNKNOWN
    assert assessment.odds_efficiency is OddsEfficiency.UNKNOWN
    assert assessment.impact is Impact.UNKNOWN
    assert assessment.analysis
    assert assessment.key_factors
    assert assessment.recommended_action


def test_provider_failure_returns_uncached_fallback(executor_factory) -> None:
    cache = AnalysisCache(8)
    resolver = StubResolver(StubRequest(ProviderError("upstream 503")))
    executor = executor_factory(resolver, cache=cache)

    result = _execute(executor)

    assert result.source == "fallback"
    assert result.cached is False
    assert result.assessment.confidence is Confidence.LOW
    assert result.assessment.odds_efficiency is OddsEfficiency.UNKNOWN
    assert result.assessment.analysis.startswith("Error in AI analysis: upstream 503")
    assert result.assessment.recommended_action == "Proceed with manual evaluation"
    assert len(cache) == 0


def test_unconfigured_provider_reports_unavailable(executor_factory) -> None:
    resolver = StubResolver(error=ProviderError("REASONING_API_KEY is not configured"))
    result = _execute(executor_factory(resolver))

    assert result.source == "unavailable"
    assert result.assessment.key_factors == ["API service not configured"]


def test_unknown_provider_is_rejected_at_construction(test_settings) -> None:
    with pytest.raises(UnknownReasoningProviderError):
        AnalysisExecutor(test_settings, cache=AnalysisCache(2), provider_name="oracle")


def test_normalize_assessment_reads_nested_and_camel_case_fields() -> None:
    assessment = normalize_assessment(
        {
            "assessment": {
                "weather_impact": "medium",
                "oddsEfficiency": "EFFICIENT",
                "confidence": "low",
                "analysis": "Light breeze only.",
                "keyFactors": "Wind",
                "recommendedAction": "Hold",
                "citations": [
                    {"title": "Forecast", "url": "https://example.com/f", "snippet": "calm"},
                    {"title": "No link"},
                ],
            }
        }
    )

    assert assessment.impact is Impact.MEDIUM
    assert assessment.odds_efficiency is OddsEfficiency.EFFICIENT
    assert assessment.confidence is Confidence.LOW
    assert assessment.key_factors == ["Wind"]
    assert assessment.recommended_action == "Hold"
    assert [citation.url for citation in assessment.citations] == ["https://example.com/f"]


def test_cache_ttl_policy(test_settings) -> None:
    now = datetime(2025, 6, 1, tzinfo=timezone.utc)
    far = now + timedelta(days=5)
    near = now + timedelta(hours=3)

    assert cache_ttl_seconds(test_settings, AnalysisMode.BASIC, far, now=now) == 1800
    assert cache_ttl_seconds(test_settings, AnalysisMode.DEEP, far, now=now) == 21600
    assert cache_ttl_seconds(test_settings, AnalysisMode.DEEP, near, now=now) == 21600
    assert cache_ttl_seconds(test_settings, AnalysisMode.DEEP, now - timedelta(hours=1), now=now) == 21600
    assert cache_ttl_seconds(test_settings, AnalysisMode.BASIC, near, now=now) == 1800
    assert cache_ttl_seconds(test_settings, AnalysisMode.BASIC, None, now=now) == 1800

    test_settings.analysis_cache_basic_ttl_seconds = 7200
    assert cache_ttl_seconds(test_settings, AnalysisMode.BASIC, near, now=now) == 3600
    assert cache_ttl_seconds(test_settings, AnalysisMode.BASIC, far, now=now) == 7200


def test_cache_key_normalizes_place_and_hashes_facts() -> None:
    key = build_cache_key("weather", "  New   York ", FACTS, AnalysisMode.BASIC)
    assert key.startswith("analysis:weather:new york:")
    assert key == build_cache_key("weather", "new york", dict(reversed(FACTS.items())), AnalysisMode.BASIC)


def test_status_reports_provider_and_cache(executor_factory, stub_resolver) -> None:
    executor = executor_factory(stub_resolver)
    _execute(executor)

    status = executor.status()

    assert status["available"] is True
    assert status["provider"] == "openai"
    assert status["cache"]["size"] == 1
    assert status["cache"]["ttl_seconds"]["deep"] == 21600
