from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from app.domain import Confidence, MarketOutcome, OddsEfficiency, SignalOutcome
from ingestion.client import WeatherApiClient
from ingestion.service import WeatherService
from pipelines.analyzers.errors import EnrichmentError, InvalidContext, UnresolvableDomainInput
from pipelines.analyzers.mobility import MobilityAnalyzer
from pipelines.analyzers.onchain import OnChainAnalyzer
from pipelines.analyzers.registry import UnknownAnalyzerError, available_domains, get_analyzer
from pipelines.analyzers.sentiment import SentimentAnalyzer, summarize_casts
from pipelines.analyzers.weather import WeatherAnalyzer

from conftest import StubRequest, StubResolver

NOW = datetime(2025, 11, 2, 12, 0, tzinfo=timezone.utc)

WEATHER = {
    "location": "Green Bay",
    "temp_c": -3.0,
    "temp_f": 26.6,
    "condition": "Heavy snow",
    "wind_kph": 35.0,
    "wind_mph": 21.7,
    "precip_chance": 90,
    "humidity": 88,
}


def _context(**overrides):
    payload = {
        "event_id": "540816",
        "title": "Will the Packers win at Lambeau Field?",
        "current_odds": {"yes": 0.62, "no": 0.38},
        "event_date": "2025-11-09T18:00:00Z",
    }
    payload.update(overrides)
    return payload


def test_weather_analyzer_produces_signal(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.current_weather.return_value = dict(WEATHER)
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source, clock=lambda: NOW)

    signal = analyzer.analyze(_context(), author_address="0xABC")

    source.current_weather.assert_called_once_with("Green Bay, WI")
    assert signal.domain == "weather"
    assert signal.venue == "Green Bay, WI"
    assert signal.confidence is Confidence.HIGH
    assert signal.odds_efficiency is OddsEfficiency.INEFFICIENT
    # Inefficient odds back the side the market disfavors.
    assert signal.implied_outcome is MarketOutcome.NO
    assert signal.outcome is SignalOutcome.PENDING
    assert signal.timestamp == int(NOW.timestamp())
    assert signal.event_time == int(datetime(2025, 11, 9, 18, tzinfo=timezone.utc).timestamp())
    assert len(signal.market_snapshot_hash) == 64
    assert len(signal.domain_hash) == 64
    assert signal.author_address == "0xABC"
    assert signal.platform == "polymarket"

    prompt = resolver.request.calls[0][1]["content"]
    assert "Heavy snow" in prompt
    assert "Current Odds: Yes 0.62 | No 0.38" in prompt


def test_identical_weather_reuses_cached_assessment(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.current_weather.return_value = dict(WEATHER)
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source, clock=lambda: NOW)

    first = analyzer.analyze(_context())
    second = analyzer.analyze(_context(event_id="540817"))

    assert first.cached is False
    assert second.cached is True
    assert second.source == "cache"
    assert resolver.invocations == 1
    assert first.domain_hash == second.domain_hash
    assert first.market_snapshot_hash != second.market_snapshot_hash


def test_missing_title_is_invalid_context(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source)

    with pytest.raises(InvalidContext) as excinfo:
        analyzer.analyze({"event_id": "1"})

    assert "title" in excinfo.value.missing
    source.current_weather.assert_not_called()
    assert resolver.calls == 0


def test_unresolvable_location_fails_before_provider_call(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source)

    with pytest.raises(UnresolvableDomainInput):
        analyzer.analyze(_context(title="Will Bitcoin hit 100k?"))

    source.current_weather.assert_not_called()
    assert resolver.calls == 0


def test_enrichment_failure_degrades_to_fallback_signal(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.current_weather.side_effect = EnrichmentError("weather lookup timed out")
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source, clock=lambda: NOW)

    signal = analyzer.analyze(_context(location="Green Bay"))

    assert signal.source == "fallback"
    assert signal.confidence is Confidence.LOW
    assert signal.odds_efficiency is OddsEfficiency.UNKNOWN
    assert "weather lookup timed out" in signal.ai_digest
    assert resolver.calls == 0


def test_non_object_weather_body_degrades_to_fallback_signal(executor_factory, test_settings) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"error": "x"}]))
    source = WeatherService(
        test_settings,
        client_factory=lambda: WeatherApiClient(api_key="k", base_url="https://weather.test", transport=transport),
    )
    resolver = StubResolver()
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source, clock=lambda: NOW)

    signal = analyzer.analyze(_context(location="Kansas City"))

    assert signal.source == "fallback"
    assert "expected an object" in signal.ai_digest
    assert resolver.calls == 0


def test_malformed_provider_output_still_yields_signal(executor_factory) -> None:
    resolver = StubResolver(StubRequest({"unexpected": True}))
    source = MagicMock()
    source.current_weather.return_value = dict(WEATHER)
    analyzer = WeatherAnalyzer(executor=executor_factory(resolver), source=source)

    signal = analyzer.analyze(_context())

    assert signal.confidence is Confidence.UNKNOWN
    assert signal.odds_efficiency is OddsEfficiency.UNKNOWN
    assert signal.ai_digest
    assert signal.key_factors
    # Unknown efficiency backs the market favourite.
    assert signal.implied_outcome is MarketOutcome.YES


def test_mobility_analyzer_uses_venue_snapshot(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.crowd_snapshot.return_value = {"status": "Busy", "crowd_level": 90, "trend": "Increasing"}
    analyzer = MobilityAnalyzer(executor=executor_factory(resolver), source=source)

    signal = analyzer.analyze(_context(venue="Lambeau Field"))

    source.crowd_snapshot.assert_called_once_with("Lambeau Field")
    assert signal.domain == "mobility"
    assert "Crowd Level: 90%" in resolver.request.calls[0][1]["content"]


def test_sentiment_analyzer_summarizes_casts(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.search_casts.return_value = [
        {"text": "Packers by 10", "likes": 4, "recasts": 1},
        {"text": "Snow game incoming", "likes": 2, "recasts": 0},
    ]
    analyzer = SentimentAnalyzer(executor=executor_factory(resolver), source=source)

    signal = analyzer.analyze(_context(tags=["NFL"]))

    source.search_casts.assert_called_once_with("NFL", analyzer.settings.social_cast_limit)
    prompt = resolver.request.calls[0][1]["content"]
    assert "2 casts found with 6 total likes and 1 recasts." in prompt
    assert '"Packers by 10"' in prompt
    assert signal.domain == "sentiment"


def test_summarize_casts_handles_empty_feed() -> None:
    assert summarize_casts([]) == "No significant chatter found."


def test_onchain_analyzer_falls_back_to_simulated_stats(executor_factory) -> None:
    resolver = StubResolver()
    source = MagicMock()
    source.network_stats.return_value = None
    analyzer = OnChainAnalyzer(executor=executor_factory(resolver), source=source, clock=lambda: NOW)

    signal = analyzer.analyze(_context(title="Will gas exceed 500 octas?"))

    prompt = resolver.request.calls[0][1]["content"]
    assert "(simulated)" in prompt
    assert "Gas Price: 100 octas" in prompt
    assert signal.venue == "Global"


def test_kalshi_events_are_tagged_with_platform(executor_factory) -> None:
    source = MagicMock()
    source.network_stats.return_value = None
    analyzer = OnChainAnalyzer(executor=executor_factory(StubResolver()), source=source)

    signal = analyzer.analyze(_context(event_id="KALSHI-GAS-500", title="Gas above 500?"))

    assert signal.platform == "kalshi"


def test_registry_builds_known_domains(executor_factory) -> None:
    assert set(available_domains()) == {"weather", "mobility", "sentiment", "onchain"}
    analyzer = get_analyzer("Mobility", executor=executor_factory(StubResolver()), source=MagicMock())
    assert isinstance(analyzer, MobilityAnalyzer)
    with pytest.raises(UnknownAnalyzerError):
        get_analyzer("astrology")
