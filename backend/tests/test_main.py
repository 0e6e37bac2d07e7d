from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.domain import ResolutionResult, ResolutionStatus, SignalOutcome
from app.main import (
    _analysis_executor,
    _analyzer_builder,
    _reputation_service,
    _resolution_engine,
    _signal_repository,
    app,
)
from app.services.reputation import calculate_reputation
from app.services.reputation_service import UserRanking
from pipelines.analyzers.registry import get_analyzer

from conftest import StubResolver

WEATHER = {"temp_c": 2.0, "temp_f": 35.6, "condition": "Sleet", "wind_kph": 18.0, "precip_chance": 70}


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.insert.side_effect = lambda signal: signal
    app.dependency_overrides[_signal_repository] = lambda: repo
    return repo


def _install_analyzers(executor_factory, resolver=None):
    executor = executor_factory(resolver or StubResolver())
    source = MagicMock()
    source.current_weather.return_value = dict(WEATHER)
    app.dependency_overrides[_analyzer_builder] = lambda: (
        lambda domain: get_analyzer(domain, executor=executor, source=source)
    )
    return executor


def test_healthcheck(client):
    """Verify the healthcheck endpoint returns a successful response."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_persists_and_returns_signal(client, repository, executor_factory):
    """Verify /analyze runs the analyzer and stores the signal."""
    _install_analyzers(executor_factory)

    response = client.post(
        "/analyze/weather",
        json={
            "eventId": "540816",
            "title": "Will the Packers win at Lambeau Field?",
            "currentOdds": {"yes": 0.4, "no": 0.6},
            "authorAddress": "0xabc",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["venue"] == "Green Bay, WI"
    assert body["confidence"] == "HIGH"
    assert body["outcome"] == "PENDING"
    assert body["cached"] is False
    assert body["author_address"] == "0xabc"
    assert body["metrics"]["quality"] == 100
    assert body["metrics"]["odds_improvement"]["label"] == "Value Detected"
    assert body["metrics"]["has_outcome"] is False
    repository.insert.assert_called_once()
    repository.commit.assert_called_once()


def test_analyze_unknown_domain_is_404(client, repository, executor_factory):
    _install_analyzers(executor_factory)
    response = client.post("/analyze/astrology", json={"event_id": "1", "title": "t"})
    assert response.status_code == 404


def test_analyze_invalid_context_is_400(client, repository, executor_factory):
    _install_analyzers(executor_factory)
    response = client.post("/analyze/weather", json={"event_id": "1"})
    assert response.status_code == 400
    repository.insert.assert_not_called()


def test_analyze_unresolvable_location_is_422(client, repository, executor_factory):
    resolver = StubResolver()
    _install_analyzers(executor_factory, resolver)
    response = client.post("/analyze/weather", json={"event_id": "1", "title": "Will Bitcoin hit 100k?"})
    assert response.status_code == 422
    assert resolver.calls == 0


def test_analysis_status(client, executor_factory):
    executor = executor_factory(StubResolver())
    app.dependency_overrides[_analysis_executor] = lambda: executor

    response = client.get("/analysis/status")

    assert response.status_code == 200
    body = response.json()
    assert body["provider"] == "openai"
    assert body["cache"]["ttl_seconds"]["basic"] == 1800


def test_list_signals_by_author(client, repository, make_signal):
    repository.get_by_author.return_value = [make_signal()]

    response = client.get("/signals", params={"author": "0xABC"})

    assert response.status_code == 200
    assert response.json()["total"] == 1
    assert response.json()["items"][0]["metrics"]["quality_label"] == "Excellent"
    repository.get_by_author.assert_called_once_with("0xABC")


def test_list_signals_requires_filter(client, repository):
    assert client.get("/signals").status_code == 400


def test_resolve_by_signal_id(client, repository, make_signal):
    signal = make_signal()
    repository.get.return_value = signal
    engine = MagicMock()
    engine.resolve_signal.return_value = ResolutionResult(
        signal_id=signal.id, status=ResolutionStatus.RESOLVED, outcome=SignalOutcome.WIN, resolved_at=5
    )
    app.dependency_overrides[_resolution_engine] = lambda: engine

    response = client.post("/signals/resolve", json={"signal_id": signal.id})

    assert response.status_code == 200
    body = response.json()
    assert body["resolved"] == 1
    assert body["pending"] == 0
    assert body["results"][0]["outcome"] == "WIN"
    repository.commit.assert_called_once()


def test_resolve_by_event(client, repository):
    engine = MagicMock()
    engine.resolve_event_signals.return_value = [
        ResolutionResult(signal_id="a", status=ResolutionStatus.PENDING),
        ResolutionResult(signal_id="b", status=ResolutionStatus.ERROR, error="timeout"),
    ]
    app.dependency_overrides[_resolution_engine] = lambda: engine

    body = client.post("/signals/resolve", json={"event_id": "540816"}).json()

    assert (body["resolved"], body["pending"], body["errors"]) == (0, 1, 1)
    engine.resolve_event_signals.assert_called_once_with("540816")


def test_resolve_validation(client, repository):
    app.dependency_overrides[_resolution_engine] = lambda: MagicMock()
    repository.get.return_value = None

    assert client.post("/signals/resolve", json={}).status_code == 400
    assert client.post("/signals/resolve", json={"signal_id": "missing"}).status_code == 404


def test_stats_with_history_and_ranking(client, make_signal):
    resolved = [make_signal(outcome=SignalOutcome.WIN, resolved_at=10), make_signal(outcome=SignalOutcome.LOSS, resolved_at=5)]
    stats = calculate_reputation("0xabc", resolved)
    service = MagicMock()
    service.get_user_stats.return_value = stats
    service.get_prediction_history.return_value = resolved
    service.get_user_ranking.return_value = UserRanking(stats=stats, rank=2, total_ranked=7)
    app.dependency_overrides[_reputation_service] = lambda: service

    response = client.get(
        "/stats", params={"address": "0xabc", "include_history": True, "include_ranking": True}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["win_rate"] == 50.0
    assert body["tier"]["name"] == "Predictor"
    assert len(body["prediction_history"]) == 2
    assert (body["rank"], body["total_ranked"]) == (2, 7)


def test_stats_without_extras(client):
    service = MagicMock()
    service.get_user_stats.return_value = calculate_reputation("0xnew", [])
    app.dependency_overrides[_reputation_service] = lambda: service

    body = client.get("/stats", params={"address": "0xnew"}).json()

    assert body["tier"]["name"] == "Novice"
    assert body["prediction_history"] is None
    service.get_user_ranking.assert_not_called()


def test_publish_payload_endpoint(client, repository, make_signal):
    repository.get.return_value = make_signal(ai_digest="x" * 700)

    response = client.post("/signals/sig-1/publish-payload")

    assert response.status_code == 200
    body = response.json()
    assert body["function"].endswith("::signal_registry::publish_signal")
    assert len(body["function_arguments"][6]) == 512


def test_publish_payload_missing_signal(client, repository):
    repository.get.return_value = None
    assert client.post("/signals/nope/publish-payload").status_code == 404


def test_tip_records_amount(client, repository, make_signal):
    signal = make_signal()
    repository.get.return_value = signal
    repository.add_tip.return_value = make_signal(id=signal.id, total_tips=10_000_000)

    response = client.post(f"/signals/{signal.id}/tips", json={"amount": 10_000_000})

    assert response.status_code == 200
    body = response.json()
    assert body["signal"]["total_tips"] == 10_000_000
    assert body["payload"]["function_arguments"] == ["0xabc", signal.id, "10000000"]
    repository.add_tip.assert_called_once_with(signal.id, 10_000_000)
