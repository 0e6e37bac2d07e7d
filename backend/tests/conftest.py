from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Mapping

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db import Base
from app.domain import Confidence, OddsEfficiency, Signal, SignalOutcome
from app.services.analysis_cache import AnalysisCache
from app.services.analysis_executor import AnalysisExecutor

VALID_ASSESSMENT = {
    "impact": "HIGH",
    "odds_efficiency": "INEFFICIENT",
    "confidence": "HIGH",
    "analysis": "Heavy rain favours the underdog's ground game.",
    "key_factors": ["Rain", "Wind"],
    "recommended_action": "Back the underdog",
}


class StubRequest:
    """Stands in for a resolved reasoning request."""

    def __init__(self, payload: Mapping[str, Any] | Exception | None = None) -> None:
        self.payload = VALID_ASSESSMENT if payload is None else payload
        self.calls: list[list[Mapping[str, Any]]] = []

    def merge_options(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return dict(extra or {})

    def invoke(self, *, messages, options=None):
        self.calls.append(list(messages))
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def extract_json(self, response: Any) -> Mapping[str, Any]:
        return response


class StubResolver:
    def __init__(self, request: StubRequest | None = None, error: Exception | None = None) -> None:
        self.request = request or StubRequest()
        self.error = error
        self.calls = 0

    def __call__(self, settings, mode, *, provider_name=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.request

    @property
    def invocations(self) -> int:
        return len(self.request.calls)


@pytest.fixture
def test_settings(tmp_path, monkeypatch) -> Settings:
    settings = Settings(
        database_url=f"sqlite:///{tmp_path/'signalforge.db'}",
        reasoning_provider="openai",
        reasoning_api_key="sk-test",
        weather_api_key="weather-test",
        social_api_key="social-test",
        resolution_lookup_cache_seconds=60,
        resolution_max_workers=4,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings


@pytest.fixture
def db_session():
    from app import models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=True, future=True)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def stub_resolver() -> StubResolver:
    return StubResolver()


@pytest.fixture
def executor_factory(test_settings) -> Callable[..., AnalysisExecutor]:
    def build(resolver: StubResolver, *, cache: AnalysisCache | None = None) -> AnalysisExecutor:
        return AnalysisExecutor(
            test_settings,
            cache=cache if cache is not None else AnalysisCache(16),
            request_resolver=resolver,
        )

    return build


@pytest.fixture
def make_signal() -> Callable[..., Signal]:
    counter = {"value": 0}

    def build(**overrides: Any) -> Signal:
        counter["value"] += 1
        fields: dict[str, Any] = {
            "id": f"sig-{counter['value']}",
            "event_id": "540816",
            "market_title": "Will the Chiefs win at Arrowhead Stadium?",
            "venue": "Kansas City",
            "event_time": 1_760_000_000,
            "market_snapshot_hash": "a" * 64,
            "domain_hash": "b" * 64,
            "domain": "weather",
            "ai_digest": "Cold front moving in.",
            "confidence": Confidence.HIGH,
            "odds_efficiency": OddsEfficiency.EFFICIENT,
            "timestamp": 1_759_000_000 + counter["value"],
            "author_address": "0xabc",
            "outcome": SignalOutcome.PENDING,
        }
        fields.update(overrides)
        return Signal(**fields)

    return build
