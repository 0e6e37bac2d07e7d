from __future__ import annotations

import pytest

from app.domain import Assessment, Confidence
from app.services.analysis_cache import AnalysisCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _assessment(text: str) -> Assessment:
    return Assessment(confidence=Confidence.HIGH, analysis=text, key_factors=[text])


def test_get_returns_value_until_ttl_elapses() -> None:
    clock = FakeClock()
    cache = AnalysisCache(4, clock=clock)
    cache.set("k", _assessment("cold"), 60)

    clock.advance(59)
    assert cache.get("k").analysis == "cold"

    clock.advance(1)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_overflow_evicts_oldest_insert() -> None:
    cache = AnalysisCache(2, clock=FakeClock())
    cache.set("a", _assessment("a"), 60)
    cache.set("b", _assessment("b"), 60)
    cache.get("a")
    cache.set("c", _assessment("c"), 60)

    assert "a" not in cache
    assert "b" in cache
    assert "c" in cache


def test_resetting_a_key_makes_it_newest() -> None:
    cache = AnalysisCache(2, clock=FakeClock())
    cache.set("a", _assessment("a"), 60)
    cache.set("b", _assessment("b"), 60)
    cache.set("a", _assessment("a2"), 60)
    cache.set("c", _assessment("c"), 60)

    assert cache.get("a").analysis == "a2"
    assert "b" not in cache


def test_non_positive_ttl_is_not_stored() -> None:
    cache = AnalysisCache(2, clock=FakeClock())
    cache.set("a", _assessment("a"), 0)
    assert len(cache) == 0


def test_purge_expired_drops_only_stale_entries() -> None:
    clock = FakeClock()
    cache = AnalysisCache(4, clock=clock)
    cache.set("short", _assessment("s"), 10)
    cache.set("long", _assessment("l"), 100)
    clock.advance(50)

    assert cache.purge_expired() == 1
    assert "long" in cache


def test_max_entries_must_be_positive() -> None:
    with pytest.raises(ValueError):
        AnalysisCache(0)
