"""Runtime registry mapping domain names to analyzer factories."""

from __future__ import annotations

from typing import Any, Callable, Dict

from .base import SignalAnalyzer
from .mobility import MobilityAnalyzer
from .onchain import OnChainAnalyzer
from .sentiment import SentimentAnalyzer
from .weather import WeatherAnalyzer

AnalyzerFactory = Callable[..., SignalAnalyzer]


class UnknownAnalyzerError(LookupError):
    """Raised when a caller requests an unregistered domain."""


_ANALYZERS: Dict[str, AnalyzerFactory] = {}


def register_analyzer(domain: str, factory: AnalyzerFactory) -> None:
    """Register or replace the analyzer factory for ``domain``."""

    _ANALYZERS[domain.lower()] = factory


def get_analyzer(domain: str, **kwargs: Any) -> SignalAnalyzer:
    """Build the analyzer registered under ``domain``."""

    try:
        factory = _ANALYZERS[domain.lower()]
    except KeyError as exc:
        raise UnknownAnalyzerError(f"Analyzer domain '{domain}' is not registered") from exc
    return factory(**kwargs)


def available_domains() -> tuple[str, ...]:
    return tuple(sorted(_ANALYZERS))


register_analyzer(WeatherAnalyzer.domain, WeatherAnalyzer)
register_analyzer(MobilityAnalyzer.domain, MobilityAnalyzer)
register_analyzer(SentimentAnalyzer.domain, SentimentAnalyzer)
register_analyzer(OnChainAnalyzer.domain, OnChainAnalyzer)


__all__ = [
    "UnknownAnalyzerError",
    "available_domains",
    "get_analyzer",
    "register_analyzer",
]
