"""Data-source adapters used by analyzers and the resolution engine.

Each adapter owns one external concern and converts transport failures into
the engine's named errors so callers never see raw ``httpx`` exceptions.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Protocol

import httpx
from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import ResolutionRecord
from pipelines.analyzers.errors import EnrichmentError, ResolutionError

from .client import (
    ChainNodeClient,
    KalshiClient,
    PolymarketClient,
    SocialFeedClient,
    WeatherApiClient,
)
from .normalize import (
    normalize_casts,
    normalize_chain_stats,
    normalize_kalshi_resolution,
    normalize_polymarket_resolution,
    normalize_weather,
)


class WeatherSource(Protocol):
    def current_weather(self, location: str) -> dict[str, Any]:
        ...


class CrowdSource(Protocol):
    def crowd_snapshot(self, venue: str) -> dict[str, Any]:
        ...


class SocialSource(Protocol):
    def search_casts(self, topic: str, limit: int) -> list[dict[str, Any]]:
        ...


class ChainSource(Protocol):
    def network_stats(self) -> dict[str, Any] | None:
        ...


class ResolutionSource(Protocol):
    platform: str

    def get_resolution(self, market_id: str) -> ResolutionRecord:
        ...


def _isoformat_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class WeatherService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[[], WeatherApiClient] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client_factory = client_factory or (
            lambda: WeatherApiClient(
                api_key=self.settings.weather_api_key,
                base_url=str(self.settings.weather_api_base),
                timeout=self.settings.enrichment_timeout_seconds,
            )
        )

    def current_weather(self, location: str) -> dict[str, Any]:
        try:
            with self._client_factory() as client:
                payload = client.fetch_forecast(location)
        except httpx.TimeoutException as exc:
            raise EnrichmentError(f"weather lookup timed out for '{location}'") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EnrichmentError(f"weather lookup failed for '{location}': {exc}") from exc
        if not isinstance(payload, Mapping):
            raise EnrichmentError(f"weather lookup for '{location}' returned {type(payload).__name__}, expected an object")
        return normalize_weather(location, payload)


class SimulatedCrowdSource:
    """Deterministic crowd snapshot keyed on the venue string.

    Even-length venue names read as busy, odd-length ones as quiet, so the
    same venue always yields the same facts and therefore the same cache key.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def crowd_snapshot(self, venue: str) -> dict[str, Any]:
        seed = len(venue)
        is_busy = seed % 2 == 0
        return {
            "status": "Busy" if is_busy else "Quiet",
            "crowd_level": 85 + (seed % 15) if is_busy else 20 + (seed % 20),
            "trend": "Increasing" if is_busy else "Decreasing",
            "last_updated": _isoformat_utc(self._clock()),
            "is_simulated": True,
        }


class SocialFeedService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[[], SocialFeedClient] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client_factory = client_factory or (
            lambda: SocialFeedClient(
                api_key=self.settings.social_api_key,
                base_url=str(self.settings.social_api_base),
                timeout=self.settings.enrichment_timeout_seconds,
            )
        )

    def search_casts(self, topic: str, limit: int) -> list[dict[str, Any]]:
        try:
            with self._client_factory() as client:
                payload = client.search_casts(topic, limit)
        except httpx.TimeoutException as exc:
            raise EnrichmentError(f"cast search timed out for '{topic}'") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise EnrichmentError(f"cast search failed for '{topic}': {exc}") from exc
        if not isinstance(payload, Mapping):
            raise EnrichmentError(f"cast search for '{topic}' returned {type(payload).__name__}, expected an object")
        return normalize_casts(payload)[:limit]


class ChainStatsService:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[[], ChainNodeClient] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client_factory = client_factory or (
            lambda: ChainNodeClient(
                base_url=str(self.settings.chain_rpc_url),
                timeout=self.settings.enrichment_timeout_seconds,
            )
        )

    def network_stats(self) -> dict[str, Any] | None:
        """Return live network stats, or ``None`` when the node is unreachable."""

        try:
            with self._client_factory() as client:
                ledger = client.fetch_ledger_info()
                gas = client.fetch_gas_estimate()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Chain stats unavailable rpc={} error={}", self.settings.chain_rpc_url, exc)
            return None
        if not isinstance(ledger, Mapping):
            logger.warning("Chain stats unavailable rpc={} error=unexpected ledger payload", self.settings.chain_rpc_url)
            return None
        return normalize_chain_stats(ledger, gas if isinstance(gas, Mapping) else None)


class PolymarketResolver:
    platform = "polymarket"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[[], PolymarketClient] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client_factory = client_factory or (
            lambda: PolymarketClient(
                base_url=str(self.settings.polymarket_base_url),
                timeout=self.settings.resolution_timeout_seconds,
            )
        )

    def get_resolution(self, market_id: str) -> ResolutionRecord:
        try:
            with self._client_factory() as client:
                payload = client.fetch_market(market_id)
        except (httpx.HTTPError, ValueError) as exc:
            raise ResolutionError(f"Polymarket lookup failed for {market_id}: {exc}") from exc
        return normalize_polymarket_resolution(market_id, payload)


class KalshiResolver:
    platform = "kalshi"

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: Callable[[], KalshiClient] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client_factory = client_factory or (
            lambda: KalshiClient(
                base_url=str(self.settings.kalshi_base_url),
                timeout=self.settings.resolution_timeout_seconds,
            )
        )

    def get_resolution(self, market_id: str) -> ResolutionRecord:
        ticker = market_id
        if ticker.lower().startswith("kalshi:") or ticker.lower().startswith("kalshi-"):
            ticker = ticker[len("kalshi") + 1 :]
        try:
            with self._client_factory() as client:
                payload = client.fetch_market(ticker)
        except (httpx.HTTPError, ValueError) as exc:
            raise ResolutionError(f"Kalshi lookup failed for {market_id}: {exc}") from exc
        return normalize_kalshi_resolution(market_id, payload)


__all__ = [
    "ChainSource",
    "ChainStatsService",
    "CrowdSource",
    "KalshiResolver",
    "PolymarketResolver",
    "ResolutionSource",
    "SimulatedCrowdSource",
    "SocialFeedService",
    "SocialSource",
    "WeatherService",
    "WeatherSource",
]
