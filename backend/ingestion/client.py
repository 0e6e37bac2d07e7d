from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from app.core.config import settings


class _JsonClient:
    """Shared plumbing for the thin JSON-over-HTTP wrappers below."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            headers=headers or {},
            transport=transport,
        )

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = self.client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class PolymarketClient(_JsonClient):
    """Thin wrapper around the Polymarket gamma market endpoint."""

    def __init__(self, *, base_url: str | None = None, timeout: float | None = None, **kwargs: Any) -> None:
        super().__init__(
            base_url=base_url or str(settings.polymarket_base_url),
            timeout=timeout or settings.resolution_timeout_seconds,
            **kwargs,
        )

    def fetch_market(self, market_id: str) -> dict[str, Any]:
        logger.info("Polymarket GET /markets/{}", market_id)
        payload = self._get(f"/markets/{market_id}")
        if isinstance(payload, list):
            return payload[0] if payload else {}
        return payload


class KalshiClient(_JsonClient):
    """Thin wrapper around the Kalshi trade API market endpoint."""

    def __init__(self, *, base_url: str | None = None, timeout: float | None = None, **kwargs: Any) -> None:
        super().__init__(
            base_url=base_url or str(settings.kalshi_base_url),
            timeout=timeout or settings.resolution_timeout_seconds,
            **kwargs,
        )

    def fetch_market(self, ticker: str) -> dict[str, Any]:
        logger.info("Kalshi GET /markets/{}", ticker)
        return self._get(f"/markets/{ticker}")


class WeatherApiClient(_JsonClient):
    """Current conditions plus today's forecast from a WeatherAPI-compatible service."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            base_url=base_url or str(settings.weather_api_base),
            timeout=timeout or settings.enrichment_timeout_seconds,
            **kwargs,
        )
        self.api_key = api_key if api_key is not None else settings.weather_api_key

    def fetch_forecast(self, location: str) -> dict[str, Any]:
        if not self.api_key:
            raise ValueError("WEATHER_API_KEY is not configured")
        logger.info("Weather GET /forecast.json q={}", location)
        return self._get(
            "/forecast.json",
            params={"key": self.api_key, "q": location, "days": 1, "aqi": "no", "alerts": "no"},
        )


class SocialFeedClient(_JsonClient):
    """Cast search against a Neynar-compatible social feed API."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        resolved_key = api_key if api_key is not None else settings.social_api_key
        headers = {"accept": "application/json"}
        if resolved_key:
            headers["api_key"] = resolved_key
        super().__init__(
            base_url=base_url or str(settings.social_api_base),
            timeout=timeout or settings.enrichment_timeout_seconds,
            headers=headers,
            **kwargs,
        )
        self.api_key = resolved_key

    def search_casts(self, query: str, limit: int) -> dict[str, Any]:
        if not self.api_key:
            raise ValueError("SOCIAL_API_KEY is not configured")
        logger.info("Social GET /cast/search q={} limit={}", query, limit)
        return self._get("/cast/search", params={"q": query, "limit": limit})


class ChainNodeClient(_JsonClient):
    """Ledger info and gas estimate from a Move chain REST node."""

    def __init__(self, *, base_url: str | None = None, timeout: float | None = None, **kwargs: Any) -> None:
        super().__init__(
            base_url=base_url or str(settings.chain_rpc_url),
            timeout=timeout or settings.enrichment_timeout_seconds,
            **kwargs,
        )

    def fetch_ledger_info(self) -> dict[str, Any]:
        return self._get("/")

    def fetch_gas_estimate(self) -> dict[str, Any]:
        return self._get("/estimate_gas_price")


__all__ = [
    "ChainNodeClient",
    "KalshiClient",
    "PolymarketClient",
    "SocialFeedClient",
    "WeatherApiClient",
]
