from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Mapping

from dateutil import parser as date_parser

from app.domain import MarketOutcome, ResolutionRecord

_DECISIVE_PRICE = 0.99


def _as_list(value: Any) -> list[Any]:
    """Return value as a list when possible, decoding JSON strings."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, TypeError):
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, TypeError, OverflowError):
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _epoch_seconds(value: Any) -> int | None:
    parsed = _parse_datetime(value)
    return int(parsed.timestamp()) if parsed else None


def _parse_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        float_val = _parse_float(value)
        if float_val is None:
            return None
        return int(round(float_val))


def _polymarket_outcome(raw_market: Mapping[str, Any]) -> MarketOutcome | None:
    outcomes = [str(item).strip().upper() for item in _as_list(raw_market.get("outcomes"))]
    prices = [_parse_float(item) for item in _as_list(raw_market.get("outcomePrices"))]
    for label, price in zip(outcomes, prices):
        if price is not None and price >= _DECISIVE_PRICE:
            parsed = MarketOutcome.parse(label)
            if parsed is not None:
                return parsed
    # Older gamma payloads encode the winner as 1 (YES) / 0 (NO).
    return MarketOutcome.parse(raw_market.get("resolutionSource"))


def normalize_polymarket_resolution(market_id: str, raw_market: Mapping[str, Any]) -> ResolutionRecord:
    uma_status = str(raw_market.get("umaResolutionStatus") or "").lower()
    closed = bool(raw_market.get("closed")) or bool(raw_market.get("closedTime"))
    accepting_orders = bool(raw_market.get("acceptingOrders"))
    outcome = None if accepting_orders else _polymarket_outcome(raw_market)
    resolved = closed and not accepting_orders and (uma_status == "resolved" or outcome is not None)
    return ResolutionRecord(
        market_id=market_id,
        platform="polymarket",
        resolved=resolved,
        outcome=outcome if resolved else None,
        resolved_at=_epoch_seconds(raw_market.get("closedTime") or raw_market.get("endDate")),
        raw_data=dict(raw_market),
    )


def normalize_kalshi_resolution(market_id: str, payload: Mapping[str, Any]) -> ResolutionRecord:
    raw_market = payload.get("market") if isinstance(payload.get("market"), Mapping) else payload
    result = raw_market.get("result")
    outcome = MarketOutcome.parse(result) if result not in (None, "") else None
    status = str(raw_market.get("status") or "").lower()
    resolved = outcome is not None or status in {"settled", "finalized"}
    return ResolutionRecord(
        market_id=market_id,
        platform="kalshi",
        resolved=resolved,
        outcome=outcome,
        resolved_at=_epoch_seconds(
            raw_market.get("settlement_ts")
            or raw_market.get("resolvedTime")
            or raw_market.get("close_time")
        ),
        raw_data=dict(raw_market),
    )


def normalize_weather(location: str, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Reduce a current/forecast weather payload to the facts analyzers use."""

    current = _mapping(payload.get("current"))
    condition = _mapping(current.get("condition"))
    precip_chance = current.get("precip_chance")
    if precip_chance is None:
        forecast_days = _as_list(_mapping(payload.get("forecast")).get("forecastday"))
        if forecast_days and isinstance(forecast_days[0], Mapping):
            day = _mapping(forecast_days[0].get("day"))
            precip_chance = day.get("daily_chance_of_rain")
    resolved_location = _mapping(payload.get("location"))
    return {
        "location": resolved_location.get("name") or location,
        "region": resolved_location.get("region"),
        "country": resolved_location.get("country"),
        "temp_c": _parse_float(current.get("temp_c")),
        "temp_f": _parse_float(current.get("temp_f")),
        "condition": condition.get("text") or "Unknown",
        "wind_kph": _parse_float(current.get("wind_kph")),
        "wind_mph": _parse_float(current.get("wind_mph")),
        "precip_chance": _parse_int(precip_chance) or 0,
        "humidity": _parse_int(current.get("humidity")),
        "last_updated": current.get("last_updated"),
    }


def normalize_casts(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    result = payload.get("result") if isinstance(payload.get("result"), Mapping) else payload
    casts: list[dict[str, Any]] = []
    for raw_cast in _as_list(result.get("casts")):
        if not isinstance(raw_cast, Mapping):
            continue
        reactions = _mapping(raw_cast.get("reactions"))
        author = _mapping(raw_cast.get("author"))
        casts.append(
            {
                "hash": raw_cast.get("hash"),
                "text": str(raw_cast.get("text") or ""),
                "author": author.get("username"),
                "likes": _parse_int(reactions.get("likes_count")) or 0,
                "recasts": _parse_int(reactions.get("recasts_count")) or 0,
                "timestamp": raw_cast.get("timestamp"),
            }
        )
    return casts


def normalize_chain_stats(ledger: Mapping[str, Any], gas: Mapping[str, Any] | None) -> dict[str, Any]:
    gas_price = _parse_int(_mapping(gas).get("gas_estimate")) or 100
    ledger_timestamp = _parse_int(ledger.get("ledger_timestamp"))
    return {
        "gas_price": gas_price,
        "block_height": _parse_int(ledger.get("block_height") or ledger.get("ledger_version")),
        "chain_id": _parse_int(ledger.get("chain_id")),
        "epoch": _parse_int(ledger.get("epoch")),
        "timestamp": ledger_timestamp // 1_000_000 if ledger_timestamp else None,
        "tps": _parse_float(ledger.get("tps")),
        "congestion": _congestion_level(gas_price),
        "is_simulated": False,
    }


def _congestion_level(gas_price: int) -> str:
    if gas_price >= 500:
        return "HIGH"
    if gas_price >= 150:
        return "MEDIUM"
    return "LOW"


__all__ = [
    "normalize_casts",
    "normalize_chain_stats",
    "normalize_kalshi_resolution",
    "normalize_polymarket_resolution",
    "normalize_weather",
]
