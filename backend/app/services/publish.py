"""Entry-function payloads for publishing signals and tipping analysts on-chain."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from app.core.config import Settings, get_settings
from app.domain import Signal

# Maximum lengths accepted by the registry module's string arguments.
FIELD_LIMITS: dict[str, int] = {
    "event_id": 128,
    "market_title": 256,
    "venue": 128,
    "market_snapshot_hash": 64,
    "domain_hash": 64,
    "ai_digest": 512,
    "confidence": 32,
    "odds_efficiency": 32,
}

DEFAULT_TIP_AMOUNT = 10_000_000


@dataclass(slots=True)
class EntryFunctionPayload:
    function: str
    function_arguments: list[Any]
    type_arguments: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "function": self.function,
            "type_arguments": list(self.type_arguments),
            "function_arguments": list(self.function_arguments),
        }


def truncate(value: Any, limit: int) -> str:
    if value is None or value == "":
        return ""
    text = str(value)
    return text[:limit]


def build_publish_payload(signal: Signal, settings: Settings | None = None) -> EntryFunctionPayload:
    """Build the ``publish_signal`` call; over-long strings are cut, never rejected."""

    settings = settings or get_settings()
    arguments: list[Any] = [
        truncate(signal.event_id, FIELD_LIMITS["event_id"]),
        truncate(signal.market_title, FIELD_LIMITS["market_title"]),
        truncate(signal.venue, FIELD_LIMITS["venue"]),
        int(signal.event_time or 0),
        truncate(signal.market_snapshot_hash, FIELD_LIMITS["market_snapshot_hash"]),
        truncate(signal.domain_hash, FIELD_LIMITS["domain_hash"]),
        truncate(signal.ai_digest, FIELD_LIMITS["ai_digest"]),
        truncate(signal.confidence.value, FIELD_LIMITS["confidence"]),
        truncate(signal.odds_efficiency.value, FIELD_LIMITS["odds_efficiency"]),
    ]
    return EntryFunctionPayload(
        function=f"{settings.chain_module_address}::signal_registry::publish_signal",
        function_arguments=arguments,
    )


def build_tip_payload(
    author_address: str,
    signal_id: str,
    amount: int = DEFAULT_TIP_AMOUNT,
    settings: Settings | None = None,
) -> EntryFunctionPayload:
    if amount <= 0:
        raise ValueError("tip amount must be positive")
    settings = settings or get_settings()
    return EntryFunctionPayload(
        function=f"{settings.chain_module_address}::signal_marketplace::tip_analyst",
        function_arguments=[author_address, str(signal_id), str(int(amount))],
    )


__all__ = [
    "DEFAULT_TIP_AMOUNT",
    "EntryFunctionPayload",
    "FIELD_LIMITS",
    "build_publish_payload",
    "build_tip_payload",
    "truncate",
]
