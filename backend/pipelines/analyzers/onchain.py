"""Network-condition analysis for chain metric markets."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.domain import Context, EnrichedContext
from ingestion.service import ChainSource, ChainStatsService

from .base import SignalAnalyzer

_BLOCK_BUCKET = 10_000


def simulated_chain_stats(now: datetime | None = None) -> dict[str, Any]:
    current = now or datetime.now(timezone.utc)
    return {
        "gas_price": 100,
        "tps": 120,
        "block_height": 12_000_000,
        "chain_id": None,
        "congestion": "LOW",
        "timestamp": int(current.timestamp()),
        "is_simulated": True,
    }


class OnChainAnalyzer(SignalAnalyzer):
    domain = "onchain"
    name = "OnChainAnalyzer"

    def __init__(self, *, source: ChainSource | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.source = source or ChainStatsService(self.settings)

    def enrich_context(self, context: Context) -> EnrichedContext:
        stats = self.source.network_stats() or simulated_chain_stats(self._clock())
        return self.build_enriched(context, stats, location=context.location, venue=context.venue)

    def construct_prompt(self, enriched: EnrichedContext) -> str:
        stats = enriched.payload
        simulated = " (simulated)" if stats.get("is_simulated") else ""
        return "\n".join(
            [
                "Analyze this prediction market based on current blockchain network conditions:",
                f'Market: "{enriched.context.title}"',
                self.odds_line(enriched.context),
                "",
                f"Network Status (Movement){simulated}:",
                f"- Gas Price: {stats.get('gas_price')} octas",
                f"- Block Height: {stats.get('block_height')}",
                f"- TPS: {stats.get('tps') if stats.get('tps') is not None else 'N/A'}",
                f"- Congestion Level: {stats.get('congestion')}",
                f"- Chain ID: {stats.get('chain_id') or 'N/A'}",
                "",
                "Do these metrics suggest the outcome is likely?",
                '(e.g., if market is "Gas > 500", and current is 100 with low congestion -> NO)',
                "",
                "Provide:",
                "1. Confidence (HIGH/MEDIUM/LOW)",
                "2. Odds Efficiency (INEFFICIENT/EFFICIENT)",
                "3. Brief Digest (max 200 chars)",
                "",
                self.response_instructions(enriched.context),
            ]
        )

    def cache_facts(self, enriched: EnrichedContext) -> dict[str, Any]:
        stats = enriched.payload
        block_height = stats.get("block_height")
        return {
            "gas_price": stats.get("gas_price"),
            "congestion": stats.get("congestion"),
            "block_bucket": block_height // _BLOCK_BUCKET if isinstance(block_height, int) else None,
        }


__all__ = ["OnChainAnalyzer", "simulated_chain_stats"]
