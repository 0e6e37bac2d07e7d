"""Crowd and traffic analysis around event venues."""

from __future__ import annotations

from typing import Any

from loguru import logger

from app.domain import Context, EnrichedContext
from ingestion.service import CrowdSource, SimulatedCrowdSource

from .base import SignalAnalyzer
from .errors import EnrichmentError, UnresolvableDomainInput
from .venue import extract_venue


class MobilityAnalyzer(SignalAnalyzer):
    domain = "mobility"
    name = "MobilityAnalyzer"

    def __init__(self, *, source: CrowdSource | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.source = source or SimulatedCrowdSource()

    def enrich_context(self, context: Context) -> EnrichedContext:
        venue = context.venue or context.location or extract_venue(context)
        if not venue:
            raise UnresolvableDomainInput(self.domain, "Mobility analysis requires a resolvable venue")
        try:
            snapshot = self.source.crowd_snapshot(venue)
        except EnrichmentError as exc:
            logger.warning("Mobility enrichment failed venue={} error={}", venue, exc)
            return self.build_degraded(context, str(exc), location=context.location, venue=venue)
        return self.build_enriched(context, snapshot, location=context.location, venue=venue)

    def construct_prompt(self, enriched: EnrichedContext) -> str:
        mobility = enriched.payload
        mobility_text = (
            f"Current Status: {mobility.get('status')}, "
            f"Crowd Level: {mobility.get('crowd_level')}%, "
            f"Trend: {mobility.get('trend')}"
        )
        return "\n".join(
            [
                "Analyze this prediction market based on local mobility and crowd patterns:",
                f'Market: "{enriched.context.title}"',
                f"Venue: {enriched.place}",
                self.odds_line(enriched.context),
                f"Mobility Data: {mobility_text}",
                "",
                "Does the crowd turnout or traffic significantly impact this outcome?",
                "(e.g., low turnout affecting home team advantage, or high traffic affecting logistics)",
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
        mobility = enriched.payload
        return {
            "status": mobility.get("status"),
            "crowd_level": mobility.get("crowd_level"),
            "trend": mobility.get("trend"),
        }


__all__ = ["MobilityAnalyzer"]
