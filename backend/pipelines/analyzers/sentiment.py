"""Social-feed sentiment analysis for market topics."""

from __future__ import annotations

from typing import Any

from loguru import logger

from app.domain import Context, EnrichedContext
from ingestion.service import SocialFeedService, SocialSource

from .base import SignalAnalyzer
from .errors import EnrichmentError, UnresolvableDomainInput

_TOP_CASTS = 5


def summarize_casts(casts: list[dict[str, Any]]) -> str:
    if not casts:
        return "No significant chatter found."
    likes = sum(int(cast.get("likes") or 0) for cast in casts)
    recasts = sum(int(cast.get("recasts") or 0) for cast in casts)
    return f"{len(casts)} casts found with {likes} total likes and {recasts} recasts."


def topic_for(context: Context) -> str | None:
    return context.tags[0] if context.tags else context.title


class SentimentAnalyzer(SignalAnalyzer):
    domain = "sentiment"
    name = "SentimentAnalyzer"

    def __init__(self, *, source: SocialSource | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.source = source or SocialFeedService(self.settings)

    def missing_domain_fields(self, context: Context) -> tuple[str, ...]:
        return () if topic_for(context) else ("topic",)

    def enrich_context(self, context: Context) -> EnrichedContext:
        topic = topic_for(context)
        if not topic:
            raise UnresolvableDomainInput(self.domain, "Sentiment analysis requires a topic or title")
        try:
            casts = self.source.search_casts(topic, self.settings.social_cast_limit)
        except EnrichmentError as exc:
            logger.warning("Sentiment enrichment failed topic={} error={}", topic, exc)
            return self.build_degraded(context, str(exc), location=context.location, venue=context.venue)
        payload = {
            "topic": topic,
            "cast_count": len(casts),
            "summary": summarize_casts(casts),
            "casts": [cast.get("text", "") for cast in casts][:_TOP_CASTS],
        }
        return self.build_enriched(context, payload, location=context.location, venue=context.venue)

    def construct_prompt(self, enriched: EnrichedContext) -> str:
        sentiment = enriched.payload
        key_casts = [f'  - "{text}"' for text in sentiment.get("casts") or []]
        return "\n".join(
            [
                "Analyze the social sentiment for this prediction market:",
                f'Market: "{enriched.context.title}"',
                self.odds_line(enriched.context),
                "",
                "Social Chatter (Farcaster):",
                f"- Topic: {sentiment.get('topic')}",
                f"- Volume: {sentiment.get('cast_count')} casts",
                f"- Summary: {sentiment.get('summary')}",
                "- Key Casts:",
                *key_casts,
                "",
                "Does the community sentiment strongly favor one outcome?",
                'Is there "insider" or "expert" consensus visible in the chatter?',
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
        sentiment = enriched.payload
        return {
            "topic": sentiment.get("topic"),
            "cast_count": sentiment.get("cast_count"),
            "summary": sentiment.get("summary"),
            "casts": list(sentiment.get("casts") or []),
        }


__all__ = ["SentimentAnalyzer", "summarize_casts", "topic_for"]
