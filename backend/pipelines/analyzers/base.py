"""Five-stage analyzer pipeline shared by every signal domain."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import (
    AnalysisMode,
    AnalysisResult,
    Context,
    EnrichedContext,
    MarketOutcome,
    OddsEfficiency,
    Signal,
    content_hash,
)
from app.services.analysis_executor import (
    DEFAULT_SYSTEM_PROMPT,
    AnalysisExecutor,
    fallback_assessment,
)

from .errors import InvalidContext

_RESPONSE_TEMPLATE = """Respond with this exact JSON structure:
{{
  "impact": "HIGH|MEDIUM|LOW",
  "odds_efficiency": "EFFICIENT|INEFFICIENT",
  "confidence": "HIGH|MEDIUM|LOW",
  "analysis": "Brief digest, max 200 characters",
  "key_factors": ["factor", "..."],
  "recommended_action": "What a trader should do"{citations}
}}"""
_CITATIONS_FIELD = (
    ',\n  "citations": [{"title": "...", "url": "https://...", "snippet": "..."}]'
)


def implied_outcome(context: Context, odds_efficiency: OddsEfficiency) -> MarketOutcome:
    """Return the side a signal backs.

    Efficient (or unknown) odds back the market favourite; inefficient odds
    back the contrarian side.
    """

    favored = context.current_odds.favored
    if odds_efficiency is OddsEfficiency.INEFFICIENT:
        return MarketOutcome.NO if favored is MarketOutcome.YES else MarketOutcome.YES
    return favored


class SignalAnalyzer:
    """Validate, enrich, prompt, execute, format.

    Subclasses implement :meth:`enrich_context`, :meth:`construct_prompt` and
    :meth:`cache_facts`; the remaining stages are shared.
    """

    domain: str = "generic"
    name: str = "GenericAnalyzer"
    version: str = "1.0.0"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        executor: AnalysisExecutor | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.executor = executor or AnalysisExecutor(self.settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Pipeline

    def analyze(
        self,
        context: Context | Mapping[str, Any],
        *,
        author_address: str | None = None,
    ) -> Signal:
        if not isinstance(context, Context):
            context = Context.from_mapping(context)
        self.validate_context(context)
        enriched = self.enrich_context(context)
        if enriched.is_degraded:
            logger.warning(
                "{} enrichment degraded event_id={} reason={}",
                self.name,
                context.event_id,
                enriched.degraded_reason,
            )
            result = AnalysisResult(
                assessment=fallback_assessment(
                    f"data source unavailable ({enriched.degraded_reason})",
                    key_factor="Domain data unavailable",
                ),
                source="fallback",
            )
        else:
            prompt = self.construct_prompt(enriched)
            result = self.execute_analysis(prompt, enriched)
        signal = self.format_signal(result, enriched, author_address=author_address)
        logger.info(
            "{} produced signal id={} event_id={} confidence={} source={}",
            self.name,
            signal.id,
            signal.event_id,
            signal.confidence.value,
            signal.source,
        )
        return signal

    def validate_context(self, context: Context) -> None:
        missing = [field for field in ("event_id", "title") if not getattr(context, field)]
        missing.extend(field for field in self.missing_domain_fields(context) if field not in missing)
        if missing:
            raise InvalidContext(
                f"Invalid context for {self.domain}: missing {', '.join(missing)}",
                missing=tuple(missing),
            )

    def missing_domain_fields(self, context: Context) -> tuple[str, ...]:
        """Return domain-required fields absent from ``context``."""

        return ()

    def enrich_context(self, context: Context) -> EnrichedContext:
        raise NotImplementedError

    def construct_prompt(self, enriched: EnrichedContext) -> str:
        raise NotImplementedError

    def cache_facts(self, enriched: EnrichedContext) -> dict[str, Any]:
        """Return the volatile facts that decide whether a cached assessment applies."""

        return dict(enriched.payload)

    def execute_analysis(self, prompt: str, enriched: EnrichedContext) -> AnalysisResult:
        return self.executor.execute(
            prompt,
            domain=self.domain,
            place=enriched.place,
            facts=self.cache_facts(enriched),
            mode=self.resolve_mode(enriched.context),
            event_date=enriched.context.event_date,
            system_prompt=self.system_prompt,
        )

    def format_signal(
        self,
        result: AnalysisResult,
        enriched: EnrichedContext,
        *,
        author_address: str | None = None,
    ) -> Signal:
        context = enriched.context
        assessment = result.assessment
        event_time = int(context.event_date.timestamp()) if context.event_date else 0
        return Signal(
            id=uuid.uuid4().hex,
            event_id=context.event_id or "",
            market_title=context.title or "",
            venue=enriched.place,
            event_time=event_time,
            market_snapshot_hash=content_hash(enriched.snapshot()),
            domain_hash=enriched.domain_hash,
            domain=self.domain,
            ai_digest=assessment.analysis,
            confidence=assessment.confidence,
            odds_efficiency=assessment.odds_efficiency,
            timestamp=int(self._clock().timestamp()),
            impact=assessment.impact,
            key_factors=list(assessment.key_factors),
            recommended_action=assessment.recommended_action,
            citations=list(assessment.citations),
            implied_outcome=implied_outcome(context, assessment.odds_efficiency),
            author_address=author_address or context.author_address,
            platform=context.platform or _infer_platform(context),
            cached=result.cached,
            source=result.source,
        )

    # ------------------------------------------------------------------
    # Helpers for subclasses

    def resolve_mode(self, context: Context) -> AnalysisMode:
        return context.mode or AnalysisMode.coerce(self.settings.analysis_mode)

    def response_instructions(self, context: Context) -> str:
        deep = self.resolve_mode(context) is AnalysisMode.DEEP
        return _RESPONSE_TEMPLATE.format(citations=_CITATIONS_FIELD if deep else "")

    @staticmethod
    def odds_line(context: Context) -> str:
        return f"Current Odds: Yes {context.current_odds.yes} | No {context.current_odds.no}"

    def build_enriched(
        self,
        context: Context,
        payload: dict[str, Any],
        *,
        location: str | None = None,
        venue: str | None = None,
    ) -> EnrichedContext:
        return EnrichedContext(
            context=context,
            domain=self.domain,
            payload=payload,
            domain_hash=content_hash(payload),
            location=location,
            venue=venue,
        )

    def build_degraded(
        self,
        context: Context,
        reason: str,
        *,
        location: str | None = None,
        venue: str | None = None,
    ) -> EnrichedContext:
        payload: dict[str, Any] = {"unavailable": True, "reason": reason}
        enriched = self.build_enriched(context, payload, location=location, venue=venue)
        enriched.degraded_reason = reason
        return enriched


def _infer_platform(context: Context) -> str:
    event_id = (context.event_id or "").lower()
    if event_id.startswith("kalshi") or "kalshi" in (context.title or "").lower():
        return "kalshi"
    return "polymarket"


__all__ = ["SignalAnalyzer", "implied_outcome"]
