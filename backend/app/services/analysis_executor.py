"""Cache-aware execution of reasoning calls for domain analyzers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import (
    AnalysisMode,
    AnalysisResult,
    Assessment,
    Citation,
    Confidence,
    Impact,
    OddsEfficiency,
    content_hash,
)
from app.services.analysis_cache import AnalysisCache
from app.services.llm import ReasoningRequest, get_provider, resolve_reasoning_request
from pipelines.analyzers.errors import CacheError, ProviderError

DEFAULT_SYSTEM_PROMPT = (
    "You are a concise prediction market analyst. Analyze how the supplied "
    "real-world conditions affect the odds. Be direct and actionable - no "
    "unnecessary detail. Respond with a single JSON object."
)
DEFAULT_ANALYSIS_TEXT = "Analysis completed without a written rationale."
DEFAULT_KEY_FACTORS = ("No key factors reported",)
DEFAULT_RECOMMENDED_ACTION = "Monitor the market closely"

_IMPACT_KEYS = ("impact", "weather_impact")

_shared_cache: AnalysisCache | None = None


def get_analysis_cache(settings: Settings | None = None) -> AnalysisCache:
    """Return the process-wide analysis cache."""

    global _shared_cache
    if _shared_cache is None:
        resolved = settings or get_settings()
        _shared_cache = AnalysisCache(resolved.analysis_cache_max_entries)
    return _shared_cache


def _flatten(raw: Mapping[str, Any]) -> dict[str, Any]:
    flattened = dict(raw)
    nested = raw.get("assessment")
    if isinstance(nested, Mapping):
        for key, value in nested.items():
            flattened.setdefault(key, value)
    return flattened


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _impact_value(payload: Mapping[str, Any]) -> Any:
    value = _first(payload, *_IMPACT_KEYS)
    if value is not None:
        return value
    for key, candidate in payload.items():
        if isinstance(key, str) and key.endswith("_impact") and candidate is not None:
            return candidate
    return None


def _key_factors(value: Any) -> list[str]:
    if isinstance(value, str) and value.strip():
        return [value.strip()]
    if isinstance(value, (list, tuple)):
        factors = [str(item).strip() for item in value if item is not None and str(item).strip()]
        if factors:
            return factors
    return list(DEFAULT_KEY_FACTORS)


def _citations(value: Any) -> list[Citation]:
    if not isinstance(value, (list, tuple)):
        return []
    citations: list[Citation] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        url = item.get("url")
        if not isinstance(url, str) or not url.strip():
            continue
        citations.append(
            Citation(
                title=str(item.get("title") or "").strip(),
                url=url.strip(),
                snippet=str(item.get("snippet") or "").strip(),
            )
        )
    return citations


def normalize_assessment(raw: Mapping[str, Any] | None) -> Assessment:
    """Coerce a provider payload into the fixed assessment shape.

    Unknown enum values become ``UNKNOWN``; missing text fields fall back to
    non-empty defaults so downstream consumers never see blanks.
    """

    payload = _flatten(raw or {})
    analysis = _first(payload, "analysis", "digest", "aiDigest", "ai_digest")
    action = _first(payload, "recommended_action", "recommendedAction")
    return Assessment(
        impact=Impact.coerce(_impact_value(payload)),
        odds_efficiency=OddsEfficiency.coerce(_first(payload, "odds_efficiency", "oddsEfficiency")),
        confidence=Confidence.coerce(payload.get("confidence")),
        analysis=str(analysis).strip() if isinstance(analysis, str) and analysis.strip() else DEFAULT_ANALYSIS_TEXT,
        key_factors=_key_factors(_first(payload, "key_factors", "keyFactors")),
        recommended_action=(
            str(action).strip() if isinstance(action, str) and action.strip() else DEFAULT_RECOMMENDED_ACTION
        ),
        citations=_citations(payload.get("citations")),
    )


def fallback_assessment(reason: str, *, key_factor: str = "Analysis service error") -> Assessment:
    return Assessment(
        impact=Impact.UNKNOWN,
        odds_efficiency=OddsEfficiency.UNKNOWN,
        confidence=Confidence.LOW,
        analysis=f"Error in AI analysis: {reason}. Fallback assessment provided.",
        key_factors=[key_factor],
        recommended_action="Proceed with manual evaluation",
    )


def cache_ttl_seconds(
    settings: Settings,
    mode: AnalysisMode,
    event_date: datetime | None,
    *,
    now: datetime | None = None,
) -> int:
    """Return how long an assessment may be reused.

    Deep results keep the deep TTL even close to the event; basic results are
    capped once the event is inside the near-event window.
    """

    if mode is AnalysisMode.DEEP:
        return int(settings.analysis_cache_deep_ttl_seconds)
    ttl = settings.analysis_cache_basic_ttl_seconds
    if event_date is not None:
        current = now or datetime.now(timezone.utc)
        window = timedelta(hours=settings.analysis_cache_near_event_window_hours)
        if event_date - current < window:
            ttl = min(ttl, settings.analysis_cache_near_event_ttl_seconds)
    return int(ttl)


def build_cache_key(domain: str, place: str, facts: Mapping[str, Any], mode: AnalysisMode) -> str:
    facts_hash = content_hash({"facts": dict(facts), "mode": mode.value})
    normalized_place = " ".join((place or "global").lower().split())
    return f"analysis:{domain}:{normalized_place}:{facts_hash}"


class AnalysisExecutor:
    """Run prompts through the configured provider, consulting the shared cache.

    Provider failures never propagate: callers always receive an assessment,
    flagged with ``source="fallback"`` (or ``"unavailable"`` when the provider
    is not configured) and never cached.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        cache: AnalysisCache | None = None,
        provider_name: str | None = None,
        request_resolver: Callable[..., ReasoningRequest] = resolve_reasoning_request,
    ) -> None:
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else get_analysis_cache(self.settings)
        self.provider_name = (provider_name or self.settings.reasoning_provider).lower()
        # Unknown providers are a configuration error and surface immediately.
        get_provider(self.provider_name)
        self._request_resolver = request_resolver

    def execute(
        self,
        prompt: str,
        *,
        domain: str,
        place: str,
        facts: Mapping[str, Any],
        mode: AnalysisMode,
        event_date: datetime | None = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> AnalysisResult:
        key = build_cache_key(domain, place, facts, mode)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Analysis cache hit key={}", key)
            return AnalysisResult(assessment=cached, cached=True, source="cache", cache_key=key)

        try:
            request = self._request_resolver(self.settings, mode.value, provider_name=self.provider_name)
        except ProviderError as exc:
            logger.warning("Reasoning provider unavailable provider={} error={}", self.provider_name, exc)
            return AnalysisResult(
                assessment=fallback_assessment(str(exc), key_factor="API service not configured"),
                source="unavailable",
                cache_key=key,
            )

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        try:
            response = request.invoke(messages=messages, options=request.merge_options())
            raw = request.extract_json(response)
        except ProviderError as exc:
            logger.warning(
                "Reasoning call degraded to fallback provider={} domain={} error={}",
                self.provider_name,
                domain,
                exc,
            )
            return AnalysisResult(
                assessment=fallback_assessment(str(exc)),
                source="fallback",
                cache_key=key,
            )

        assessment = normalize_assessment(raw)
        self._cache_set(key, assessment, cache_ttl_seconds(self.settings, mode, event_date))
        return AnalysisResult(assessment=assessment, cached=False, source="provider", cache_key=key)

    def status(self) -> dict[str, Any]:
        provider = get_provider(self.provider_name)
        default_mode = self.settings.analysis_mode
        try:
            provider.ensure_ready(
                settings=self.settings,
                overrides=self.settings.provider_config(self.provider_name),
            )
            available = True
        except ProviderError:
            available = False
        return {
            "available": available,
            "provider": self.provider_name,
            "model": provider.default_model(default_mode, settings=self.settings),
            "deep_model": provider.default_model("deep", settings=self.settings),
            "mode": default_mode,
            "cache": {
                "size": len(self.cache),
                "max_entries": self.cache.max_entries,
                "ttl_seconds": {
                    "basic": self.settings.analysis_cache_basic_ttl_seconds,
                    "deep": self.settings.analysis_cache_deep_ttl_seconds,
                    "near_event": self.settings.analysis_cache_near_event_ttl_seconds,
                },
                "near_event_window_hours": self.settings.analysis_cache_near_event_window_hours,
            },
        }

    def _cache_get(self, key: str) -> Assessment | None:
        try:
            return self.cache.get(key)
        except CacheError as exc:
            logger.warning("Analysis cache read failed key={} error={}", key, exc)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected analysis cache read failure key={}", key)
        return None

    def _cache_set(self, key: str, assessment: Assessment, ttl_seconds: int) -> None:
        try:
            self.cache.set(key, assessment, ttl_seconds)
        except CacheError as exc:
            logger.warning("Analysis cache write skipped key={} error={}", key, exc)
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected analysis cache write failure key={}", key)


def reset_analysis_cache() -> None:
    global _shared_cache
    _shared_cache = None


__all__ = [
    "AnalysisExecutor",
    "DEFAULT_SYSTEM_PROMPT",
    "build_cache_key",
    "cache_ttl_seconds",
    "fallback_assessment",
    "get_analysis_cache",
    "normalize_assessment",
    "reset_analysis_cache",
]
