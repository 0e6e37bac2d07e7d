"""Weather-driven analysis of outdoor event markets."""

from __future__ import annotations

from typing import Any

from loguru import logger

from app.domain import Context, EnrichedContext
from ingestion.service import WeatherService, WeatherSource

from .base import SignalAnalyzer
from .errors import EnrichmentError, UnresolvableDomainInput
from .venue import extract_venue

_WEATHER_SYSTEM_PROMPT = (
    "You are a concise prediction market analyst. Analyze weather impacts on "
    "odds. Be direct and actionable - no unnecessary detail."
)


class WeatherAnalyzer(SignalAnalyzer):
    domain = "weather"
    name = "WeatherAnalyzer"
    version = "2.0.0"
    system_prompt = _WEATHER_SYSTEM_PROMPT

    def __init__(self, *, source: WeatherSource | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.source = source or WeatherService(self.settings)

    def enrich_context(self, context: Context) -> EnrichedContext:
        location = context.location or context.venue or extract_venue(context)
        if not location:
            raise UnresolvableDomainInput(self.domain, "Weather analysis requires a resolvable location")
        try:
            weather = self.source.current_weather(location)
        except EnrichmentError as exc:
            logger.warning("Weather enrichment failed location={} error={}", location, exc)
            return self.build_degraded(context, str(exc), location=location, venue=context.venue)
        return self.build_enriched(context, weather, location=location, venue=context.venue)

    def construct_prompt(self, enriched: EnrichedContext) -> str:
        weather = enriched.payload
        weather_text = (
            f"{weather.get('condition') or 'Unknown'}, "
            f"{_fmt(weather.get('temp_c'))}°C ({_fmt(weather.get('temp_f'))}°F), "
            f"Wind: {_fmt(weather.get('wind_kph'))}kph ({_fmt(weather.get('wind_mph'))}mph), "
            f"Precipitation chance: {weather.get('precip_chance') or 0}%, "
            f"Humidity: {_fmt(weather.get('humidity'))}%"
        )
        return "\n".join(
            [
                "Analyze this prediction market based on weather conditions:",
                f'Market: "{enriched.context.title}"',
                f"Location: {enriched.place}",
                self.odds_line(enriched.context),
                f"Weather: {weather_text}",
                "",
                "Does the weather significantly impact this outcome?",
                "Provide:",
                "1. Confidence (HIGH/MEDIUM/LOW)",
                "2. Odds Efficiency (INEFFICIENT/EFFICIENT)",
                "3. Brief Digest (max 200 chars)",
                "",
                self.response_instructions(enriched.context),
            ]
        )

    def cache_facts(self, enriched: EnrichedContext) -> dict[str, Any]:
        weather = enriched.payload
        return {
            "temp_c": weather.get("temp_c"),
            "condition": weather.get("condition"),
            "wind_kph": weather.get("wind_kph"),
            "precip_chance": weather.get("precip_chance"),
            "humidity": weather.get("humidity"),
        }


def _fmt(value: Any) -> str:
    return "unknown" if value is None else f"{value}"


__all__ = ["WeatherAnalyzer"]
