"""Domain models for contexts, signals, resolutions, and reputation."""

from .hashing import canonical_json, content_hash
from .models import (
    AnalysisMode,
    AnalysisResult,
    Assessment,
    Citation,
    Confidence,
    Context,
    EnrichedContext,
    Impact,
    MarketBucket,
    MarketOutcome,
    Odds,
    OddsEfficiency,
    ReputationStats,
    ResolutionRecord,
    ResolutionResult,
    ResolutionStatus,
    Signal,
    SignalOutcome,
    Tier,
    parse_event_date,
)

__all__ = [
    "AnalysisMode",
    "AnalysisResult",
    "Assessment",
    "Citation",
    "Confidence",
    "Context",
    "EnrichedContext",
    "Impact",
    "MarketBucket",
    "MarketOutcome",
    "Odds",
    "OddsEfficiency",
    "ReputationStats",
    "ResolutionRecord",
    "ResolutionResult",
    "ResolutionStatus",
    "Signal",
    "SignalOutcome",
    "Tier",
    "canonical_json",
    "content_hash",
    "parse_event_date",
]
