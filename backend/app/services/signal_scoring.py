"""Per-signal quality metrics shown next to published signals."""

from __future__ import annotations

from typing import Any

from app.domain import Confidence, OddsEfficiency, Signal, SignalOutcome

_BASE_SCORE = 50
_CONFIDENCE_BONUS = {Confidence.HIGH: 30, Confidence.MEDIUM: 15}
_INEFFICIENT_BONUS = 20
_OUTCOME_ADJUSTMENT = {SignalOutcome.WIN: 30, SignalOutcome.LOSS: -30}

_QUALITY_LABELS = ((80, "Excellent"), (60, "Good"), (40, "Fair"))


def odds_improvement(signal: Signal) -> dict[str, Any] | None:
    if signal.odds_efficiency is OddsEfficiency.UNKNOWN:
        return None
    if signal.odds_efficiency is OddsEfficiency.INEFFICIENT:
        return {"score": 100, "label": "Value Detected", "color": "green"}
    return {"score": 50, "label": "Fair Odds", "color": "yellow"}


def signal_quality(signal: Signal) -> int:
    """Score a signal 0-100 from its confidence, odds read and outcome."""

    score = _BASE_SCORE
    score += _CONFIDENCE_BONUS.get(signal.confidence, 0)
    if signal.odds_efficiency is OddsEfficiency.INEFFICIENT:
        score += _INEFFICIENT_BONUS
    score += _OUTCOME_ADJUSTMENT.get(signal.outcome, 0)
    return max(0, min(100, score))


def quality_label(score: float) -> str:
    for threshold, label in _QUALITY_LABELS:
        if score >= threshold:
            return label
    return "Poor"


def signal_metrics(signal: Signal) -> dict[str, Any]:
    quality = signal_quality(signal)
    return {
        "quality": quality,
        "quality_label": quality_label(quality),
        "odds_improvement": odds_improvement(signal),
        "has_outcome": signal.is_resolved,
    }


__all__ = ["odds_improvement", "quality_label", "signal_metrics", "signal_quality"]
