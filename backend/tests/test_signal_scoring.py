from __future__ import annotations

import pytest

from app.domain import Confidence, OddsEfficiency, SignalOutcome
from app.services.signal_scoring import odds_improvement, quality_label, signal_metrics, signal_quality


@pytest.mark.parametrize(
    "confidence, efficiency, outcome, expected",
    [
        (Confidence.HIGH, OddsEfficiency.INEFFICIENT, SignalOutcome.WIN, 100),
        (Confidence.HIGH, OddsEfficiency.EFFICIENT, SignalOutcome.PENDING, 80),
        (Confidence.MEDIUM, OddsEfficiency.EFFICIENT, SignalOutcome.LOSS, 35),
        (Confidence.LOW, OddsEfficiency.EFFICIENT, SignalOutcome.LOSS, 20),
        (Confidence.UNKNOWN, OddsEfficiency.UNKNOWN, SignalOutcome.PENDING, 50),
    ],
)
def test_signal_quality_scoring(make_signal, confidence, efficiency, outcome, expected) -> None:
    signal = make_signal(confidence=confidence, odds_efficiency=efficiency, outcome=outcome)
    assert signal_quality(signal) == expected


@pytest.mark.parametrize(
    "score, label",
    [(80, "Excellent"), (79, "Good"), (60, "Good"), (40, "Fair"), (39, "Poor")],
)
def test_quality_label_thresholds(score, label) -> None:
    assert quality_label(score) == label


def test_odds_improvement_flags_value(make_signal) -> None:
    assert odds_improvement(make_signal(odds_efficiency=OddsEfficiency.INEFFICIENT))["label"] == "Value Detected"
    assert odds_improvement(make_signal(odds_efficiency=OddsEfficiency.EFFICIENT))["score"] == 50
    assert odds_improvement(make_signal(odds_efficiency=OddsEfficiency.UNKNOWN)) is None


def test_signal_metrics_bundle(make_signal) -> None:
    metrics = signal_metrics(make_signal(outcome=SignalOutcome.WIN))

    assert metrics["quality"] == 100
    assert metrics["quality_label"] == "Excellent"
    assert metrics["has_outcome"] is True
