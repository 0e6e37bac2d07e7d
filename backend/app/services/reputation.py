"""Pure reputation aggregation over an author's resolved signals."""

from __future__ import annotations

from typing import Iterable, Sequence

from app.domain import Confidence, MarketBucket, ReputationStats, Signal, SignalOutcome, Tier

TIERS: tuple[tuple[float, Tier], ...] = (
    (85.0, Tier(name="Sage", emoji="\U0001F451", color="gold")),
    (75.0, Tier(name="Elite Analyst", emoji="\U0001F31F", color="blue")),
    (60.0, Tier(name="Forecaster", emoji="\U0001F3AF", color="green")),
    (50.0, Tier(name="Predictor", emoji="\U0001F4CA", color="gray")),
)
NOVICE_TIER = Tier(name="Novice", emoji="\U0001F331", color="silver")

# Win rate a well-calibrated author should hit at each stated confidence.
CALIBRATION_MIDPOINTS: dict[str, float] = {
    Confidence.HIGH.value: 70.0,
    Confidence.MEDIUM.value: 50.0,
    Confidence.LOW.value: 30.0,
    Confidence.UNKNOWN.value: 50.0,
}

RECENT_PREDICTIONS = 5
TIP_UNITS_PER_TOKEN = 1_000_000


def calculate_tier(win_rate: float) -> Tier:
    for threshold, tier in TIERS:
        if win_rate >= threshold:
            return tier
    return NOVICE_TIER


def _confidence_buckets(signals: Iterable[Signal]) -> dict[str, dict]:
    buckets: dict[str, dict] = {}
    for signal in signals:
        key = signal.confidence.value if signal.confidence else Confidence.UNKNOWN.value
        bucket = buckets.setdefault(key, {"wins": 0, "total": 0, "market": signal.market_title})
        bucket["total"] += 1
        if signal.outcome is SignalOutcome.WIN:
            bucket["wins"] += 1
    return buckets


def best_worst_markets(signals: Sequence[Signal]) -> tuple[MarketBucket | None, MarketBucket | None]:
    """Return the confidence buckets with the highest and lowest win rate.

    Comparisons are strict so the first bucket to reach an extreme keeps it.
    A bucket only counts as best above 0% and as worst below 100%.
    """

    best: MarketBucket | None = None
    worst: MarketBucket | None = None
    best_rate = 0.0
    worst_rate = 100.0
    for confidence, bucket in _confidence_buckets(signals).items():
        rate = bucket["wins"] / bucket["total"] * 100
        if rate > best_rate:
            best_rate = rate
            best = MarketBucket(confidence=confidence, win_rate=rate, market=bucket["market"])
        if rate < worst_rate:
            worst_rate = rate
            worst = MarketBucket(confidence=confidence, win_rate=rate, market=bucket["market"])
    return best, worst


def calculate_calibration(signals: Sequence[Signal]) -> float:
    """Score 0-100 of how closely per-confidence win rates match their midpoints."""

    buckets = _confidence_buckets(signals)
    if not buckets:
        return 0.0
    deviations = []
    for confidence, bucket in buckets.items():
        actual = bucket["wins"] / bucket["total"] * 100
        expected = CALIBRATION_MIDPOINTS.get(confidence, 50.0)
        deviations.append(abs(actual - expected))
    average = sum(deviations) / len(deviations)
    return max(0.0, 100.0 - average)


def streaks(signals: Sequence[Signal]) -> tuple[int, int]:
    """Return ``(reported_streak, longest_win_streak)`` for most-recent-first signals."""

    current = 0
    longest = 0
    streak_type: SignalOutcome | None = None
    for signal in signals:
        if signal.outcome is SignalOutcome.WIN:
            if streak_type in (SignalOutcome.WIN, None):
                current += 1
                streak_type = SignalOutcome.WIN
                longest = max(longest, current)
            else:
                current = 1
                streak_type = SignalOutcome.WIN
        elif signal.outcome is SignalOutcome.LOSS:
            if streak_type in (SignalOutcome.LOSS, None):
                current += 1
                streak_type = SignalOutcome.LOSS
            else:
                current = 1
                streak_type = SignalOutcome.LOSS
    reported = current if streak_type is SignalOutcome.WIN else 0
    return reported, longest


def calculate_reputation(address: str | None, signals: Sequence[Signal]) -> ReputationStats:
    """Aggregate resolved ``signals`` ordered most-recent-resolution-first.

    PENDING entries are ignored. An empty history yields zeroed stats with the
    Novice tier.
    """

    resolved = [signal for signal in signals if signal.is_resolved]
    if not resolved:
        return ReputationStats(user_address=address, tier=NOVICE_TIER)

    wins = sum(1 for signal in resolved if signal.outcome is SignalOutcome.WIN)
    losses = sum(1 for signal in resolved if signal.outcome is SignalOutcome.LOSS)
    total_resolved = wins + losses
    win_rate = wins / total_resolved * 100 if total_resolved else 0.0

    streak, longest = streaks(resolved)
    best, worst = best_worst_markets(resolved)
    tips = sum(signal.total_tips or 0 for signal in resolved)

    return ReputationStats(
        user_address=address,
        total_predictions=len(resolved),
        total_resolved=total_resolved,
        wins=wins,
        losses=losses,
        win_rate=round(win_rate, 2),
        accuracy_percent=round(win_rate, 2),
        streak=streak,
        longest_win_streak=longest,
        calibration_score=round(calculate_calibration(resolved), 2),
        tier=calculate_tier(win_rate),
        best_market=best,
        worst_market=worst,
        recent_predictions=list(resolved[:RECENT_PREDICTIONS]),
        total_tips_received=round(tips),
        total_earnings=round(tips / TIP_UNITS_PER_TOKEN, 2),
    )


__all__ = [
    "CALIBRATION_MIDPOINTS",
    "NOVICE_TIER",
    "TIERS",
    "best_worst_markets",
    "calculate_calibration",
    "calculate_reputation",
    "calculate_tier",
    "streaks",
]
