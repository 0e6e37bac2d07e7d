"""Store-backed conveniences around the reputation calculator."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from app.domain import ReputationStats, Signal, SignalOutcome
from app.repositories import SignalStore

from .reputation import calculate_reputation

_SECONDS_PER_DAY = 86_400


@dataclass(slots=True)
class UserRanking:
    stats: ReputationStats
    rank: int
    total_ranked: int


def _normalize(address: str | None) -> str:
    return (address or "").strip().lower()


class ReputationService:
    """Read an author's signals from the store and derive reputation views."""

    def __init__(self, store: SignalStore) -> None:
        self._store = store

    def get_user_stats(self, address: str | None) -> ReputationStats:
        normalized = _normalize(address)
        if not normalized:
            return calculate_reputation(None, [])
        resolved = sorted(
            self._store.get_resolved_by_author(normalized),
            key=lambda signal: signal.resolved_at or 0,
            reverse=True,
        )
        stats = calculate_reputation(normalized, resolved)
        logger.debug(
            "Reputation computed address={} resolved={} win_rate={} tier={}",
            normalized,
            stats.total_resolved,
            stats.win_rate,
            stats.tier.name,
        )
        return stats

    def get_recent_wins(
        self,
        address: str | None,
        days: int = 7,
        limit: int = 10,
        *,
        now: datetime | None = None,
    ) -> list[Signal]:
        normalized = _normalize(address)
        if not normalized:
            return []
        current = now or datetime.now(timezone.utc)
        cutoff = int(current.timestamp()) - days * _SECONDS_PER_DAY
        wins = [
            signal
            for signal in self._store.get_resolved_by_author(normalized)
            if signal.outcome is SignalOutcome.WIN and (signal.resolved_at or 0) > cutoff
        ]
        wins.sort(key=lambda signal: signal.resolved_at or 0, reverse=True)
        return wins[:limit]

    def get_prediction_history(self, address: str | None, limit: int = 50) -> list[Signal]:
        normalized = _normalize(address)
        if not normalized:
            return []
        history = sorted(
            self._store.get_by_author(normalized),
            key=lambda signal: signal.timestamp,
            reverse=True,
        )
        return history[:limit]

    def get_user_ranking(self, address: str | None) -> UserRanking | None:
        """Rank ``address`` by win rate, breaking ties on total predictions."""

        normalized = _normalize(address)
        if not normalized:
            return None
        stats = self.get_user_stats(normalized)
        authors = self._store.list_authors()
        if not authors:
            return UserRanking(stats=stats, rank=1, total_ranked=1)

        rank = 1
        for author in authors:
            if _normalize(author) == normalized:
                continue
            other = self.get_user_stats(author)
            if other.win_rate > stats.win_rate or (
                other.win_rate == stats.win_rate and other.total_predictions > stats.total_predictions
            ):
                rank += 1
        return UserRanking(stats=stats, rank=rank, total_ranked=len(authors))


__all__ = ["ReputationService", "UserRanking"]
