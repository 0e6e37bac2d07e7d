"""Resolution engine and standalone sweep that settles PENDING signals."""

from __future__ import annotations

import argparse
import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

from loguru import logger

from app.core.config import Settings, get_settings
from app.db import init_db, session_scope
from app.domain import ResolutionRecord, ResolutionResult, ResolutionStatus, Signal, SignalOutcome
from app.repositories import SignalRepository, SignalStore
from ingestion.service import KalshiResolver, PolymarketResolver, ResolutionSource
from pipelines.analyzers.errors import ResolutionError

_LookupKey = tuple[str, str]


def platform_for(signal: Signal) -> str:
    if (signal.platform or "").lower() == "kalshi":
        return "kalshi"
    if signal.event_id.lower().startswith("kalshi"):
        return "kalshi"
    if "kalshi" in (signal.market_title or "").lower():
        return "kalshi"
    return "polymarket"


@dataclass(slots=True)
class ResolutionSummary:
    checked: int = 0
    resolved: int = 0
    wins: int = 0
    losses: int = 0
    pending: int = 0
    errors: int = 0
    failures: list[dict[str, Any]] = field(default_factory=list)

    def record(self, result: ResolutionResult) -> None:
        self.checked += 1
        if result.status is ResolutionStatus.RESOLVED:
            self.resolved += 1
            if result.outcome is SignalOutcome.WIN:
                self.wins += 1
            elif result.outcome is SignalOutcome.LOSS:
                self.losses += 1
        elif result.status is ResolutionStatus.PENDING:
            self.pending += 1
        else:
            self.errors += 1
            self.failures.append({"signal_id": result.signal_id, "reason": result.error})

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "resolved": self.resolved,
            "wins": self.wins,
            "losses": self.losses,
            "pending": self.pending,
            "errors": self.errors,
            "failures": self.failures,
        }


@dataclass(slots=True)
class _CachedLookup:
    record: ResolutionRecord
    expires_at: float


class ResolutionEngine:
    """Compare PENDING signals with their market's settlement state.

    Market lookups run in a bounded thread pool and are cached per market;
    store writes stay on the calling thread so a single session is never
    shared across threads.
    """

    def __init__(
        self,
        store: SignalStore,
        settings: Settings | None = None,
        *,
        resolvers: Mapping[str, ResolutionSource] | None = None,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self._resolvers = dict(
            resolvers
            or {
                "polymarket": PolymarketResolver(self.settings),
                "kalshi": KalshiResolver(self.settings),
            }
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._monotonic = monotonic or time.monotonic
        self._lookup_cache: dict[_LookupKey, _CachedLookup] = {}
        self._lookup_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public operations

    def resolve_signal(self, signal: Signal) -> ResolutionResult:
        return self.resolve_batch([signal])[0]

    def resolve_batch(self, signals: Sequence[Signal]) -> list[ResolutionResult]:
        """Resolve ``signals`` and return one result per input, in input order."""

        keys = {
            (platform_for(signal), signal.event_id)
            for signal in signals
            if not signal.is_resolved
        }
        lookups = self._lookup_many(keys)
        return [self._apply(signal, lookups) for signal in signals]

    def resolve_event_signals(self, event_id: str) -> list[ResolutionResult]:
        return self.resolve_batch(self.store.get_pending(event_id=event_id))

    def resolve_pending(
        self,
        *,
        limit: int | None = None,
        batch_size: int | None = None,
        event_ids: Sequence[str] | None = None,
    ) -> ResolutionSummary:
        summary = ResolutionSummary()
        batch_size = batch_size or self.settings.resolution_batch_size
        if event_ids:
            candidates: list[Signal] = []
            for event_id in event_ids:
                candidates.extend(self.store.get_pending(event_id=event_id))
            if limit is not None:
                candidates = candidates[:limit]
        else:
            candidates = self.store.get_pending(limit)

        logger.info(
            "Starting resolution sweep: limit={}, batch_size={}, event_filter={}, candidates={}",
            limit,
            batch_size,
            list(event_ids) if event_ids else None,
            len(candidates),
        )
        if not candidates:
            logger.info("No pending signals found; sweep completed with no updates")
            return summary

        for chunk in _chunked(candidates, batch_size):
            for result in self.resolve_batch(chunk):
                summary.record(result)

        logger.info(
            "Resolution sweep finished: checked={}, resolved={}, pending={}, errors={}",
            summary.checked,
            summary.resolved,
            summary.pending,
            summary.errors,
        )
        return summary

    def clear_cache(self) -> None:
        with self._lookup_lock:
            self._lookup_cache.clear()

    # ------------------------------------------------------------------
    # Internals

    def _lookup_many(self, keys: Iterable[_LookupKey]) -> dict[_LookupKey, ResolutionRecord | Exception]:
        keys = list(keys)
        if not keys:
            return {}
        workers = min(self.settings.resolution_max_workers, len(keys))
        if workers <= 1:
            return {key: self._lookup_safe(key) for key in keys}
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolution") as pool:
            outcomes = pool.map(self._lookup_safe, keys)
            return dict(zip(keys, outcomes))

    def _lookup_safe(self, key: _LookupKey) -> ResolutionRecord | Exception:
        try:
            return self._lookup(key)
        except ResolutionError as exc:
            logger.warning("Resolution lookup failed platform={} market_id={} error={}", key[0], key[1], exc)
            return exc
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected resolution lookup failure platform={} market_id={}", key[0], key[1])
            return exc

    def _lookup(self, key: _LookupKey) -> ResolutionRecord:
        now = self._monotonic()
        with self._lookup_lock:
            cached = self._lookup_cache.get(key)
            if cached is not None and cached.expires_at > now:
                return cached.record

        platform, market_id = key
        resolver = self._resolvers.get(platform)
        if resolver is None:
            raise ResolutionError(f"No resolver registered for platform '{platform}'")
        record = resolver.get_resolution(market_id)

        ttl = self.settings.resolution_lookup_cache_seconds
        if ttl > 0:
            with self._lookup_lock:
                self._lookup_cache[key] = _CachedLookup(record=record, expires_at=self._monotonic() + ttl)
        return record

    def _apply(
        self,
        signal: Signal,
        lookups: Mapping[_LookupKey, ResolutionRecord | Exception],
    ) -> ResolutionResult:
        if signal.is_resolved:
            return ResolutionResult(
                signal_id=signal.id,
                status=ResolutionStatus.RESOLVED,
                outcome=signal.outcome,
                resolved_at=signal.resolved_at,
            )

        lookup = lookups.get((platform_for(signal), signal.event_id))
        if isinstance(lookup, Exception) or lookup is None:
            return ResolutionResult(
                signal_id=signal.id,
                status=ResolutionStatus.ERROR,
                error=str(lookup) if lookup is not None else "resolution data unavailable",
            )

        if not lookup.resolved or lookup.outcome is None:
            return ResolutionResult(signal_id=signal.id, status=ResolutionStatus.PENDING)

        outcome = SignalOutcome.WIN if lookup.outcome is signal.implied_outcome else SignalOutcome.LOSS
        resolved_at = lookup.resolved_at or int(self._clock().timestamp())
        if self.store.set_outcome(signal.id, outcome, resolved_at):
            logger.info(
                "Signal resolved id={} event_id={} implied={} market={} outcome={}",
                signal.id,
                signal.event_id,
                signal.implied_outcome.value,
                lookup.outcome.value,
                outcome.value,
            )
            return ResolutionResult(
                signal_id=signal.id,
                status=ResolutionStatus.RESOLVED,
                outcome=outcome,
                resolved_at=resolved_at,
            )

        # Another sweep settled the row first; report what the store holds.
        current = self.store.get(signal.id)
        if current is not None and current.is_resolved:
            return ResolutionResult(
                signal_id=signal.id,
                status=ResolutionStatus.RESOLVED,
                outcome=current.outcome,
                resolved_at=current.resolved_at,
            )
        return ResolutionResult(
            signal_id=signal.id,
            status=ResolutionStatus.ERROR,
            error=f"signal {signal.id} not found",
        )


def _chunked(items: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    if size <= 0:
        yield items
        return
    for index in range(0, len(items), size):
        yield items[index : index + size]


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Settle PENDING signals against their markets' resolution state",
    )
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of signals to check")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Override the number of signals resolved per batch",
    )
    parser.add_argument(
        "--event-id",
        dest="event_ids",
        action="append",
        help="Restrict the sweep to specific event IDs (can be provided multiple times)",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args(argv)


def _write_summary(summary: ResolutionSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summary.to_dict(), default=str, indent=2))
    logger.info("Resolution summary written to {}", path)


def main(argv: Sequence[str] | None = None) -> ResolutionSummary:
    args = _parse_args(argv)
    settings = get_settings()
    init_db()
    with session_scope() as session:
        engine = ResolutionEngine(SignalRepository(session), settings)
        summary = engine.resolve_pending(
            limit=args.limit,
            batch_size=args.batch_size,
            event_ids=args.event_ids,
        )

    if args.summary_path:
        _write_summary(summary, args.summary_path)
    return summary


if __name__ == "__main__":
    main()
