"""Signal persistence backed by SQLAlchemy."""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, distinct, select, update
from sqlalchemy.orm import Session

from app.domain import (
    Citation,
    Confidence,
    Impact,
    MarketOutcome,
    OddsEfficiency,
    Signal,
    SignalOutcome,
)
from app.models import SignalRecord, utcnow

_PENDING_VALUES = ("PENDING", "pending")


def _normalize_address(address: str | None) -> str | None:
    if address is None:
        return None
    cleaned = address.strip().lower()
    return cleaned or None


def _citations_from_json(value: Any) -> list[Citation]:
    citations: list[Citation] = []
    for item in value or []:
        if not isinstance(item, dict) or not item.get("url"):
            continue
        citations.append(
            Citation(
                title=str(item.get("title") or ""),
                url=str(item["url"]),
                snippet=str(item.get("snippet") or ""),
            )
        )
    return citations


def record_to_signal(record: SignalRecord) -> Signal:
    return Signal(
        id=record.id,
        event_id=record.event_id,
        market_title=record.market_title,
        venue=record.venue or "",
        event_time=int(record.event_time or 0),
        market_snapshot_hash=record.market_snapshot_hash,
        domain_hash=record.domain_hash,
        domain=record.domain,
        ai_digest=record.ai_digest or "",
        confidence=Confidence.coerce(record.confidence),
        odds_efficiency=OddsEfficiency.coerce(record.odds_efficiency),
        timestamp=int(record.timestamp),
        impact=Impact.coerce(record.impact),
        key_factors=[str(item) for item in (record.key_factors or [])],
        recommended_action=record.recommended_action or "",
        citations=_citations_from_json(record.citations),
        implied_outcome=MarketOutcome.parse(record.implied_outcome) or MarketOutcome.YES,
        author_address=record.author_address,
        outcome=SignalOutcome.coerce(record.outcome),
        resolved_at=record.resolved_at,
        platform=record.platform,
        cached=bool(record.cached),
        source=record.source or "provider",
        total_tips=float(record.total_tips or 0.0),
    )


class SignalRepository:
    """Encapsulate signal persistence and the PENDING-only outcome transition."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def commit(self) -> None:
        self._session.commit()

    # ------------------------------------------------------------------
    # Mutations

    def insert(self, signal: Signal) -> Signal:
        payload = signal.to_dict()
        payload["author_address"] = _normalize_address(signal.author_address)
        payload["outcome"] = SignalOutcome.PENDING.value
        payload["resolved_at"] = None
        record = SignalRecord(**payload)
        self._session.add(record)
        self._session.flush()
        return record_to_signal(record)

    def set_outcome(self, signal_id: str, outcome: SignalOutcome, resolved_at: int) -> bool:
        """Move a PENDING signal to a terminal outcome.

        Returns ``False`` when the row is missing or already terminal; the
        conditional update makes repeated sweeps idempotent.
        """

        if not outcome.is_terminal:
            raise ValueError("set_outcome requires a terminal outcome")
        statement = (
            update(SignalRecord)
            .where(SignalRecord.id == signal_id, SignalRecord.outcome.in_(_PENDING_VALUES))
            .values(outcome=outcome.value, resolved_at=int(resolved_at), updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(statement)
        return bool(result.rowcount)

    def add_tip(self, signal_id: str, amount: float) -> Signal | None:
        record = self._session.get(SignalRecord, signal_id)
        if record is None:
            return None
        record.total_tips = float(record.total_tips or 0.0) + float(amount)
        self._session.flush()
        return record_to_signal(record)

    # ------------------------------------------------------------------
    # Queries

    def get(self, signal_id: str) -> Signal | None:
        record = self._session.get(SignalRecord, signal_id)
        return record_to_signal(record) if record else None

    def get_by_author(self, address: str) -> list[Signal]:
        normalized = _normalize_address(address)
        query = (
            select(SignalRecord)
            .where(SignalRecord.author_address == normalized)
            .order_by(desc(SignalRecord.timestamp))
        )
        return [record_to_signal(record) for record in self._session.execute(query).scalars()]

    def get_by_event(self, event_id: str) -> list[Signal]:
        query = (
            select(SignalRecord)
            .where(SignalRecord.event_id == event_id)
            .order_by(desc(SignalRecord.timestamp))
        )
        return [record_to_signal(record) for record in self._session.execute(query).scalars()]

    def get_pending(self, limit: int | None = None, *, event_id: str | None = None) -> list[Signal]:
        query = select(SignalRecord).where(SignalRecord.outcome.in_(_PENDING_VALUES))
        if event_id is not None:
            query = query.where(SignalRecord.event_id == event_id)
        query = query.order_by(SignalRecord.timestamp)
        if limit is not None:
            query = query.limit(limit)
        return [record_to_signal(record) for record in self._session.execute(query).scalars()]

    def get_resolved_by_author(self, address: str) -> list[Signal]:
        normalized = _normalize_address(address)
        query = (
            select(SignalRecord)
            .where(
                SignalRecord.author_address == normalized,
                SignalRecord.outcome.not_in(_PENDING_VALUES),
            )
            .order_by(desc(SignalRecord.resolved_at))
        )
        return [record_to_signal(record) for record in self._session.execute(query).scalars()]

    def list_authors(self) -> list[str]:
        query = (
            select(distinct(SignalRecord.author_address))
            .where(SignalRecord.author_address.is_not(None))
            .order_by(SignalRecord.author_address)
        )
        return [address for address in self._session.execute(query).scalars() if address]


__all__ = ["SignalRepository", "record_to_signal"]
