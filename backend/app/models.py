from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignalRecord(Base):
    __tablename__ = "signals"
    __table_args__ = (
        Index("ix_signals_author_outcome", "author_address", "outcome"),
        Index("ix_signals_event_id", "event_id"),
        Index("ix_signals_outcome", "outcome"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(String(128), nullable=False)
    market_title: Mapped[str] = mapped_column(Text, nullable=False)
    venue: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    event_time: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    market_snapshot_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    domain_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    domain: Mapped[str] = mapped_column(String(32), nullable=False)
    ai_digest: Mapped[str] = mapped_column(Text, nullable=False, default="")
    confidence: Mapped[str] = mapped_column(String(16), nullable=False, default="UNKNOWN")
    odds_efficiency: Mapped[str] = mapped_column(String(16), nullable=False, default="UNKNOWN")
    impact: Mapped[str] = mapped_column(String(16), nullable=False, default="UNKNOWN")
    key_factors: Mapped[list | None] = mapped_column(JSON, nullable=True)
    recommended_action: Mapped[str | None] = mapped_column(Text, nullable=True)
    citations: Mapped[list | None] = mapped_column(JSON, nullable=True)
    implied_outcome: Mapped[str] = mapped_column(String(8), nullable=False, default="YES")
    author_address: Mapped[str | None] = mapped_column(String(128), nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    outcome: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING")
    resolved_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    platform: Mapped[str | None] = mapped_column(String(32), nullable=True)
    cached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="provider")
    total_tips: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )
