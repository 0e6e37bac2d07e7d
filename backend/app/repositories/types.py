"""Shared repository contracts."""

from __future__ import annotations

from typing import Protocol

from app.domain import Signal, SignalOutcome


class SignalStore(Protocol):
    """Persistence contract consumed by the resolution engine and reputation service."""

    def insert(self, signal: Signal) -> Signal:
        ...

    def get(self, signal_id: str) -> Signal | None:
        ...

    def get_by_author(self, address: str) -> list[Signal]:
        ...

    def get_by_event(self, event_id: str) -> list[Signal]:
        ...

    def get_pending(self, limit: int | None = None, *, event_id: str | None = None) -> list[Signal]:
        ...

    def get_resolved_by_author(self, address: str) -> list[Signal]:
        ...

    def list_authors(self) -> list[str]:
        ...

    def set_outcome(self, signal_id: str, outcome: SignalOutcome, resolved_at: int) -> bool:
        ...


__all__ = ["SignalStore"]
