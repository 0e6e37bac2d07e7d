"""Repository abstractions for database interactions."""

from .signal_repository import SignalRepository
from .types import SignalStore

__all__ = [
    "SignalRepository",
    "SignalStore",
]
