"""Named failures raised by the signal engine."""

from __future__ import annotations


class SignalEngineError(Exception):
    """Base class for signal engine failures."""


class InvalidContext(SignalEngineError):
    """Raised when a context is missing fields required before any external call."""

    def __init__(self, message: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.missing = missing


class UnresolvableDomainInput(SignalEngineError):
    """Raised when enrichment cannot derive the input its domain needs."""

    def __init__(self, domain: str, message: str) -> None:
        super().__init__(message)
        self.domain = domain


class ProviderError(SignalEngineError):
    """Raised by reasoning providers; recovered by the executor with a fallback."""


class ResolutionError(SignalEngineError):
    """Raised when a market resolution lookup fails."""


class CacheError(SignalEngineError):
    """Raised by the analysis cache; treated as a miss by callers."""


class EnrichmentError(SignalEngineError):
    """Raised by data sources when a fetch fails or times out."""


__all__ = [
    "CacheError",
    "EnrichmentError",
    "InvalidContext",
    "ProviderError",
    "ResolutionError",
    "SignalEngineError",
    "UnresolvableDomainInput",
]
