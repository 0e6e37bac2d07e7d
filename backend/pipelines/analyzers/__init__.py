"""Domain analyzers turning market contexts into signals.

Concrete analyzers live in submodules and are looked up through
:mod:`pipelines.analyzers.registry`.
"""

from .errors import (
    CacheError,
    EnrichmentError,
    InvalidContext,
    ProviderError,
    ResolutionError,
    SignalEngineError,
    UnresolvableDomainInput,
)

__all__ = [
    "CacheError",
    "EnrichmentError",
    "InvalidContext",
    "ProviderError",
    "ResolutionError",
    "SignalEngineError",
    "UnresolvableDomainInput",
]
