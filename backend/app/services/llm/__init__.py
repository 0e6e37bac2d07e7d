"""Reasoning provider registry used by the analysis executor."""

from .registry import (
    UnknownReasoningProviderError,
    available_providers,
    get_provider,
    register_provider,
)
from .base import ReasoningProvider
from .support import ReasoningRequest, resolve_reasoning_request

__all__ = [
    "ReasoningProvider",
    "ReasoningRequest",
    "UnknownReasoningProviderError",
    "available_providers",
    "get_provider",
    "register_provider",
    "resolve_reasoning_request",
]
