"""Runtime registry for reasoning providers."""

from __future__ import annotations

from typing import Dict

from .base import ReasoningProvider


class UnknownReasoningProviderError(LookupError):
    """Raised when settings request an unregistered provider."""


_PROVIDERS: Dict[str, ReasoningProvider] = {}


def register_provider(provider: ReasoningProvider) -> None:
    """Register or replace a reasoning provider."""

    _PROVIDERS[provider.name.lower()] = provider


def get_provider(name: str) -> ReasoningProvider:
    """Return the provider registered under ``name``."""

    try:
        return _PROVIDERS[name.lower()]
    except KeyError as exc:
        raise UnknownReasoningProviderError(
            f"Reasoning provider '{name}' is not registered"
        ) from exc


def available_providers() -> tuple[str, ...]:
    """Return the tuple of registered provider names."""

    return tuple(sorted(_PROVIDERS))


# Register built-in providers at import time.
from .openai import OpenAIProvider  # noqa: E402  (lazy import for registration)
from .remote import RemoteProvider  # noqa: E402

register_provider(OpenAIProvider())
register_provider(RemoteProvider())


__all__ = [
    "UnknownReasoningProviderError",
    "available_providers",
    "get_provider",
    "register_provider",
]
