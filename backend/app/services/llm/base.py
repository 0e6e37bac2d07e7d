"""Provider contracts for reasoning integrations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol, Sequence

from app.core.config import Settings

if TYPE_CHECKING:
    from .support import ReasoningRequest
else:  # pragma: no cover - runtime import cycle guard
    ReasoningRequest = Any  # type: ignore[assignment]


class ReasoningProvider(Protocol):
    """Interface implemented by provider adapters."""

    name: str
    require_api_key: bool

    def ensure_ready(self, *, settings: Settings, overrides: Mapping[str, Any]) -> None:
        """Validate credentials or raise :class:`ProviderError`."""

    def build_client(self, *, settings: Settings, overrides: Mapping[str, Any]) -> Any:
        """Return a provider client for the resolved settings."""

    def default_model(self, mode: str, *, settings: Settings) -> str | None:
        """Return provider fallback model for the analysis mode."""

    def default_request_options(
        self,
        mode: str,
        *,
        settings: Settings,
    ) -> Mapping[str, Any] | None:
        """Return provider-specific default request options."""

    def json_mode_kwargs(self) -> Mapping[str, Any]:
        """Return structured-output kwargs for the provider."""

    def invoke(
        self,
        request: ReasoningRequest,
        *,
        messages: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None,
    ) -> Any:
        """Execute the model call and return the raw response."""

    def extract_json(self, response: Any) -> Mapping[str, Any]:
        """Extract structured payload from provider response."""

    def usage_dict(self, response: Any) -> Mapping[str, Any] | None:
        """Return usage metadata from provider response."""


__all__ = ["ReasoningProvider"]
