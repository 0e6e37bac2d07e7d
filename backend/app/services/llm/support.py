"""Resolve runtime configuration for reasoning calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from loguru import logger

from app.core.config import Settings
from pipelines.analyzers.errors import ProviderError

from .base import ReasoningProvider
from .registry import get_provider


@dataclass(slots=True)
class ReasoningRequest:
    """Resolved runtime configuration for a single reasoning request."""

    client: Any
    model: str
    provider: str
    provider_impl: ReasoningProvider
    mode: str
    request_options: dict[str, Any] = field(default_factory=dict)
    overrides: Mapping[str, Any] = field(default_factory=dict)

    def merge_options(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        merged = dict(self.request_options)
        if extra:
            merged.update(extra)
        return merged

    def invoke(
        self,
        *,
        messages: Sequence[Mapping[str, Any]],
        options: Mapping[str, Any] | None = None,
    ) -> Any:
        logger.info(
            "Invoking reasoning call provider={} model={} mode={} messages={} option_keys={}",
            self.provider,
            self.model,
            self.mode,
            len(messages),
            sorted(options.keys()) if options else [],
        )
        try:
            response = self.provider_impl.invoke(self, messages=messages, options=options)
        except Exception:
            logger.exception(
                "Reasoning call failed provider={} model={} mode={}",
                self.provider,
                self.model,
                self.mode,
            )
            raise

        usage_summary: Mapping[str, Any] | None = None
        try:
            usage_summary = self.provider_impl.usage_dict(response)
        except Exception:  # noqa: BLE001
            logger.debug(
                "Failed to extract usage for reasoning call provider={} model={}",
                self.provider,
                self.model,
            )

        if usage_summary:
            logger.info(
                "Reasoning call completed provider={} model={} mode={} usage={}",
                self.provider,
                self.model,
                self.mode,
                usage_summary,
            )
        else:
            logger.info(
                "Reasoning call completed provider={} model={} mode={} (no usage reported)",
                self.provider,
                self.model,
                self.mode,
            )
        return response

    def extract_json(self, response: Any) -> Mapping[str, Any]:
        return self.provider_impl.extract_json(response)


def _resolve_model(
    *,
    mode: str,
    provider_name: str,
    provider: ReasoningProvider,
    overrides: Mapping[str, Any],
    settings: Settings,
) -> str:
    for key in (f"{mode}_model", "model", f"{provider_name}_model"):
        value = overrides.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    provider_default = provider.default_model(mode, settings=settings)
    if provider_default:
        return provider_default
    raise ProviderError(f"No model configured for reasoning provider '{provider_name}'")


def _merge_request_options(
    *,
    mode: str,
    overrides: Mapping[str, Any],
    provider: ReasoningProvider,
    settings: Settings,
) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    provider_defaults = provider.default_request_options(mode, settings=settings)
    if provider_defaults:
        merged.update(provider_defaults)
    mode_options = overrides.get(f"{mode}_request_options")
    if isinstance(mode_options, Mapping):
        merged.update(mode_options)
    generic = overrides.get("request_options")
    if isinstance(generic, Mapping):
        merged.update(generic)
    return merged


def resolve_reasoning_request(
    settings: Settings,
    mode: str,
    *,
    provider_name: str | None = None,
) -> ReasoningRequest:
    """Resolve provider, client, model and options for one analysis call.

    Raises :class:`ProviderError` when the provider is not configured and
    :class:`UnknownReasoningProviderError` when it is not registered.
    """

    name = (provider_name or settings.reasoning_provider).lower()
    overrides = settings.provider_config(name)
    provider_impl = get_provider(name)
    provider_impl.ensure_ready(settings=settings, overrides=overrides)

    client = overrides.get("client")
    if client is None:
        client = provider_impl.build_client(settings=settings, overrides=overrides)

    return ReasoningRequest(
        client=client,
        model=_resolve_model(
            mode=mode,
            provider_name=name,
            provider=provider_impl,
            overrides=overrides,
            settings=settings,
        ),
        provider=name,
        provider_impl=provider_impl,
        mode=mode,
        request_options=_merge_request_options(
            mode=mode,
            overrides=overrides,
            provider=provider_impl,
            settings=settings,
        ),
        overrides=overrides,
    )


__all__ = ["ReasoningRequest", "resolve_reasoning_request"]
