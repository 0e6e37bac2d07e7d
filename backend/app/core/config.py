from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ANALYSIS_MODES = {"basic", "deep"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    database_url: AnyUrl | str = Field(
        default="sqlite:///../data/signalforge.db",
        description="SQLAlchemy compatible database URL for the signal store",
    )

    reasoning_provider: str = Field(
        default="openai",
        description="Reasoning provider used for analysis (openai|remote)",
    )
    reasoning_api_key: str | None = Field(
        default=None,
        description="API key for the OpenAI-compatible reasoning endpoint",
    )
    reasoning_api_base: AnyUrl | str | None = Field(
        default="https://api.venice.ai/api/v1",
        description="Base URL of the OpenAI-compatible reasoning endpoint",
    )
    reasoning_model: str = Field(
        default="qwen3-235b",
        description="Model used for basic analysis",
    )
    reasoning_deep_model: str | None = Field(
        default=None,
        description="Optional model override for deep analysis mode",
    )
    reasoning_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    reasoning_max_tokens: int = Field(default=1000, ge=1)
    reasoning_timeout_seconds: float = Field(
        default=30.0,
        description="Per-call timeout applied to reasoning provider requests",
        gt=0,
    )
    remote_analysis_url: AnyUrl | str | None = Field(
        default=None,
        description="Endpoint used by the delegated (remote) reasoning provider",
    )
    provider_overrides: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-provider option overrides keyed by provider name",
    )

    analysis_mode: str = Field(
        default="basic",
        description="Default analysis mode (basic|deep)",
    )
    analysis_cache_basic_ttl_seconds: int = Field(default=1800, gt=0)
    analysis_cache_deep_ttl_seconds: int = Field(default=21600, gt=0)
    analysis_cache_near_event_ttl_seconds: int = Field(default=3600, gt=0)
    analysis_cache_near_event_window_hours: float = Field(default=24.0, gt=0)
    analysis_cache_max_entries: int = Field(
        default=500,
        description="Maximum number of cached assessments before oldest-first eviction",
        ge=1,
    )

    weather_api_base: AnyUrl = Field(
        default="https://api.weatherapi.com/v1",
        description="Base URL for the current-conditions weather API",
    )
    weather_api_key: str | None = Field(default=None)
    social_api_base: AnyUrl = Field(
        default="https://api.neynar.com/v2/farcaster",
        description="Base URL for the social feed search API",
    )
    social_api_key: str | None = Field(default=None)
    social_cast_limit: int = Field(default=15, ge=1, le=100)
    chain_rpc_url: AnyUrl = Field(
        default="https://mainnet.movementnetwork.xyz/v1",
        description="REST endpoint of the chain node used for network statistics",
    )
    chain_module_address: str = Field(
        default="0x1",
        description="Module address embedded in on-chain publish payloads",
    )
    enrichment_timeout_seconds: float = Field(default=10.0, gt=0)

    polymarket_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for Polymarket market lookups",
    )
    kalshi_base_url: AnyUrl = Field(
        default="https://api.elections.kalshi.com/trade-api/v2",
        description="Base URL for Kalshi market lookups",
    )
    resolution_lookup_cache_seconds: int = Field(
        default=900,
        description="How long a market resolution lookup is reused across signals",
        ge=0,
    )
    resolution_max_workers: int = Field(
        default=4,
        description="Maximum number of signals resolved in parallel during a sweep",
        ge=1,
    )
    resolution_batch_size: int = Field(default=50, ge=1)
    resolution_timeout_seconds: float = Field(default=10.0, gt=0)

    def provider_config(self, provider_name: str) -> dict[str, Any]:
        base = dict(self.provider_overrides.get("__default__", {}))
        specific = self.provider_overrides.get(provider_name.lower(), {})
        if specific:
            base.update(specific)
        return base

    @field_validator("analysis_mode")
    @classmethod
    def _validate_analysis_mode(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in _ANALYSIS_MODES:
            raise ValueError("analysis_mode must be one of: basic, deep")
        return normalized

    @field_validator("reasoning_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError("reasoning_provider must not be blank")
        return normalized

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_postgres_urls(cls, value: Any) -> Any:
        if value is None or not isinstance(value, str):
            return value
        if value.startswith("postgres://"):
            return "postgresql+psycopg://" + value[len("postgres://") :]
        return value

    @property
    def resolved_database_url(self) -> str:
        return str(self.database_url)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
