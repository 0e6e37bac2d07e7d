from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


class OddsIn(BaseModel):
    yes: float = 0.5
    no: float = 0.5


class AnalyzeRequest(BaseModel):
    """Market context submitted for analysis; camelCase keys are accepted."""

    event_id: str | None = Field(default=None, validation_alias=AliasChoices("event_id", "eventId", "marketID"))
    title: str | None = None
    location: str | None = None
    venue: str | None = None
    current_odds: OddsIn | None = Field(
        default=None, validation_alias=AliasChoices("current_odds", "currentOdds")
    )
    event_date: str | int | float | None = Field(
        default=None, validation_alias=AliasChoices("event_date", "eventDate")
    )
    tags: list[Any] = Field(default_factory=list)
    teams: list[str] = Field(default_factory=list)
    description: str | None = None
    event_location: str | None = Field(
        default=None, validation_alias=AliasChoices("event_location", "eventLocation")
    )
    event_type: str | None = Field(default=None, validation_alias=AliasChoices("event_type", "eventType"))
    platform: str | None = None
    mode: str | None = None
    author_address: str | None = Field(
        default=None, validation_alias=AliasChoices("author_address", "authorAddress")
    )

    def to_context_mapping(self) -> dict[str, Any]:
        payload = self.model_dump(exclude_none=True)
        if self.current_odds is None:
            payload.pop("current_odds", None)
        return payload


class Citation(BaseModel):
    title: str
    url: str
    snippet: str = ""


class OddsImprovement(BaseModel):
    score: int
    label: str
    color: str


class SignalMetrics(BaseModel):
    quality: int
    quality_label: str
    odds_improvement: OddsImprovement | None = None
    has_outcome: bool = False


class Signal(BaseModel):
    id: str
    event_id: str
    market_title: str
    venue: str
    event_time: int
    market_snapshot_hash: str
    domain_hash: str
    domain: str
    ai_digest: str
    confidence: str
    odds_efficiency: str
    impact: str
    key_factors: list[str] = Field(default_factory=list)
    recommended_action: str = ""
    citations: list[Citation] = Field(default_factory=list)
    implied_outcome: str
    author_address: str | None = None
    timestamp: int
    outcome: str
    resolved_at: int | None = None
    platform: str | None = None
    cached: bool = False
    source: str = "provider"
    total_tips: float = 0.0
    metrics: SignalMetrics | None = None


class SignalList(BaseModel):
    total: int
    items: list[Signal]


class ResolveRequest(BaseModel):
    signal_id: str | None = None
    event_id: str | None = None


class ResolutionResult(BaseModel):
    signal_id: str
    status: str
    outcome: str | None = None
    resolved_at: int | None = None
    error: str | None = None


class ResolveResponse(BaseModel):
    resolved: int
    pending: int
    errors: int
    results: list[ResolutionResult]


class Tier(BaseModel):
    name: str
    emoji: str
    color: str


class MarketBucket(BaseModel):
    confidence: str
    win_rate: float
    market: str | None = None

    @field_validator("win_rate", mode="before")
    @classmethod
    def _round_rate(cls, value: Any) -> float:
        return round(float(value), 2)


class ReputationStats(BaseModel):
    user_address: str | None = None
    total_predictions: int = 0
    total_resolved: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    accuracy_percent: float = 0.0
    streak: int = 0
    longest_win_streak: int = 0
    calibration_score: float = 0.0
    tier: Tier
    best_market: MarketBucket | None = None
    worst_market: MarketBucket | None = None
    recent_predictions: list[Signal] = Field(default_factory=list)
    total_tips_received: float = 0.0
    total_earnings: float = 0.0
    prediction_history: list[Signal] | None = None
    rank: int | None = None
    total_ranked: int | None = None


class TipRequest(BaseModel):
    amount: int = Field(default=10_000_000, gt=0, description="Tip amount in base units")


class EntryFunctionPayload(BaseModel):
    function: str
    type_arguments: list[str] = Field(default_factory=list)
    function_arguments: list[Any]


class TipResponse(BaseModel):
    signal: Signal
    payload: EntryFunctionPayload


class CacheStatus(BaseModel):
    size: int
    max_entries: int
    ttl_seconds: dict[str, int]
    near_event_window_hours: float


class AnalysisStatus(BaseModel):
    available: bool
    provider: str
    model: str | None = None
    deep_model: str | None = None
    mode: str
    cache: CacheStatus
