"""Typed domain representations shared by analyzers, persistence, and APIs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from dateutil import parser as date_parser


class Confidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def coerce(cls, value: Any) -> "Confidence":
        return _coerce_enum(cls, value, cls.UNKNOWN)


class OddsEfficiency(str, Enum):
    EFFICIENT = "EFFICIENT"
    INEFFICIENT = "INEFFICIENT"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def coerce(cls, value: Any) -> "OddsEfficiency":
        return _coerce_enum(cls, value, cls.UNKNOWN)


class Impact(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def coerce(cls, value: Any) -> "Impact":
        return _coerce_enum(cls, value, cls.UNKNOWN)


class AnalysisMode(str, Enum):
    BASIC = "basic"
    DEEP = "deep"

    @classmethod
    def coerce(cls, value: Any, default: "AnalysisMode | None" = None) -> "AnalysisMode":
        fallback = default or cls.BASIC
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().lower() in {"basic", "deep"}:
            return cls(value.strip().lower())
        return fallback


class MarketOutcome(str, Enum):
    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, value: Any) -> "MarketOutcome | None":
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if isinstance(value, (int, float)):
            if value == 1:
                return cls.YES
            if value == 0:
                return cls.NO
            return None
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized in {"YES", "Y", "TRUE", "1"}:
                return cls.YES
            if normalized in {"NO", "N", "FALSE", "0"}:
                return cls.NO
        return None


class SignalOutcome(str, Enum):
    """Canonical persisted outcome of a signal.

    Legacy rows use ``YES``/``CORRECT`` and ``NO``/``INCORRECT``; those are
    mapped onto ``WIN``/``LOSS`` when read so the rest of the system only ever
    sees the canonical vocabulary.
    """

    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"

    @property
    def is_terminal(self) -> bool:
        return self is not SignalOutcome.PENDING

    @classmethod
    def coerce(cls, value: Any) -> "SignalOutcome":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized in {"WIN", "CORRECT", "YES"}:
                return cls.WIN
            if normalized in {"LOSS", "INCORRECT", "NO"}:
                return cls.LOSS
        return cls.PENDING


class ResolutionStatus(str, Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    ERROR = "ERROR"


def _coerce_enum(enum_cls, value: Any, default):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        candidate = value.strip().upper()
        try:
            return enum_cls(candidate)
        except ValueError:
            return default
    return default


def parse_event_date(value: Any) -> datetime | None:
    """Parse ISO strings, epoch seconds/milliseconds, or datetimes into UTC."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
        if seconds > 1e12:
            seconds /= 1000.0
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, TypeError):
        try:
            parsed = date_parser.parse(str(value))
        except (ValueError, TypeError, OverflowError):
            return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _clean_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_odds(value: Any, default: float = 0.5) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    return parsed


@dataclass(slots=True)
class Odds:
    yes: float = 0.5
    no: float = 0.5

    @classmethod
    def from_value(cls, value: Any) -> "Odds":
        if isinstance(value, Odds):
            return value
        if isinstance(value, Mapping):
            return cls(
                yes=_parse_odds(value.get("yes")),
                no=_parse_odds(value.get("no")),
            )
        return cls()

    @property
    def favored(self) -> MarketOutcome:
        return MarketOutcome.YES if self.yes >= self.no else MarketOutcome.NO


@dataclass(slots=True)
class Context:
    """Ephemeral analysis input describing one market/event."""

    event_id: str | None
    title: str | None
    location: str | None = None
    venue: str | None = None
    current_odds: Odds = field(default_factory=Odds)
    event_date: datetime | None = None
    tags: list[str] = field(default_factory=list)
    teams: list[str] = field(default_factory=list)
    description: str | None = None
    event_location: str | None = None
    event_type: str | None = None
    platform: str | None = None
    mode: AnalysisMode | None = None
    author_address: str | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Context":
        raw_tags = payload.get("tags") or []
        tags: list[str] = []
        for tag in raw_tags if isinstance(raw_tags, (list, tuple)) else []:
            if isinstance(tag, Mapping):
                label = tag.get("label") or tag.get("name")
            else:
                label = tag
            cleaned = _clean_str(label)
            if cleaned:
                tags.append(cleaned)
        raw_teams = payload.get("teams") or []
        teams = [
            cleaned
            for cleaned in (
                _clean_str(team)
                for team in (raw_teams if isinstance(raw_teams, (list, tuple)) else [])
            )
            if cleaned
        ]
        raw_mode = payload.get("mode")
        return cls(
            event_id=_clean_str(
                payload.get("event_id")
                or payload.get("eventId")
                or payload.get("marketID")
                or payload.get("market_id")
            ),
            title=_clean_str(payload.get("title") or payload.get("market_title")),
            location=_clean_str(payload.get("location")),
            venue=_clean_str(payload.get("venue")),
            current_odds=Odds.from_value(
                payload.get("current_odds") or payload.get("currentOdds")
            ),
            event_date=parse_event_date(
                payload.get("event_date")
                or payload.get("eventDate")
                or payload.get("resolution_date")
                or payload.get("resolutionDate")
            ),
            tags=tags,
            teams=teams,
            description=_clean_str(payload.get("description")),
            event_location=_clean_str(
                payload.get("event_location") or payload.get("eventLocation")
            ),
            event_type=_clean_str(payload.get("event_type") or payload.get("eventType")),
            platform=_clean_str(payload.get("platform")),
            mode=AnalysisMode.coerce(raw_mode) if raw_mode else None,
            author_address=_clean_str(
                payload.get("author_address") or payload.get("authorAddress")
            ),
        )

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-friendly view used for content hashing."""

        return {
            "event_id": self.event_id,
            "title": self.title,
            "location": self.location,
            "venue": self.venue,
            "current_odds": {"yes": self.current_odds.yes, "no": self.current_odds.no},
            "event_date": self.event_date.isoformat() if self.event_date else None,
            "tags": list(self.tags),
            "teams": list(self.teams),
            "description": self.description,
            "event_location": self.event_location,
            "platform": self.platform,
            "mode": self.mode.value if self.mode else None,
        }


@dataclass(slots=True)
class EnrichedContext:
    """Context plus the domain payload fetched for it."""

    context: Context
    domain: str
    payload: dict[str, Any]
    domain_hash: str
    location: str | None = None
    venue: str | None = None
    degraded_reason: str | None = None

    @property
    def is_degraded(self) -> bool:
        return self.degraded_reason is not None

    @property
    def place(self) -> str:
        return self.venue or self.location or "Global"

    def snapshot(self) -> dict[str, Any]:
        return {
            "context": self.context.snapshot(),
            "domain": self.domain,
            "payload": self.payload,
            "domain_hash": self.domain_hash,
            "location": self.location,
            "venue": self.venue,
        }


@dataclass(slots=True)
class Citation:
    title: str
    url: str
    snippet: str = ""


@dataclass(slots=True)
class Assessment:
    """Provider response coerced to the fixed analysis shape."""

    impact: Impact = Impact.UNKNOWN
    odds_efficiency: OddsEfficiency = OddsEfficiency.UNKNOWN
    confidence: Confidence = Confidence.UNKNOWN
    analysis: str = ""
    key_factors: list[str] = field(default_factory=list)
    recommended_action: str = ""
    citations: list[Citation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "impact": self.impact.value,
            "odds_efficiency": self.odds_efficiency.value,
            "confidence": self.confidence.value,
            "analysis": self.analysis,
            "key_factors": list(self.key_factors),
            "recommended_action": self.recommended_action,
            "citations": [asdict(citation) for citation in self.citations],
        }


@dataclass(slots=True)
class AnalysisResult:
    assessment: Assessment
    cached: bool = False
    source: str = "provider"
    cache_key: str | None = None


@dataclass(slots=True)
class Signal:
    """Persisted, scored prediction tied to the context it was computed over."""

    id: str
    event_id: str
    market_title: str
    venue: str
    event_time: int
    market_snapshot_hash: str
    domain_hash: str
    domain: str
    ai_digest: str
    confidence: Confidence
    odds_efficiency: OddsEfficiency
    timestamp: int
    impact: Impact = Impact.UNKNOWN
    key_factors: list[str] = field(default_factory=list)
    recommended_action: str = ""
    citations: list[Citation] = field(default_factory=list)
    implied_outcome: MarketOutcome = MarketOutcome.YES
    author_address: str | None = None
    outcome: SignalOutcome = SignalOutcome.PENDING
    resolved_at: int | None = None
    platform: str | None = None
    cached: bool = False
    source: str = "provider"
    total_tips: float = 0.0

    @property
    def is_resolved(self) -> bool:
        return self.outcome.is_terminal

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_id": self.event_id,
            "market_title": self.market_title,
            "venue": self.venue,
            "event_time": self.event_time,
            "market_snapshot_hash": self.market_snapshot_hash,
            "domain_hash": self.domain_hash,
            "domain": self.domain,
            "ai_digest": self.ai_digest,
            "confidence": self.confidence.value,
            "odds_efficiency": self.odds_efficiency.value,
            "impact": self.impact.value,
            "key_factors": list(self.key_factors),
            "recommended_action": self.recommended_action,
            "citations": [asdict(citation) for citation in self.citations],
            "implied_outcome": self.implied_outcome.value,
            "author_address": self.author_address,
            "timestamp": self.timestamp,
            "outcome": self.outcome.value,
            "resolved_at": self.resolved_at,
            "platform": self.platform,
            "cached": self.cached,
            "source": self.source,
            "total_tips": self.total_tips,
        }


@dataclass(slots=True)
class ResolutionRecord:
    """Settlement state of a market as reported by its platform."""

    market_id: str
    platform: str
    resolved: bool
    outcome: MarketOutcome | None = None
    resolved_at: int | None = None
    raw_data: dict[str, Any] | None = None


@dataclass(slots=True)
class ResolutionResult:
    signal_id: str
    status: ResolutionStatus
    outcome: SignalOutcome | None = None
    resolved_at: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "signal_id": self.signal_id,
            "status": self.status.value,
            "outcome": self.outcome.value if self.outcome else None,
            "resolved_at": self.resolved_at,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class Tier:
    name: str
    emoji: str
    color: str


@dataclass(slots=True)
class MarketBucket:
    confidence: str
    win_rate: float
    market: str | None


@dataclass(slots=True)
class ReputationStats:
    user_address: str | None
    total_predictions: int = 0
    total_resolved: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    accuracy_percent: float = 0.0
    streak: int = 0
    longest_win_streak: int = 0
    calibration_score: float = 0.0
    tier: Tier = Tier(name="Novice", emoji="\U0001F331", color="silver")
    best_market: MarketBucket | None = None
    worst_market: MarketBucket | None = None
    recent_predictions: list[Signal] = field(default_factory=list)
    total_tips_received: float = 0.0
    total_earnings: float = 0.0
