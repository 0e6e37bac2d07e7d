from __future__ import annotations

from dataclasses import asdict
from functools import lru_cache
from typing import Annotated, Any, Callable

from fastapi import Depends, FastAPI, HTTPException, Query
from loguru import logger

from pipelines.analyzers.errors import InvalidContext, UnresolvableDomainInput
from pipelines.analyzers.registry import UnknownAnalyzerError, get_analyzer
from pipelines.resolution_run import ResolutionEngine

from . import schemas
from .core.config import settings
from .db import get_db, init_db
from .domain import ReputationStats, ResolutionStatus, Signal
from .repositories import SignalRepository
from .services.analysis_executor import AnalysisExecutor
from .services.publish import build_publish_payload, build_tip_payload
from .services.reputation_service import ReputationService
from .services.signal_scoring import signal_metrics

app = FastAPI(title="SignalForge API", version="0.1.0", debug=settings.debug)

AnalyzerBuilder = Callable[[str], Any]


@app.on_event("startup")
def on_startup() -> None:
    """Initialize database connections when the API boots."""

    init_db()


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


@lru_cache
def _shared_executor() -> AnalysisExecutor:
    return AnalysisExecutor(settings)


def _analysis_executor() -> AnalysisExecutor:
    """Provide the process-wide analysis executor."""

    return _shared_executor()


def _analyzer_builder(executor: AnalysisExecutor = Depends(_analysis_executor)) -> AnalyzerBuilder:
    """Provide a factory that builds analyzers sharing one executor."""

    return lambda domain: get_analyzer(domain, settings=settings, executor=executor)


def _signal_repository(db=Depends(get_db)) -> SignalRepository:
    return SignalRepository(db)


def _resolution_engine(repository: SignalRepository = Depends(_signal_repository)) -> ResolutionEngine:
    return ResolutionEngine(repository, settings)


def _reputation_service(repository: SignalRepository = Depends(_signal_repository)) -> ReputationService:
    return ReputationService(repository)


def _signal_payload(signal: Signal) -> schemas.Signal:
    return schemas.Signal.model_validate({**signal.to_dict(), "metrics": signal_metrics(signal)})


def _stats_payload(stats: ReputationStats) -> schemas.ReputationStats:
    return schemas.ReputationStats(
        user_address=stats.user_address,
        total_predictions=stats.total_predictions,
        total_resolved=stats.total_resolved,
        wins=stats.wins,
        losses=stats.losses,
        win_rate=stats.win_rate,
        accuracy_percent=stats.accuracy_percent,
        streak=stats.streak,
        longest_win_streak=stats.longest_win_streak,
        calibration_score=stats.calibration_score,
        tier=schemas.Tier.model_validate(asdict(stats.tier)),
        best_market=schemas.MarketBucket.model_validate(asdict(stats.best_market)) if stats.best_market else None,
        worst_market=schemas.MarketBucket.model_validate(asdict(stats.worst_market)) if stats.worst_market else None,
        recent_predictions=[_signal_payload(signal) for signal in stats.recent_predictions],
        total_tips_received=stats.total_tips_received,
        total_earnings=stats.total_earnings,
    )


@app.post("/analyze/{domain}", response_model=schemas.Signal, tags=["analysis"])
def analyze(
    domain: str,
    request: schemas.AnalyzeRequest,
    build: AnalyzerBuilder = Depends(_analyzer_builder),
    repository: SignalRepository = Depends(_signal_repository),
):
    """Run the domain analyzer over a market context and persist the signal."""

    try:
        analyzer = build(domain)
    except UnknownAnalyzerError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    try:
        signal = analyzer.analyze(request.to_context_mapping())
    except InvalidContext as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UnresolvableDomainInput as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    stored = repository.insert(signal)
    repository.commit()
    return _signal_payload(stored)


@app.get("/analysis/status", response_model=schemas.AnalysisStatus, tags=["analysis"])
def analysis_status(executor: AnalysisExecutor = Depends(_analysis_executor)):
    """Report the configured reasoning provider and analysis cache state."""

    return executor.status()


@app.get("/signals", response_model=schemas.SignalList, tags=["signals"])
def list_signals(
    *,
    author: Annotated[str | None, Query(description="Author wallet address")] = None,
    event_id: Annotated[str | None, Query(description="Market event identifier")] = None,
    repository: SignalRepository = Depends(_signal_repository),
):
    """List signals for an author or an event."""

    if author:
        signals = repository.get_by_author(author)
    elif event_id:
        signals = repository.get_by_event(event_id)
    else:
        raise HTTPException(status_code=400, detail="author or event_id is required")
    items = [_signal_payload(signal) for signal in signals]
    return schemas.SignalList(total=len(items), items=items)


@app.post("/signals/resolve", response_model=schemas.ResolveResponse, tags=["signals"])
def resolve_signals(
    request: schemas.ResolveRequest,
    engine: ResolutionEngine = Depends(_resolution_engine),
    repository: SignalRepository = Depends(_signal_repository),
):
    """Settle one signal or every PENDING signal of an event."""

    if not request.signal_id and not request.event_id:
        raise HTTPException(status_code=400, detail="signal_id or event_id is required")
    if request.signal_id:
        signal = repository.get(request.signal_id)
        if signal is None:
            raise HTTPException(status_code=404, detail="Signal not found")
        results = [engine.resolve_signal(signal)]
    else:
        results = engine.resolve_event_signals(request.event_id)
    repository.commit()

    logger.info(
        "Resolve request signal_id={} event_id={} results={}",
        request.signal_id,
        request.event_id,
        len(results),
    )
    return schemas.ResolveResponse(
        resolved=sum(1 for result in results if result.status is ResolutionStatus.RESOLVED),
        pending=sum(1 for result in results if result.status is ResolutionStatus.PENDING),
        errors=sum(1 for result in results if result.status is ResolutionStatus.ERROR),
        results=[schemas.ResolutionResult.model_validate(result.to_dict()) for result in results],
    )


@app.get("/stats", response_model=schemas.ReputationStats, tags=["reputation"])
def user_stats(
    *,
    address: Annotated[str, Query(min_length=1, description="Author wallet address")],
    include_history: bool = False,
    include_ranking: bool = False,
    service: ReputationService = Depends(_reputation_service),
):
    """Return derived reputation for an author, optionally with history and rank."""

    payload = _stats_payload(service.get_user_stats(address))
    if include_history:
        payload.prediction_history = [
            _signal_payload(signal) for signal in service.get_prediction_history(address)
        ]
    if include_ranking:
        ranking = service.get_user_ranking(address)
        if ranking is not None:
            payload.rank = ranking.rank
            payload.total_ranked = ranking.total_ranked
    return payload


@app.get("/stats/recent-wins", response_model=schemas.SignalList, tags=["reputation"])
def recent_wins(
    *,
    address: Annotated[str, Query(min_length=1)],
    days: Annotated[int, Query(ge=1, le=365)] = 7,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    service: ReputationService = Depends(_reputation_service),
):
    """List an author's wins resolved within the last ``days`` days."""

    items = [_signal_payload(signal) for signal in service.get_recent_wins(address, days, limit)]
    return schemas.SignalList(total=len(items), items=items)


@app.post(
    "/signals/{signal_id}/publish-payload",
    response_model=schemas.EntryFunctionPayload,
    tags=["signals"],
)
def publish_payload(signal_id: str, repository: SignalRepository = Depends(_signal_repository)):
    """Build the on-chain ``publish_signal`` call for a stored signal."""

    signal = repository.get(signal_id)
    if signal is None:
        raise HTTPException(status_code=404, detail="Signal not found")
    return build_publish_payload(signal, settings).to_dict()


@app.post("/signals/{signal_id}/tips", response_model=schemas.TipResponse, tags=["signals"])
def tip_signal(
    signal_id: str,
    request: schemas.TipRequest,
    repository: SignalRepository = Depends(_signal_repository),
):
    """Record a tip against a signal and return the matching on-chain call."""

    existing = repository.get(signal_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Signal not found")
    if not existing.author_address:
        raise HTTPException(status_code=400, detail="Signal has no author to tip")

    updated = repository.add_tip(signal_id, request.amount)
    repository.commit()
    payload = build_tip_payload(existing.author_address, signal_id, request.amount, settings)
    return schemas.TipResponse(
        signal=_signal_payload(updated),
        payload=schemas.EntryFunctionPayload.model_validate(payload.to_dict()),
    )
