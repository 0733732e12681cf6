"""REST API routes (read-only queries)."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from scout_core.models import (
    DashboardSummary,
    LearningModel,
    MarketAlert,
    Signal,
    StrategyStats,
)
from scout_app.services.learning_store import LearningModelStore
from scout_app.services.market_scanner import MarketScanner
from scout_app.services.signal_tracker import SignalTracker

logger = logging.getLogger(__name__)

router = APIRouter()


class SystemStatus(BaseModel):
    """System status response."""

    status: str
    version: str
    active_signals: int
    engine_running: bool


# Dependencies: services are attached to app.state at startup
def get_tracker(request: Request) -> SignalTracker:
    return request.app.state.tracker


def get_learning_store(request: Request) -> LearningModelStore:
    return request.app.state.learning_store


def get_scanner(request: Request) -> MarketScanner:
    return request.app.state.scanner


@router.get("/status", response_model=SystemStatus)
async def get_status(
    request: Request,
    tracker: SignalTracker = Depends(get_tracker),
):
    """Get system status."""
    engine = getattr(request.app.state, "engine", None)
    return SystemStatus(
        status="running",
        version="0.1.0",
        active_signals=tracker.active_count,
        engine_running=bool(engine and engine.is_running),
    )


@router.get("/signals", response_model=list[Signal])
async def get_signals(
    symbol: Optional[str] = Query(None, description="Filter by symbol"),
    tracker: SignalTracker = Depends(get_tracker),
):
    """Get active signals, highest confidence first."""
    return await tracker.get_active_signals(symbol=symbol)


@router.get("/signals/{signal_id}", response_model=Signal)
async def get_signal(
    signal_id: str,
    tracker: SignalTracker = Depends(get_tracker),
):
    """Get one active or closed signal."""
    signal = await tracker.get_signal(signal_id)
    if signal is None:
        raise HTTPException(status_code=404, detail=f"Signal {signal_id} not found")
    return signal


@router.get("/strategies/stats", response_model=dict[str, StrategyStats])
async def get_strategy_stats(tracker: SignalTracker = Depends(get_tracker)):
    """Per-strategy performance over closed signals."""
    return await tracker.get_strategy_stats()


@router.get("/dashboard", response_model=DashboardSummary)
async def get_dashboard(tracker: SignalTracker = Depends(get_tracker)):
    return await tracker.get_dashboard_summary()


@router.get("/learning", response_model=dict[str, LearningModel])
async def get_learning_models(
    store: LearningModelStore = Depends(get_learning_store),
):
    """Current per-strategy learning models."""
    return await store.get_models()


@router.get("/alerts", response_model=list[MarketAlert])
async def get_alerts(
    limit: int = Query(50, ge=1, le=1000, description="Maximum alerts to return"),
    scanner: MarketScanner = Depends(get_scanner),
):
    """Most recent market alerts, newest first."""
    return scanner.get_recent_alerts(limit=limit)
