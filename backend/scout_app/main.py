"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from scout_core.models import MarketAlert, Signal
from scout_core.signal_generator import SignalGenerator
from scout_app.api import router
from scout_app.clients import CandleSource, KucoinRestClient
from scout_app.config import Settings, get_settings
from scout_app.engine import SignalEngine
from scout_app.services import LearningModelStore, MarketScanner, SignalTracker
from scout_app.strategy_config import load_strategy_config

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything the lifespan wires together."""
    source: CandleSource
    learning_store: LearningModelStore
    tracker: SignalTracker
    scanner: MarketScanner
    engine: SignalEngine


async def on_signal_created(signal: Signal) -> None:
    logger.info(
        f"NEW {signal.direction.value} {signal.symbol} [{signal.strategy_name}] "
        f"entry={signal.entry_price} conf={signal.confidence:.1f} "
        f"ai={signal.ai_score:.1f} {signal.market_sentiment.value}"
    )


async def on_signal_updated(signal: Signal) -> None:
    hits = ",".join(h.value for h in signal.hit_targets) or "-"
    logger.info(f"Signal {signal.id} {signal.symbol} {signal.status.value} hits={hits}")


async def on_alert(alert: MarketAlert) -> None:
    logger.debug(f"Alert {alert.type.value} {alert.symbol}: {alert.message}")


def build_services(
    settings: Settings,
    source: CandleSource | None = None,
) -> Services:
    """Create and wire the live services.

    Raises:
        ValueError: If the strategy file is invalid
    """
    strategy_path = Path(settings.strategies_file) if settings.strategies_file else None
    strategy_config = load_strategy_config(strategy_path)
    strategies = strategy_config.get_strategies()
    tracker_config = strategy_config.tracker
    if settings.tracking_timeout_minutes is not None:
        tracker_config = tracker_config.model_copy(
            update={"timeout_minutes": settings.tracking_timeout_minutes}
        )

    source = source or KucoinRestClient(
        base_url=settings.kucoin_base_url,
        timeout=settings.request_timeout,
        calls_per_minute=settings.calls_per_minute,
    )
    learning_store = LearningModelStore(s.name for s in strategies)
    tracker = SignalTracker(learning_store=learning_store, config=tracker_config)
    generator = SignalGenerator(
        config=strategy_config.generator,
        strategies=strategies,
    )
    scanner = MarketScanner(
        source=source,
        generator=generator,
        tracker=tracker,
        learning_store=learning_store,
        interval=settings.interval,
        candle_limit=settings.candle_limit,
        symbols=settings.symbols,
        min_volume_24h=settings.min_volume_24h,
        excluded_tokens=settings.excluded_tokens,
        top_n=settings.top_n_signals,
        fetch_timeout=settings.request_timeout,
        max_concurrent_fetches=settings.max_concurrent_fetches,
        recent_alerts_limit=settings.recent_alerts_limit,
    )
    engine = SignalEngine(
        scanner=scanner,
        source=source,
        scan_interval=settings.scan_interval_seconds,
        tick_poll_seconds=settings.tick_poll_seconds,
    )

    scanner.on_signal_created(on_signal_created)
    scanner.on_alert(on_alert)
    tracker.on_signal_updated(on_signal_updated)

    return Services(
        source=source,
        learning_store=learning_store,
        tracker=tracker,
        scanner=scanner,
        engine=engine,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())
    logger.info("Starting signal scout...")

    services = build_services(settings)
    app.state.learning_store = services.learning_store
    app.state.tracker = services.tracker
    app.state.scanner = services.scanner
    app.state.engine = services.engine

    await services.engine.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await services.engine.stop()
    close = getattr(services.source, "close", None)
    if close is not None:
        await close()
    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Signal Scout",
    description="Crypto technical-analysis signal scanner",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Signal Scout",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "scout_app.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
