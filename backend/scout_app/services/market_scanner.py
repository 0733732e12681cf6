"""Market scanner: bulk signal passes and per-tick processing.

The bulk pass fetches candles for the universe, evaluates every symbol in
a worker thread and registers the best signals with the tracker. Tick
processing advances tracked signals and runs alert detection.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime
from typing import Awaitable, Callable, Sequence

from scout_core.alerts import AlertDetector
from scout_core.errors import DataSourceFailure, MalformedInput
from scout_core.models import Candle, MarketAlert, MarketContext, Signal, Ticker
from scout_core.signal_generator import SignalGenerator
from scout_app.clients.protocol import CandleSource
from scout_app.services.learning_store import LearningModelStore
from scout_app.services.signal_tracker import SignalTracker

logger = logging.getLogger(__name__)

SignalCallback = Callable[[Signal], Awaitable[None]]
AlertCallback = Callable[[MarketAlert], Awaitable[None]]

RECENT_CANDLES_KEPT = 4


class MarketScanner:
    """
    Run bulk passes and process ticker updates.

    Failures are isolated per symbol: a failed fetch, malformed series or
    timeout is logged and the symbol is skipped for this pass.
    """

    def __init__(
        self,
        source: CandleSource,
        generator: SignalGenerator,
        tracker: SignalTracker,
        learning_store: LearningModelStore | None = None,
        alert_detector: AlertDetector | None = None,
        interval: str = "15m",
        candle_limit: int = 100,
        symbols: Sequence[str] = (),
        min_volume_24h: float = 50_000_000,
        excluded_tokens: Sequence[str] = ("3L", "3S"),
        top_n: int = 10,
        fetch_timeout: float = 15.0,
        max_concurrent_fetches: int = 8,
        recent_alerts_limit: int = 100,
    ):
        self.source = source
        self.generator = generator
        self.tracker = tracker
        self.learning_store = learning_store or tracker.learning_store
        self.alert_detector = alert_detector or AlertDetector()
        self.interval = interval
        self.candle_limit = candle_limit
        self.symbols = list(symbols)
        self.min_volume_24h = min_volume_24h
        self.excluded_tokens = tuple(excluded_tokens)
        self.top_n = top_n
        self.fetch_timeout = fetch_timeout
        self.max_concurrent_fetches = max_concurrent_fetches

        self._recent_candles: dict[str, list[Candle]] = {}
        self._recent_alerts: deque[MarketAlert] = deque(maxlen=recent_alerts_limit)
        self._signal_callbacks: list[SignalCallback] = []
        self._alert_callbacks: list[AlertCallback] = []

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------

    def on_signal_created(self, callback: SignalCallback) -> None:
        """Register callback for newly registered signals.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._signal_callbacks:
            self._signal_callbacks.append(callback)

    def off_signal_created(self, callback: SignalCallback) -> None:
        if callback in self._signal_callbacks:
            self._signal_callbacks.remove(callback)

    def on_alert(self, callback: AlertCallback) -> None:
        """Register callback for market alerts.

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._alert_callbacks:
            self._alert_callbacks.append(callback)

    def off_alert(self, callback: AlertCallback) -> None:
        if callback in self._alert_callbacks:
            self._alert_callbacks.remove(callback)

    # -------------------------------------------------------------------------
    # Bulk pass
    # -------------------------------------------------------------------------

    def select_universe(self, tickers: Sequence[Ticker]) -> list[str]:
        """
        Symbols to evaluate this pass.

        Configured symbols win. Otherwise: 24h volume above the minimum,
        non-zero change, leveraged tokens excluded, highest volume first.
        """
        if self.symbols:
            return list(self.symbols)

        eligible = [
            t
            for t in tickers
            if t.volume > self.min_volume_24h
            and t.change_pct != 0
            and not any(token in t.symbol for token in self.excluded_tokens)
        ]
        eligible.sort(key=lambda t: t.volume, reverse=True)
        return [t.symbol for t in eligible]

    async def _evaluate_symbol(
        self,
        symbol: str,
        ticker: Ticker | None,
        weights: dict,
        semaphore: asyncio.Semaphore,
        now: datetime | None,
    ) -> Signal | None:
        try:
            async with semaphore:
                candles = await asyncio.wait_for(
                    self.source.fetch_candles(symbol, self.interval, self.candle_limit),
                    timeout=self.fetch_timeout,
                )
            context = MarketContext.from_ticker(ticker) if ticker else None
            result = await asyncio.to_thread(
                self.generator.evaluate_detailed,
                symbol,
                candles,
                None,
                context,
                weights,
                now,
            )
            # Only validated series reach the alert detector
            self._recent_candles[symbol] = candles[-RECENT_CANDLES_KEPT:]
        except asyncio.TimeoutError:
            logger.warning(f"{symbol}: candle fetch timed out after {self.fetch_timeout}s")
            return None
        except DataSourceFailure as e:
            logger.warning(f"{symbol}: data source failure: {e}")
            return None
        except MalformedInput as e:
            logger.warning(f"{symbol}: skipping malformed candles: {e}")
            return None
        except Exception as e:
            logger.error(f"{symbol}: evaluation failed: {e}", exc_info=True)
            return None

        if result.signal is None:
            logger.debug(f"{symbol}: no signal ({result.rejection.value})")
        return result.signal

    async def run_pass(self, now: datetime | None = None) -> list[Signal]:
        """
        Run one bulk signal pass.

        Args:
            now: Signal creation time override (default: candle close time)

        Returns:
            Signals registered with the tracker, highest confidence first
        """
        try:
            tickers = await asyncio.wait_for(
                self.source.fetch_tickers(), timeout=self.fetch_timeout
            )
        except (DataSourceFailure, asyncio.TimeoutError) as e:
            if not self.symbols:
                logger.error(f"Bulk pass aborted, ticker fetch failed: {e!r}")
                return []
            logger.warning(f"Ticker fetch failed, using candle-derived context: {e!r}")
            tickers = []

        by_symbol = {t.symbol: t for t in tickers}
        tracked = await self.tracker.tracked_symbols()
        universe = [s for s in self.select_universe(tickers) if s not in tracked]
        if not universe:
            logger.info("Bulk pass: no symbols to evaluate")
            return []

        weights = await self.learning_store.weights_snapshot()
        semaphore = asyncio.Semaphore(self.max_concurrent_fetches)
        results = await asyncio.gather(*(
            self._evaluate_symbol(symbol, by_symbol.get(symbol), weights, semaphore, now)
            for symbol in universe
        ))

        candidates = [s for s in results if s is not None]
        candidates.sort(key=lambda s: s.confidence, reverse=True)

        registered: list[Signal] = []
        for signal in candidates[: self.top_n]:
            if await self.tracker.start_tracking(signal):
                registered.append(signal)

        logger.info(
            f"Bulk pass: {len(universe)} symbols evaluated, "
            f"{len(candidates)} candidates, {len(registered)} registered"
        )

        for signal in registered:
            for callback in self._signal_callbacks:
                try:
                    await callback(signal)
                except Exception as e:
                    logger.error(f"Signal callback error: {e}")

        return registered

    # -------------------------------------------------------------------------
    # Tick feed
    # -------------------------------------------------------------------------

    async def process_ticker(self, ticker: Ticker) -> list[MarketAlert]:
        """
        Process one ticker update: advance tracked signals, detect alerts.

        Returns:
            Alerts raised by this update
        """
        await self.tracker.process_tick(ticker.symbol, ticker.last_price, ticker.timestamp)

        alerts = self.alert_detector.detect(
            ticker, self._recent_candles.get(ticker.symbol, ())
        )
        for alert in alerts:
            self._recent_alerts.append(alert)
            for callback in self._alert_callbacks:
                try:
                    await callback(alert)
                except Exception as e:
                    logger.error(f"Alert callback error: {e}")
        return alerts

    def get_recent_alerts(self, limit: int | None = None) -> list[MarketAlert]:
        """Most recent alerts, newest first."""
        alerts = list(reversed(self._recent_alerts))
        return alerts[:limit] if limit else alerts
