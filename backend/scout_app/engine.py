"""Signal engine: the bulk scan loop and the tick loop as two tasks."""

import asyncio
import logging

from scout_app.clients.protocol import CandleSource
from scout_app.services.market_scanner import MarketScanner

logger = logging.getLogger(__name__)


class SignalEngine:
    """
    Run the two independent cadences of the system.

    - scan loop: one bulk pass every ``scan_interval`` seconds
    - tick loop: every ticker update goes through the scanner's tick path

    A failure inside one iteration is logged and the loop continues.
    """

    def __init__(
        self,
        scanner: MarketScanner,
        source: CandleSource,
        scan_interval: float = 300.0,
        tick_poll_seconds: float = 5.0,
    ):
        self.scanner = scanner
        self.source = source
        self.scan_interval = scan_interval
        self.tick_poll_seconds = tick_poll_seconds
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def _scan_loop(self) -> None:
        while self._running:
            try:
                await self.scanner.run_pass()
                await self.scanner.tracker.check_timeouts()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Bulk pass failed: {e}", exc_info=True)
            await asyncio.sleep(self.scan_interval)

    async def _tick_loop(self) -> None:
        while self._running:
            try:
                async for ticker in self.source.stream_tickers(self.tick_poll_seconds):
                    if not self._running:
                        break
                    try:
                        await self.scanner.process_ticker(ticker)
                    except Exception as e:
                        logger.warning(f"Tick processing failed for {ticker.symbol}: {e}")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Ticker stream failed: {e}, restarting")
                await asyncio.sleep(self.tick_poll_seconds)

    async def start(self) -> None:
        """Start both loops."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._scan_loop(), name="scan-loop"),
            asyncio.create_task(self._tick_loop(), name="tick-loop"),
        ]
        logger.info(
            f"Signal engine started (scan every {self.scan_interval}s, "
            f"ticks every {self.tick_poll_seconds}s)"
        )

    async def stop(self) -> None:
        """Cancel both loops and wait for them to finish."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Signal engine stopped")
