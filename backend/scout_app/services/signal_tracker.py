"""Signal tracker for monitoring active signals against live prices.

Owns the active signal table, one PerformanceRecord per active signal and
the closed history. Closed outcomes are folded into the learning store.
"""

import asyncio
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Awaitable, Callable

from scout_core.models import (
    CloseReason,
    DashboardSummary,
    PerformanceRecord,
    Signal,
    SignalStatus,
    StrategyStats,
    TrackerConfig,
)
from scout_core.stats import StrategyStatsCalculator
from scout_app.services.learning_store import LearningModelStore

logger = logging.getLogger(__name__)

# Type alias for update callback (receives a copy of the signal)
SignalCallback = Callable[[Signal], Awaitable[None]]

_CLOSE_STATUS = {
    CloseReason.TP3: SignalStatus.COMPLETED,
    CloseReason.STOP_LOSS: SignalStatus.STOPPED,
    CloseReason.TIMEOUT: SignalStatus.EXPIRED,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignalTracker:
    """
    Track active signals and advance their performance records per tick.

    This service:
    1. Registers new signals and opens a PerformanceRecord for each
    2. Advances records on every price tick (TP1/TP2/TP3/SL/timeout)
    3. Moves closed signals to the history exactly once
    4. Feeds closed outcomes to the learning store
    5. Notifies on_signal_updated callbacks outside the lock
    """

    def __init__(
        self,
        learning_store: LearningModelStore | None = None,
        config: TrackerConfig | None = None,
        history_limit: int = 1000,
    ):
        """
        Args:
            learning_store: Store receiving closed outcomes
            config: Outcome thresholds
            history_limit: Closed signals kept in memory (oldest dropped first)
        """
        self.learning_store = learning_store or LearningModelStore()
        self.config = config or TrackerConfig()
        self.stats_calculator = StrategyStatsCalculator()

        self._active: dict[str, Signal] = {}
        self._records: dict[str, PerformanceRecord] = {}
        self._by_symbol: dict[str, list[str]] = {}

        self._closed: deque[tuple[Signal, PerformanceRecord]] = deque(maxlen=history_limit)
        self._cancelled: deque[str] = deque(maxlen=history_limit)
        self._closed_ids: dict[str, Signal] = {}

        self._callbacks: list[SignalCallback] = []
        self._lock = asyncio.Lock()

    def on_signal_updated(self, callback: SignalCallback) -> None:
        """Register callback for signal updates (target hit, closed, cancelled).

        Note: Duplicate callbacks are ignored.
        """
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def off_signal_updated(self, callback: SignalCallback) -> None:
        """Unregister callback for signal updates."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def _notify(self, signals: list[Signal]) -> None:
        for signal in signals:
            for callback in self._callbacks:
                try:
                    await callback(signal)
                except Exception as e:
                    logger.error(f"Signal update callback error: {e}")

    async def start_tracking(self, signal: Signal, now: datetime | None = None) -> bool:
        """Add a new signal to track.

        Returns:
            False if a signal with the same id is already known
        """
        async with self._lock:
            if signal.id in self._active or signal.id in self._closed_ids:
                logger.debug(f"Signal {signal.id} already tracked, ignoring")
                return False

            tracked = signal.model_copy(deep=True)
            self._active[tracked.id] = tracked
            self._records[tracked.id] = PerformanceRecord.open(
                signal_id=tracked.id,
                symbol=tracked.symbol,
                strategy_name=tracked.strategy_name,
                direction=tracked.direction,
                price=tracked.entry_price,
                opened_at=now or tracked.created_at,
            )
            self._by_symbol.setdefault(tracked.symbol, []).append(tracked.id)

        logger.info(
            f"Tracking new signal: {signal.id} ({signal.symbol} "
            f"{signal.direction.value} {signal.strategy_name})"
        )
        return True

    def _close_locked(self, signal_id: str) -> tuple[Signal, PerformanceRecord]:
        """Move a signal from active to history. Caller holds the lock."""
        signal = self._active.pop(signal_id)
        record = self._records.pop(signal_id)
        ids = self._by_symbol.get(signal.symbol, [])
        if signal_id in ids:
            ids.remove(signal_id)
        if not ids:
            self._by_symbol.pop(signal.symbol, None)

        if len(self._closed) == self._closed.maxlen:
            dropped, _ = self._closed[0]
            self._closed_ids.pop(dropped.id, None)
        self._closed.append((signal, record))
        self._closed_ids[signal.id] = signal
        return signal, record

    def _advance_locked(
        self,
        signal_id: str,
        price: float,
        now: datetime,
    ) -> tuple[Signal | None, PerformanceRecord | None]:
        """Update one record. Returns (changed signal copy, closed record)."""
        record = self._records[signal_id]
        signal = self._active[signal_id]

        new_hits = record.update(price, now, self.config)
        if not new_hits and not record.is_closed:
            return None, None

        signal.hit_targets.extend(new_hits)
        if not record.is_closed:
            return signal.model_copy(deep=True), None

        signal.status = _CLOSE_STATUS[record.close_reason]
        signal.realized_pnl_pct = record.pnl_pct
        signal.closed_at = now
        self._close_locked(signal_id)
        return signal.model_copy(deep=True), record.model_copy(deep=True)

    async def _finish(
        self,
        changed: list[Signal],
        closed: list[PerformanceRecord],
        now: datetime,
    ) -> None:
        """Learning updates and callbacks, run outside the lock."""
        for record in closed:
            logger.info(
                f"Signal {record.signal_id} closed {record.close_reason.value}: "
                f"{record.symbol} {record.direction.value} "
                f"open={record.open_price} exit={record.current_price} "
                f"pnl={record.pnl_pct:.2f}%"
            )
            await self.learning_store.record_outcome(
                record.strategy_name, record.is_profit, now
            )
        await self._notify(changed)

    async def process_tick(
        self,
        symbol: str,
        price: float,
        now: datetime | None = None,
    ) -> list[Signal]:
        """
        Process a price tick and update the symbol's active signals.

        Args:
            symbol: Trading pair
            price: Latest traded price
            now: Tick time (default: current UTC time)

        Returns:
            Copies of signals that hit a target or closed on this tick
        """
        now = now or _utcnow()
        changed: list[Signal] = []
        closed: list[PerformanceRecord] = []

        async with self._lock:
            for signal_id in list(self._by_symbol.get(symbol, [])):
                signal, record = self._advance_locked(signal_id, price, now)
                if signal is not None:
                    changed.append(signal)
                if record is not None:
                    closed.append(record)

        await self._finish(changed, closed, now)
        return changed

    async def check_timeouts(self, now: datetime | None = None) -> list[Signal]:
        """Close records past the timeout using their last seen price.

        Covers symbols whose ticks stopped arriving.
        """
        now = now or _utcnow()
        changed: list[Signal] = []
        closed: list[PerformanceRecord] = []

        async with self._lock:
            for signal_id, record in list(self._records.items()):
                elapsed = (now - record.opened_at).total_seconds() / 60
                if elapsed < self.config.timeout_minutes:
                    continue
                signal, closed_record = self._advance_locked(
                    signal_id, record.current_price, now
                )
                if signal is not None:
                    changed.append(signal)
                if closed_record is not None:
                    closed.append(closed_record)

        await self._finish(changed, closed, now)
        return changed

    async def cancel_signal(self, signal_id: str, now: datetime | None = None) -> Signal | None:
        """Close a tracked signal as CANCELLED without a learning update.

        Returns:
            The cancelled signal, or None if it is not active
        """
        now = now or _utcnow()
        async with self._lock:
            if signal_id not in self._active:
                return None
            signal = self._active[signal_id]
            record = self._records[signal_id]
            signal.status = SignalStatus.CANCELLED
            signal.realized_pnl_pct = record.pnl_pct
            signal.closed_at = now
            # Cancelled records never reach the closed history used by stats
            self._active.pop(signal_id)
            self._records.pop(signal_id)
            ids = self._by_symbol.get(signal.symbol, [])
            if signal_id in ids:
                ids.remove(signal_id)
            if not ids:
                self._by_symbol.pop(signal.symbol, None)
            if len(self._cancelled) == self._cancelled.maxlen:
                self._closed_ids.pop(self._cancelled[0], None)
            self._cancelled.append(signal_id)
            self._closed_ids[signal_id] = signal
            cancelled = signal.model_copy(deep=True)

        logger.info(f"Signal {signal_id} cancelled ({cancelled.symbol})")
        await self._notify([cancelled])
        return cancelled

    async def get_active_signals(self, symbol: str | None = None) -> list[Signal]:
        """Copies of active signals, highest confidence first."""
        async with self._lock:
            if symbol:
                signals = [self._active[i] for i in self._by_symbol.get(symbol, [])]
            else:
                signals = list(self._active.values())
            copies = [s.model_copy(deep=True) for s in signals]
        copies.sort(key=lambda s: s.confidence, reverse=True)
        return copies

    async def get_signal(self, signal_id: str) -> Signal | None:
        """Copy of an active or closed signal."""
        async with self._lock:
            signal = self._active.get(signal_id) or self._closed_ids.get(signal_id)
            return signal.model_copy(deep=True) if signal else None

    async def get_record(self, signal_id: str) -> PerformanceRecord | None:
        async with self._lock:
            record = self._records.get(signal_id)
            if record is None:
                for signal, closed in self._closed:
                    if signal.id == signal_id:
                        record = closed
                        break
            return record.model_copy(deep=True) if record else None

    async def get_closed_records(self) -> list[PerformanceRecord]:
        async with self._lock:
            return [r.model_copy(deep=True) for _, r in self._closed]

    async def tracked_symbols(self) -> set[str]:
        async with self._lock:
            return set(self._by_symbol)

    async def get_strategy_stats(self) -> dict[str, StrategyStats]:
        """Per-strategy statistics over closed records."""
        records = await self.get_closed_records()
        return self.stats_calculator.calculate_all(records)

    async def get_dashboard_summary(self) -> DashboardSummary:
        async with self._lock:
            active_count = len(self._active)
        records = await self.get_closed_records()
        return self.stats_calculator.dashboard(active_count, records)

    @property
    def active_count(self) -> int:
        """Get total number of active signals."""
        return len(self._active)
