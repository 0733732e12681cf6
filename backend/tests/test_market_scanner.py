"""Tests for MarketScanner and SignalEngine."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from scout_core.errors import DataSourceFailure
from scout_core.models import (
    AlertType,
    Candle,
    Direction,
    SignalStatus,
    Strategy,
    StrategyConditions,
    Ticker,
)
from scout_core.signal_generator import SignalGenerator
from scout_app.clients import CandleSource
from scout_app.engine import SignalEngine
from scout_app.services import LearningModelStore, MarketScanner, SignalTracker

from conftest import (
    START,
    burst_volumes,
    long_scenario_closes,
    make_candles,
    make_signal,
    short_scenario_closes,
)


class FakeSource:
    """In-memory candle source."""

    def __init__(
        self,
        candles: dict[str, list[Candle]] | None = None,
        tickers: list[Ticker] | None = None,
        failing: set[str] | None = None,
        slow: set[str] | None = None,
    ):
        self.candles = candles or {}
        self.tickers = tickers or []
        self.failing = failing or set()
        self.slow = slow or set()
        self.ticker_failure: Exception | None = None
        self.candle_calls: list[str] = []

    async def fetch_candles(self, symbol, interval, limit):
        self.candle_calls.append(symbol)
        if symbol in self.failing:
            raise DataSourceFailure(f"{symbol} unavailable", symbol=symbol)
        if symbol in self.slow:
            await asyncio.sleep(1)
        return self.candles[symbol][-limit:]

    async def fetch_tickers(self):
        if self.ticker_failure is not None:
            raise self.ticker_failure
        return list(self.tickers)

    async def stream_tickers(self, poll_seconds):
        for ticker in self.tickers:
            yield ticker
        while True:
            await asyncio.sleep(poll_seconds)


def ticker(symbol: str, volume: float = 60_000_000, change: float = 5.0, price: float = 100.0):
    return Ticker(symbol=symbol, last_price=price, change_pct=change, volume=volume)


def long_series(symbol: str = "BTC-USDT") -> list[Candle]:
    closes = long_scenario_closes()
    return make_candles(closes, burst_volumes(len(closes)), symbol=symbol)


def short_series(symbol: str = "ETH-USDT") -> list[Candle]:
    closes = short_scenario_closes()
    return make_candles(closes, burst_volumes(len(closes)), symbol=symbol)


def flat_series(symbol: str) -> list[Candle]:
    return make_candles([100.0] * 100, symbol=symbol, spread=0.0)


VOLUME_STRATEGY = Strategy(
    name="VOLUME",
    conditions=StrategyConditions(volume_multiplier_min=1.5),
    tp_sl_ratio=2.0,
    base_confidence=70,
)


@pytest.fixture
def store():
    return LearningModelStore()


@pytest.fixture
def tracker(store):
    return SignalTracker(learning_store=store)


def make_scanner(source, tracker, generator=None, **kwargs) -> MarketScanner:
    return MarketScanner(
        source=source,
        generator=generator or SignalGenerator(),
        tracker=tracker,
        fetch_timeout=kwargs.pop("fetch_timeout", 5.0),
        **kwargs,
    )


class TestUniverse:
    def test_filters_and_orders_by_volume(self, tracker):
        scanner = make_scanner(FakeSource(), tracker)
        tickers = [
            ticker("BTC-USDT", volume=90_000_000),
            ticker("ETH-USDT", volume=120_000_000),
            ticker("DOGE-USDT", volume=10_000_000),
            ticker("XRP-USDT", change=0.0),
            ticker("BTC3L-USDT"),
            ticker("ETH3S-USDT"),
        ]

        assert scanner.select_universe(tickers) == ["ETH-USDT", "BTC-USDT"]

    def test_configured_symbols_win(self, tracker):
        scanner = make_scanner(FakeSource(), tracker, symbols=["SOL-USDT"])
        assert scanner.select_universe([ticker("BTC-USDT")]) == ["SOL-USDT"]

    def test_fake_source_satisfies_protocol(self):
        assert isinstance(FakeSource(), CandleSource)


class TestRunPass:
    @pytest.mark.asyncio
    async def test_registers_signal(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series(), "ADA-USDT": flat_series("ADA-USDT")},
            tickers=[ticker("BTC-USDT"), ticker("ADA-USDT")],
        )
        scanner = make_scanner(source, tracker)

        registered = await scanner.run_pass()

        assert [s.symbol for s in registered] == ["BTC-USDT"]
        signal = registered[0]
        assert signal.direction == Direction.LONG
        assert signal.volume_24h == 60_000_000
        assert signal.price_change_24h == 5.0
        assert tracker.active_count == 1

    @pytest.mark.asyncio
    async def test_tracked_symbols_skipped(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series()},
            tickers=[ticker("BTC-USDT")],
        )
        scanner = make_scanner(source, tracker)

        await scanner.run_pass()
        assert await scanner.run_pass() == []

        assert source.candle_calls == ["BTC-USDT"]
        assert tracker.active_count == 1

    @pytest.mark.asyncio
    async def test_failures_are_isolated(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series()},
            tickers=[ticker("BTC-USDT"), ticker("SOL-USDT"), ticker("AVAX-USDT")],
            failing={"SOL-USDT"},
        )
        source.candles["AVAX-USDT"] = long_series("AVAX-USDT")
        source.slow.add("AVAX-USDT")
        scanner = make_scanner(source, tracker, fetch_timeout=0.05)

        registered = await scanner.run_pass()

        assert [s.symbol for s in registered] == ["BTC-USDT"]

    @pytest.mark.asyncio
    async def test_malformed_candles_skipped(self, tracker):
        candles = long_series()
        source = FakeSource(
            candles={"BTC-USDT": [candles[1], candles[0]] + candles[2:]},
            tickers=[ticker("BTC-USDT")],
        )
        scanner = make_scanner(source, tracker)

        assert await scanner.run_pass() == []

    @pytest.mark.asyncio
    async def test_top_n(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series(), "ETH-USDT": short_series()},
            tickers=[ticker("BTC-USDT"), ticker("ETH-USDT")],
        )
        generator = SignalGenerator(strategies=[VOLUME_STRATEGY])
        scanner = make_scanner(source, tracker, generator=generator, top_n=1)

        registered = await scanner.run_pass()

        assert len(registered) == 1
        assert tracker.active_count == 1

    @pytest.mark.asyncio
    async def test_ranked_by_confidence(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series(), "ETH-USDT": short_series()},
            tickers=[ticker("BTC-USDT"), ticker("ETH-USDT")],
        )
        generator = SignalGenerator(strategies=[VOLUME_STRATEGY])
        scanner = make_scanner(source, tracker, generator=generator)

        registered = await scanner.run_pass()

        assert {s.symbol for s in registered} == {"BTC-USDT", "ETH-USDT"}
        confidences = [s.confidence for s in registered]
        assert confidences == sorted(confidences, reverse=True)

    @pytest.mark.asyncio
    async def test_ticker_failure_aborts_discovery(self, tracker):
        source = FakeSource(candles={"BTC-USDT": long_series()})
        source.ticker_failure = DataSourceFailure("allTickers down")
        scanner = make_scanner(source, tracker)

        assert await scanner.run_pass() == []
        assert source.candle_calls == []

    @pytest.mark.asyncio
    async def test_ticker_failure_with_configured_symbols(self, tracker):
        source = FakeSource(candles={"BTC-USDT": long_series()})
        source.ticker_failure = DataSourceFailure("allTickers down")
        scanner = make_scanner(source, tracker, symbols=["BTC-USDT"])

        registered = await scanner.run_pass()

        # Context falls back to the candles: 200 -> 180 over the window
        assert [s.symbol for s in registered] == ["BTC-USDT"]
        assert registered[0].price_change_24h == pytest.approx(-10.0)

    @pytest.mark.asyncio
    async def test_learning_weights_passed_to_generator(self, tracker, store):
        await store.record_outcome("BREAKOUT", True, START)
        source = FakeSource(
            candles={"BTC-USDT": long_series()},
            tickers=[ticker("BTC-USDT")],
        )
        generator = MagicMock(wraps=SignalGenerator())
        scanner = make_scanner(source, tracker, generator=generator)

        await scanner.run_pass()

        weights = generator.evaluate_detailed.call_args.args[4]
        assert set(weights) == {"BREAKOUT"}
        assert weights["BREAKOUT"].volume > 1.0

    @pytest.mark.asyncio
    async def test_signal_callbacks(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series()},
            tickers=[ticker("BTC-USDT")],
        )
        scanner = make_scanner(source, tracker)
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        callback = AsyncMock()
        scanner.on_signal_created(failing)
        scanner.on_signal_created(callback)

        registered = await scanner.run_pass()

        callback.assert_awaited_once_with(registered[0])


class TestProcessTicker:
    @pytest.mark.asyncio
    async def test_tick_advances_signal_and_raises_alerts(self, tracker):
        source = FakeSource(
            candles={"BTC-USDT": long_series()},
            tickers=[ticker("BTC-USDT")],
        )
        scanner = make_scanner(source, tracker)
        on_alert = AsyncMock()
        scanner.on_alert(on_alert)
        [signal] = await scanner.run_pass()

        tick = Ticker(
            symbol="BTC-USDT",
            last_price=191.0,
            change_pct=6.0,
            volume=60_000_000,
            timestamp=signal.created_at + timedelta(minutes=30),
        )
        alerts = await scanner.process_ticker(tick)

        assert {a.type for a in alerts} == {AlertType.PUMP, AlertType.BREAKOUT}
        assert on_alert.await_count == 2
        assert tracker.active_count == 0
        closed = await tracker.get_signal(signal.id)
        assert closed.status == SignalStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rejected_series_not_used_for_alerts(self, tracker):
        candles = long_series()
        candles[-2] = candles[-2].model_copy(update={"close": 0.0})
        source = FakeSource(
            candles={"BTC-USDT": candles},
            tickers=[ticker("BTC-USDT")],
        )
        scanner = make_scanner(source, tracker)

        assert await scanner.run_pass() == []

        alerts = await scanner.process_ticker(
            Ticker(symbol="BTC-USDT", last_price=181.0, change_pct=5.0, timestamp=START)
        )

        assert [a.type for a in alerts] == [AlertType.PUMP]
        assert alerts[0].reasons == ()

    @pytest.mark.asyncio
    async def test_ticks_processed_during_slow_pass(self, tracker):
        fetch_started = asyncio.Event()
        release = asyncio.Event()

        class BlockingSource(FakeSource):
            async def fetch_candles(self, symbol, interval, limit):
                fetch_started.set()
                await release.wait()
                return await super().fetch_candles(symbol, interval, limit)

        signal = make_signal()
        await tracker.start_tracking(signal)
        source = BlockingSource(
            candles={"ETH-USDT": short_series()},
            tickers=[ticker("ETH-USDT")],
        )
        generator = SignalGenerator(strategies=[VOLUME_STRATEGY])
        scanner = make_scanner(source, tracker, generator=generator)

        pass_task = asyncio.create_task(scanner.run_pass())
        await asyncio.wait_for(fetch_started.wait(), timeout=1)

        await asyncio.wait_for(
            scanner.process_ticker(
                Ticker(
                    symbol="BTC-USDT",
                    last_price=106.0,
                    change_pct=1.0,
                    timestamp=START + timedelta(minutes=5),
                )
            ),
            timeout=1,
        )

        assert not pass_task.done()
        closed = await tracker.get_signal(signal.id)
        assert closed.status == SignalStatus.COMPLETED

        release.set()
        registered = await pass_task
        assert [s.symbol for s in registered] == ["ETH-USDT"]

    @pytest.mark.asyncio
    async def test_recent_alerts_newest_first(self, tracker):
        scanner = make_scanner(FakeSource(), tracker)
        for i, symbol in enumerate(["A-USDT", "B-USDT", "C-USDT"]):
            await scanner.process_ticker(
                Ticker(
                    symbol=symbol,
                    last_price=100.0,
                    change_pct=5.0,
                    timestamp=START + timedelta(minutes=i),
                )
            )

        assert [a.symbol for a in scanner.get_recent_alerts()] == [
            "C-USDT",
            "B-USDT",
            "A-USDT",
        ]
        assert [a.symbol for a in scanner.get_recent_alerts(limit=1)] == ["C-USDT"]

    @pytest.mark.asyncio
    async def test_recent_alerts_bounded(self, tracker):
        scanner = make_scanner(FakeSource(), tracker, recent_alerts_limit=2)
        for i in range(5):
            await scanner.process_ticker(
                Ticker(symbol=f"S{i}-USDT", last_price=1.0, change_pct=-4.0, timestamp=START)
            )

        assert len(scanner.get_recent_alerts()) == 2


class TestSignalEngine:
    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        scanner = MagicMock()
        scanner.run_pass = AsyncMock(return_value=[])
        scanner.process_ticker = AsyncMock(return_value=[])
        scanner.tracker.check_timeouts = AsyncMock(return_value=[])
        source = FakeSource(tickers=[ticker("BTC-USDT"), ticker("ETH-USDT")])
        engine = SignalEngine(scanner, source, scan_interval=60, tick_poll_seconds=60)

        await engine.start()
        assert engine.is_running
        await asyncio.sleep(0.05)
        await engine.stop()

        assert not engine.is_running
        scanner.run_pass.assert_awaited_once()
        scanner.tracker.check_timeouts.assert_awaited_once()
        assert scanner.process_ticker.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_pass_keeps_running(self):
        scanner = MagicMock()
        scanner.run_pass = AsyncMock(side_effect=RuntimeError("boom"))
        scanner.process_ticker = AsyncMock(return_value=[])
        scanner.tracker.check_timeouts = AsyncMock(return_value=[])
        engine = SignalEngine(scanner, FakeSource(), scan_interval=0.01, tick_poll_seconds=60)

        await engine.start()
        await asyncio.sleep(0.1)
        await engine.stop()

        assert scanner.run_pass.await_count >= 2
