"""Shared fixtures: candle series and snapshots with known indicator outcomes."""

from datetime import datetime, timedelta, timezone

import pytest

from scout_core.models import (
    BollingerValues,
    Candle,
    Direction,
    IndicatorSnapshot,
    Interval,
    MacdValues,
    Signal,
    Targets,
    Trend,
)

START = datetime(2025, 1, 1, tzinfo=timezone.utc)


def make_candles(
    closes: list[float],
    volumes: list[float] | None = None,
    symbol: str = "BTC-USDT",
    spread: float = 0.5,
    start: datetime = START,
) -> list[Candle]:
    """Build 15m candles: open = previous close, wick of ``spread`` each side."""
    volumes = volumes or [1000.0] * len(closes)
    candles = []
    prev = closes[0]
    for i, (close, volume) in enumerate(zip(closes, volumes)):
        candles.append(
            Candle(
                symbol=symbol,
                interval=Interval.M15,
                open_time=start + timedelta(minutes=15 * i),
                open=prev,
                high=max(prev, close) + spread,
                low=min(prev, close) - spread,
                close=close,
                volume=volume,
            )
        )
        prev = close
    return candles


def long_scenario_closes() -> list[float]:
    """Decline 200 -> 160, then a rising zig-zag (-1, +2) up to 180."""
    closes = [200.0]
    for _ in range(40):
        closes.append(closes[-1] - 1)
    for i in range(40):
        closes.append(closes[-1] + (-1 if i % 2 == 0 else 2))
    return closes


def short_scenario_closes() -> list[float]:
    """Mirror of the long scenario: rally 100 -> 140, falling zig-zag down to 120."""
    closes = [100.0]
    for _ in range(40):
        closes.append(closes[-1] + 1)
    for i in range(40):
        closes.append(closes[-1] + (1 if i % 2 == 0 else -2))
    return closes


def burst_volumes(n: int) -> list[float]:
    """Flat volume with a 5x burst on the last candle."""
    return [1000.0] * (n - 1) + [5000.0]


def make_snapshot(**overrides) -> IndicatorSnapshot:
    """Neutral snapshot (casts no direction votes) with optional overrides."""
    values = dict(
        close=100.0,
        rsi=50.0,
        adx=20.0,
        aroon_oscillator=0.0,
        macd=MacdValues(macd=0.0, signal=0.0, histogram=0.0),
        bollinger=BollingerValues(
            upper=104.0, middle=100.0, lower=96.0, bandwidth=8.0, percent_b=0.5
        ),
        atr=1.0,
        volume_ratio=1.0,
        volatility=0.01,
        trend=Trend.SIDEWAYS,
        trend_strength=0.0,
    )
    values.update(overrides)
    return IndicatorSnapshot(**values)


def make_signal(
    symbol: str = "BTC-USDT",
    direction: Direction = Direction.LONG,
    entry_price: float = 100.0,
    strategy_name: str = "BREAKOUT",
    confidence: float = 75.0,
    created_at: datetime = START,
) -> Signal:
    """Build an ACTIVE signal with a 2% stop and a 2.5 ratio ladder."""
    sign = direction.sign
    risk = entry_price * 0.02
    return Signal(
        symbol=symbol,
        direction=direction,
        confidence=confidence,
        entry_price=entry_price,
        targets=Targets(
            tp1=entry_price + sign * 0.5 * risk * 2.5,
            tp2=entry_price + sign * 1.0 * risk * 2.5,
            tp3=entry_price + sign * 1.5 * risk * 2.5,
            stop_loss=entry_price - sign * risk,
        ),
        risk_reward=2.5,
        strategy_name=strategy_name,
        indicators_snapshot=make_snapshot(close=entry_price),
        created_at=created_at,
    )


@pytest.fixture
def long_candles() -> list[Candle]:
    closes = long_scenario_closes()
    return make_candles(closes, burst_volumes(len(closes)))


@pytest.fixture
def short_candles() -> list[Candle]:
    closes = short_scenario_closes()
    return make_candles(closes, burst_volumes(len(closes)))


@pytest.fixture
def flat_candles() -> list[Candle]:
    return make_candles([100.0] * 100, spread=0.0)
