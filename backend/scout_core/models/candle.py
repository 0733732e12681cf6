"""Candle (OHLCV) and ticker data models."""

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Sequence

from pydantic import BaseModel, ConfigDict

from scout_core.errors import MalformedInput


class Interval(str, Enum):
    """Supported candle intervals."""

    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"

    @property
    def minutes(self) -> int:
        return INTERVAL_MINUTES[self.value]


INTERVAL_MINUTES = {
    "15m": 15,
    "1h": 60,
    "4h": 240,
    "1d": 1440,
}


class Candle(BaseModel):
    """One OHLCV bar for a fixed time interval."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    interval: Interval = Interval.M15
    open_time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    @property
    def is_bullish(self) -> bool:
        """Check if this is a bullish (green) candle."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Check if this is a bearish (red) candle."""
        return self.close < self.open

    @property
    def range_size(self) -> float:
        """Get the full range (high - low) of the candle."""
        return self.high - self.low

    @property
    def quote_volume(self) -> float:
        """Approximate traded value of the candle (close * volume)."""
        return self.close * self.volume


class Ticker(BaseModel):
    """One update from the live ticker stream."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    last_price: float
    change_pct: float = 0.0  # 24h change in percent
    volume: float = 0.0  # 24h traded value
    timestamp: datetime | None = None


class MarketContext(BaseModel):
    """Per-symbol market data used for strategy matching and confidence."""

    model_config = ConfigDict(frozen=True)

    volume_24h: float = 0.0
    price_change_pct: float = 0.0

    @classmethod
    def from_ticker(cls, ticker: Ticker) -> "MarketContext":
        return cls(volume_24h=ticker.volume, price_change_pct=ticker.change_pct)

    @classmethod
    def from_candles(cls, candles: Sequence[Candle]) -> "MarketContext":
        """Derive 24h volume and change from the trailing 24h of candles.

        When the window is shorter than 24h the whole window is used.
        """
        if not candles:
            return cls()

        last = candles[-1]
        cutoff = last.open_time - timedelta(hours=24)
        window = [c for c in candles if c.open_time > cutoff]
        reference = candles[0]
        for candle in candles:
            if candle.open_time <= cutoff:
                reference = candle
            else:
                break

        volume = sum(c.quote_volume for c in window)
        change = 0.0
        if reference.close > 0:
            change = (last.close - reference.close) / reference.close * 100
        return cls(volume_24h=volume, price_change_pct=change)


def validate_candles(candles: Sequence[Candle]) -> None:
    """Reject candle series that cannot be analysed.

    Raises:
        MalformedInput: On non-finite or non-positive prices, high < low,
            mixed symbols, or open times that are not strictly increasing.
    """
    prev: Candle | None = None
    for candle in candles:
        values = (candle.open, candle.high, candle.low, candle.close, candle.volume)
        if not all(math.isfinite(v) for v in values):
            raise MalformedInput(
                f"{candle.symbol}: non-finite value in candle at {candle.open_time}"
            )
        if min(candle.open, candle.high, candle.low, candle.close) <= 0:
            raise MalformedInput(
                f"{candle.symbol}: non-positive price in candle at {candle.open_time}"
            )
        if candle.volume < 0:
            raise MalformedInput(
                f"{candle.symbol}: negative volume at {candle.open_time}"
            )
        if candle.high < candle.low:
            raise MalformedInput(
                f"{candle.symbol}: high < low in candle at {candle.open_time}"
            )
        if prev is not None:
            if candle.symbol != prev.symbol:
                raise MalformedInput(
                    f"Mixed symbols in series: {prev.symbol}, {candle.symbol}"
                )
            if candle.open_time <= prev.open_time:
                raise MalformedInput(
                    f"{candle.symbol}: open times not strictly increasing "
                    f"({prev.open_time} -> {candle.open_time})"
                )
        prev = candle
