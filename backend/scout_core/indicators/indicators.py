"""Technical indicators for signal generation.

All functions are pure NumPy over ordered sequences (oldest first) and
return lists of the same length as the input, with NaN during warm-up:

- window indicators (SMA, EMA, Bollinger) are NaN for the first
  ``period - 1`` elements;
- price-difference indicators (RSI, ATR, ADX, Aroon) are NaN for the
  first ``period`` elements.
"""

import math
from typing import Sequence

import numpy as np

from scout_core.errors import InsufficientHistory
from scout_core.indicators.levels import find_levels
from scout_core.models.candle import Candle
from scout_core.models.indicators import (
    BollingerValues,
    IndicatorSnapshot,
    MacdValues,
    Trend,
)


def _to_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def _nan_list(n: int) -> list[float]:
    return [math.nan] * n


# =============================================================================
# Moving averages and smoothing
# =============================================================================

def sma(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Simple Moving Average.

    Args:
        values: Sequence of values
        period: SMA period

    Returns:
        List of SMA values (NaN for the first period - 1 values)
    """
    if len(values) < period:
        return _nan_list(len(values))

    arr = _to_array(values)
    result = np.empty_like(arr)
    result[:period - 1] = np.nan

    for i in range(period - 1, len(arr)):
        result[i] = np.mean(arr[i - period + 1 : i + 1])

    return result.tolist()


def ema(values: Sequence[float], period: int) -> list[float]:
    """
    Calculate Exponential Moving Average, seeded with the SMA of the
    first ``period`` values.

    Args:
        values: Sequence of values
        period: EMA period

    Returns:
        List of EMA values (NaN for the first period - 1 values)
    """
    if len(values) < period:
        return _nan_list(len(values))

    arr = _to_array(values)
    multiplier = 2.0 / (period + 1)

    result = np.empty_like(arr)
    result[:period - 1] = np.nan
    result[period - 1] = np.mean(arr[:period])

    for i in range(period, len(arr)):
        result[i] = arr[i] * multiplier + result[i - 1] * (1 - multiplier)

    return result.tolist()


def wilder_smooth(values: Sequence[float], period: int) -> list[float]:
    """
    Wilder's smoothing (RMA).

    Leading NaN values are skipped. The first output is the arithmetic mean
    of the first ``period`` finite samples, then
    ``avg = (avg * (period - 1) + value) / period``.

    Args:
        values: Sequence of values, optionally starting with NaN
        period: Smoothing period

    Returns:
        List of smoothed values
    """
    arr = _to_array(values)
    n = len(arr)
    result = np.full(n, np.nan)

    start = 0
    while start < n and np.isnan(arr[start]):
        start += 1
    if n - start < period:
        return result.tolist()

    seed_idx = start + period - 1
    result[seed_idx] = np.mean(arr[start : seed_idx + 1])
    for i in range(seed_idx + 1, n):
        result[i] = (result[i - 1] * (period - 1) + arr[i]) / period

    return result.tolist()


# =============================================================================
# Volatility
# =============================================================================

def true_range(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
) -> list[float]:
    """
    Calculate True Range.

    TR = max(high - low, abs(high - prev_close), abs(low - prev_close))

    The first element is NaN since it has no previous close.
    """
    n = len(highs)
    if n == 0:
        return []

    result = [math.nan]
    for i in range(1, n):
        hl = highs[i] - lows[i]
        hc = abs(highs[i] - closes[i - 1])
        lc = abs(lows[i] - closes[i - 1])
        result.append(max(hl, hc, lc))

    return result


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate Average True Range (Wilder's smoothing of true range).

    Args:
        highs: Sequence of high prices
        lows: Sequence of low prices
        closes: Sequence of close prices
        period: ATR period

    Returns:
        List of ATR values (NaN for the first period values)
    """
    return wilder_smooth(true_range(highs, lows, closes), period)


def bollinger_bands(
    closes: Sequence[float],
    period: int = 20,
    num_std: float = 2.0,
) -> tuple[list[float], list[float], list[float]]:
    """
    Calculate Bollinger Bands with population standard deviation.

    Returns:
        Tuple of (upper, middle, lower) lists
    """
    n = len(closes)
    upper = np.full(n, np.nan)
    middle = np.full(n, np.nan)
    lower = np.full(n, np.nan)
    if n < period:
        return upper.tolist(), middle.tolist(), lower.tolist()

    arr = _to_array(closes)
    for i in range(period - 1, n):
        window = arr[i - period + 1 : i + 1]
        mean = np.mean(window)
        std = np.std(window)
        middle[i] = mean
        upper[i] = mean + num_std * std
        lower[i] = mean - num_std * std

    return upper.tolist(), middle.tolist(), lower.tolist()


def band_metrics(
    close: float,
    upper: float,
    middle: float,
    lower: float,
) -> tuple[float, float]:
    """
    Bandwidth (percent of middle) and %B for one bar.

    %B is not clamped. Zero-width bands give (0.0, 0.5).
    """
    width = upper - lower
    if width <= 0:
        return 0.0, 0.5
    bandwidth = width / middle * 100 if middle else 0.0
    return bandwidth, (close - lower) / width


def volatility(closes: Sequence[float], period: int = 20) -> float:
    """Population std of simple returns over the trailing ``period`` closes."""
    if len(closes) < period:
        return 0.0

    recent = _to_array(closes[-period:])
    returns = np.diff(recent) / recent[:-1]
    if len(returns) == 0:
        return 0.0
    return float(np.std(returns))


# =============================================================================
# Momentum and trend
# =============================================================================

def rsi(closes: Sequence[float], period: int = 14) -> list[float]:
    """
    Calculate Relative Strength Index with Wilder averages.

    RSI is 100 whenever the average loss is exactly zero (including a flat
    series).

    Returns:
        List of RSI values (NaN for the first period values)
    """
    n = len(closes)
    if n < 2:
        return _nan_list(n)

    arr = _to_array(closes)
    changes = np.concatenate(([np.nan], np.diff(arr)))
    gains = np.where(np.isnan(changes), np.nan, np.maximum(changes, 0.0))
    losses = np.where(np.isnan(changes), np.nan, np.maximum(-changes, 0.0))

    avg_gain = wilder_smooth(gains, period)
    avg_loss = wilder_smooth(losses, period)

    result = []
    for g, l in zip(avg_gain, avg_loss):
        if math.isnan(g) or math.isnan(l):
            result.append(math.nan)
        elif l == 0:
            result.append(100.0)
        else:
            result.append(100.0 - 100.0 / (1.0 + g / l))
    return result


def _directional_movement(
    highs: Sequence[float],
    lows: Sequence[float],
) -> tuple[np.ndarray, np.ndarray]:
    h = _to_array(highs)
    l = _to_array(lows)
    plus_dm = np.full(len(h), np.nan)
    minus_dm = np.full(len(h), np.nan)

    for i in range(1, len(h)):
        up = h[i] - h[i - 1]
        down = l[i - 1] - l[i]
        plus_dm[i] = up if up > down and up > 0 else 0.0
        minus_dm[i] = down if down > up and down > 0 else 0.0

    return plus_dm, minus_dm


def adx(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate Average Directional Index.

    +DM/-DM and TR are Wilder-smoothed; DI = 100 * DM / TR (0 when TR is 0)
    and DX = |+DI - -DI| / (+DI + -DI) * 100 (0 when both DI are 0).
    Until ``period`` DX values exist, ADX is the running mean of the DX
    values so far; after that it is the Wilder average of DX.

    Returns:
        List of ADX values (NaN for the first period values)
    """
    n = len(highs)
    if n <= period:
        return _nan_list(n)

    plus_dm, minus_dm = _directional_movement(highs, lows)
    tr_s = wilder_smooth(true_range(highs, lows, closes), period)
    plus_s = wilder_smooth(plus_dm, period)
    minus_s = wilder_smooth(minus_dm, period)

    dx = np.full(n, np.nan)
    for i in range(period, n):
        if tr_s[i] == 0:
            plus_di = minus_di = 0.0
        else:
            plus_di = 100.0 * plus_s[i] / tr_s[i]
            minus_di = 100.0 * minus_s[i] / tr_s[i]
        di_sum = plus_di + minus_di
        dx[i] = 0.0 if di_sum == 0 else abs(plus_di - minus_di) / di_sum * 100.0

    result = np.full(n, np.nan)
    warmup_end = min(2 * period - 1, n - 1)
    for i in range(period, warmup_end + 1):
        result[i] = np.mean(dx[period : i + 1])
    for i in range(warmup_end + 1, n):
        result[i] = (result[i - 1] * (period - 1) + dx[i]) / period

    return result.tolist()


def aroon_oscillator(
    highs: Sequence[float],
    lows: Sequence[float],
    period: int = 14,
) -> list[float]:
    """
    Calculate the Aroon oscillator (Aroon up - Aroon down).

    Over the trailing ``period + 1`` candles,
    ``aroon_up = 100 * (period - periods_since_highest_high) / period``.
    Periods are counted back from the most recent candle; when the extreme
    occurs more than once, the most recent occurrence wins.

    Returns:
        List of oscillator values in [-100, 100] (NaN for the first period values)
    """
    n = len(highs)
    result = np.full(n, np.nan)
    h = _to_array(highs)
    l = _to_array(lows)

    for i in range(period, n):
        high_window = h[i - period : i + 1][::-1]
        low_window = l[i - period : i + 1][::-1]
        since_high = int(np.argmax(high_window))
        since_low = int(np.argmin(low_window))
        up = 100.0 * (period - since_high) / period
        down = 100.0 * (period - since_low) / period
        result[i] = up - down

    return result.tolist()


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> tuple[list[float], list[float], list[float]]:
    """
    Calculate MACD.

    MACD line = EMA(fast) - EMA(slow); signal = EMA(signal) of the MACD
    line; histogram = MACD - signal.

    Returns:
        Tuple of (macd_line, signal_line, histogram) lists
    """
    n = len(closes)
    fast_ema = _to_array(ema(closes, fast))
    slow_ema = _to_array(ema(closes, slow))
    line = fast_ema - slow_ema

    signal_line = np.full(n, np.nan)
    if n >= slow:
        signal_line[slow - 1 :] = ema(line[slow - 1 :], signal)

    return line.tolist(), signal_line.tolist(), (line - signal_line).tolist()


def volume_ratio(volumes: Sequence[float], period: int = 20) -> float:
    """Latest volume relative to the mean of the trailing ``period`` volumes."""
    if len(volumes) < period:
        return 1.0

    avg = float(np.mean(_to_array(volumes[-period:])))
    if avg == 0:
        return 0.0
    return float(volumes[-1]) / avg


def trend(closes: Sequence[float], short: int = 10, long: int = 20) -> Trend:
    """UP/DOWN when SMA(short) is more than 1% above/below SMA(long)."""
    if len(closes) < long:
        return Trend.SIDEWAYS

    short_ma = sma(closes, short)[-1]
    long_ma = sma(closes, long)[-1]
    difference = (short_ma - long_ma) / long_ma * 100

    if difference > 1:
        return Trend.UP
    if difference < -1:
        return Trend.DOWN
    return Trend.SIDEWAYS


def trend_strength(
    closes: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
    period: int = 14,
) -> float:
    """
    Directional momentum of the last ``period`` candles, damped by their
    average range relative to price.

    Returns:
        Value in [0, 100]
    """
    if len(closes) < period:
        return 0.0

    c = _to_array(closes[-period:])
    h = _to_array(highs[-period:])
    l = _to_array(lows[-period:])

    changes = np.diff(c)
    up_moves = float(np.sum(changes[changes > 0]))
    down_moves = float(-np.sum(changes[changes < 0]))
    total_range = float(np.sum(h[1:] - l[1:]))

    moves = up_moves + down_moves
    if moves == 0:
        return 0.0
    momentum = abs(up_moves - down_moves) / moves
    range_ratio = total_range / (c[-1] * period)
    return momentum * 100 / (1 + range_ratio)


# =============================================================================
# IndicatorCalculator class
# =============================================================================

def _latest(values: list[float]) -> float:
    value = values[-1]
    return 0.0 if math.isnan(value) else value


class IndicatorCalculator:
    """Calculator for the full indicator snapshot used by the generator."""

    def __init__(
        self,
        rsi_period: int = 14,
        adx_period: int = 14,
        aroon_period: int = 14,
        macd_fast: int = 12,
        macd_slow: int = 26,
        macd_signal: int = 9,
        bb_period: int = 20,
        bb_std: float = 2.0,
        atr_period: int = 14,
        volume_period: int = 20,
        volatility_period: int = 20,
        sr_tolerance: float = 0.02,
    ):
        self.rsi_period = rsi_period
        self.adx_period = adx_period
        self.aroon_period = aroon_period
        self.macd_fast = macd_fast
        self.macd_slow = macd_slow
        self.macd_signal = macd_signal
        self.bb_period = bb_period
        self.bb_std = bb_std
        self.atr_period = atr_period
        self.volume_period = volume_period
        self.volatility_period = volatility_period
        self.sr_tolerance = sr_tolerance

    @property
    def min_candles(self) -> int:
        """Smallest series for which every indicator is finite."""
        return max(
            self.rsi_period,
            2 * self.adx_period,
            self.aroon_period,
            self.macd_slow + self.macd_signal - 1,
            self.bb_period,
            self.atr_period,
            self.volume_period,
            self.volatility_period,
        ) + 1

    def calculate(self, candles: Sequence[Candle]) -> IndicatorSnapshot:
        """
        Calculate the indicator snapshot for the latest candle.

        Args:
            candles: Validated candle series, oldest first

        Returns:
            IndicatorSnapshot of the last candle

        Raises:
            InsufficientHistory: If the series is too short for every
                indicator to be defined
        """
        if len(candles) < self.min_candles:
            raise InsufficientHistory(self.min_candles, len(candles))

        highs = [c.high for c in candles]
        lows = [c.low for c in candles]
        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]
        close = closes[-1]

        macd_line, signal_line, histogram = macd(
            closes, self.macd_fast, self.macd_slow, self.macd_signal
        )
        upper, middle, lower = bollinger_bands(closes, self.bb_period, self.bb_std)
        bandwidth, percent_b = band_metrics(close, upper[-1], middle[-1], lower[-1])

        return IndicatorSnapshot(
            close=close,
            rsi=_latest(rsi(closes, self.rsi_period)),
            adx=_latest(adx(highs, lows, closes, self.adx_period)),
            aroon_oscillator=_latest(aroon_oscillator(highs, lows, self.aroon_period)),
            macd=MacdValues(
                macd=_latest(macd_line),
                signal=_latest(signal_line),
                histogram=_latest(histogram),
            ),
            bollinger=BollingerValues(
                upper=upper[-1],
                middle=middle[-1],
                lower=lower[-1],
                bandwidth=bandwidth,
                percent_b=percent_b,
            ),
            atr=_latest(atr(highs, lows, closes, self.atr_period)),
            volume_ratio=volume_ratio(volumes, self.volume_period),
            volatility=volatility(closes, self.volatility_period),
            trend=trend(closes),
            trend_strength=trend_strength(closes, highs, lows),
            support_resistance=tuple(find_levels(candles, tolerance=self.sr_tolerance)),
        )
