"""Technical indicators (pure math, no I/O)."""

from scout_core.indicators.indicators import (
    adx,
    aroon_oscillator,
    atr,
    band_metrics,
    bollinger_bands,
    ema,
    macd,
    rsi,
    sma,
    trend,
    trend_strength,
    true_range,
    volatility,
    volume_ratio,
    wilder_smooth,
    IndicatorCalculator,
)
from scout_core.indicators.levels import (
    find_levels,
    find_pivots,
    nearest_resistance,
    nearest_support,
)

__all__ = [
    "adx",
    "aroon_oscillator",
    "atr",
    "band_metrics",
    "bollinger_bands",
    "ema",
    "macd",
    "rsi",
    "sma",
    "trend",
    "trend_strength",
    "true_range",
    "volatility",
    "volume_ratio",
    "wilder_smooth",
    "IndicatorCalculator",
    "find_levels",
    "find_pivots",
    "nearest_resistance",
    "nearest_support",
]
