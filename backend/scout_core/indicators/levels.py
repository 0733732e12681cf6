"""Support/resistance detection from swing pivots."""

from typing import Sequence

from scout_core.models.candle import Candle
from scout_core.models.indicators import LevelKind, SRLevel

PIVOT_SPAN = 2  # candles on each side a pivot must exceed
TRAILING_WINDOW = 20
LIQUIDITY_VOLUME_SHARE = 0.10
SUPPORT_CLOSE_SHARE = 0.60


def find_pivots(candles: Sequence[Candle], span: int = PIVOT_SPAN) -> list[float]:
    """Pivot highs and lows.

    A candle's high is a pivot when it is strictly above the highs of the
    ``span`` candles on each side (likewise for lows).
    """
    pivots: list[float] = []
    for i in range(span, len(candles) - span):
        neighbours = [candles[j] for j in range(i - span, i + span + 1) if j != i]
        candle = candles[i]
        if all(candle.high > n.high for n in neighbours):
            pivots.append(candle.high)
        if all(candle.low < n.low for n in neighbours):
            pivots.append(candle.low)
    return pivots


def group_prices(prices: Sequence[float], tolerance: float) -> list[float]:
    """Cluster sorted prices within ``tolerance`` of each group's first price.

    Returns:
        The mean price of every group, ascending
    """
    groups: list[list[float]] = []
    for price in sorted(prices):
        if groups and abs(price - groups[-1][0]) <= groups[-1][0] * tolerance:
            groups[-1].append(price)
        else:
            groups.append([price])
    return [sum(g) / len(g) for g in groups]


def _near(value: float, level: float, tolerance: float) -> bool:
    return abs(value - level) <= level * tolerance


def find_levels(
    candles: Sequence[Candle],
    tolerance: float = 0.02,
    window: int = TRAILING_WINDOW,
) -> list[SRLevel]:
    """
    Derive support/resistance levels from pivot clusters.

    Args:
        candles: Candle series, oldest first
        tolerance: Relative distance treated as "at the level"
        window: Trailing window used for volume share and side

    Returns:
        Levels sorted by strength, strongest first
    """
    pivots = find_pivots(candles)
    if not pivots:
        return []

    recent = candles[-window:]
    recent_volume = sum(c.volume for c in recent)

    levels: list[SRLevel] = []
    for price in group_prices(pivots, tolerance):
        touches = sum(
            1
            for c in candles
            if _near(c.high, price, tolerance) or _near(c.low, price, tolerance)
        )
        near_volume = sum(c.volume for c in recent if _near(c.close, price, tolerance))
        closes_above = sum(1 for c in recent if c.close > price)

        is_liquidity_zone = (
            recent_volume > 0 and near_volume >= recent_volume * LIQUIDITY_VOLUME_SHARE
        )
        kind = (
            LevelKind.SUPPORT
            if closes_above >= len(recent) * SUPPORT_CLOSE_SHARE
            else LevelKind.RESISTANCE
        )
        levels.append(
            SRLevel(
                price=price,
                kind=kind,
                strength=min(touches * 20, 100),
                touch_count=touches,
                is_liquidity_zone=is_liquidity_zone,
            )
        )

    levels.sort(key=lambda lvl: lvl.strength, reverse=True)
    return levels


def nearest_support(levels: Sequence[SRLevel], price: float) -> SRLevel | None:
    """Highest SUPPORT level strictly below ``price``."""
    below = [l for l in levels if l.kind == LevelKind.SUPPORT and l.price < price]
    return max(below, key=lambda l: l.price, default=None)


def nearest_resistance(levels: Sequence[SRLevel], price: float) -> SRLevel | None:
    """Lowest RESISTANCE level strictly above ``price``."""
    above = [l for l in levels if l.kind == LevelKind.RESISTANCE and l.price > price]
    return min(above, key=lambda l: l.price, default=None)
