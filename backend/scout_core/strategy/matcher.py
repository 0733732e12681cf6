"""Strategy matching and directional bias."""

from dataclasses import dataclass
from typing import Sequence

from scout_core.models import (
    BandPosition,
    Direction,
    IndicatorSnapshot,
    MarketContext,
    Strategy,
)

MATCH_RATIO_MIN = 0.7


@dataclass
class MatchResult:
    """Outcome of checking one strategy against a snapshot."""
    strategy: Strategy
    satisfied: int
    defined: int

    @property
    def ratio(self) -> float:
        return self.satisfied / self.defined if self.defined else 0.0


def evaluate_conditions(
    strategy: Strategy,
    snapshot: IndicatorSnapshot,
    context: MarketContext,
) -> MatchResult:
    """Count the defined conditions of ``strategy`` the snapshot satisfies."""
    cond = strategy.conditions
    checks: list[bool] = []

    if cond.rsi_range is not None and any(b is not None for b in cond.rsi_range):
        lo, hi = cond.rsi_range
        checks.append(
            (lo is None or snapshot.rsi >= lo) and (hi is None or snapshot.rsi <= hi)
        )
    if cond.adx_min is not None:
        checks.append(snapshot.adx >= cond.adx_min)
    if cond.volume_multiplier_min is not None:
        checks.append(snapshot.volume_ratio >= cond.volume_multiplier_min)
    if cond.price_change_min_pct is not None:
        checks.append(abs(context.price_change_pct) >= cond.price_change_min_pct)
    if cond.volatility_max is not None:
        checks.append(snapshot.volatility <= cond.volatility_max)

    return MatchResult(strategy=strategy, satisfied=sum(checks), defined=len(checks))


def match_strategy(
    strategies: Sequence[Strategy],
    snapshot: IndicatorSnapshot,
    context: MarketContext,
    min_ratio: float = MATCH_RATIO_MIN,
) -> Strategy | None:
    """
    First strategy, in priority order, whose match ratio reaches ``min_ratio``.

    A strategy with no defined conditions never matches.
    """
    for strategy in strategies:
        result = evaluate_conditions(strategy, snapshot, context)
        if result.defined and result.ratio >= min_ratio:
            return strategy
    return None


def direction_votes(snapshot: IndicatorSnapshot) -> tuple[int, int]:
    """
    Tally long/short votes from the snapshot.

    Returns:
        Tuple of (long_votes, short_votes)
    """
    long_votes = 0
    short_votes = 0

    if snapshot.rsi < 30:
        long_votes += 2
    elif snapshot.rsi > 70:
        short_votes += 2
    elif snapshot.rsi > 50:
        long_votes += 1
    elif snapshot.rsi < 50:
        short_votes += 1

    if snapshot.macd.macd > 0:
        long_votes += 1
    elif snapshot.macd.macd < 0:
        short_votes += 1

    if snapshot.aroon_oscillator > 20:
        long_votes += 1
    elif snapshot.aroon_oscillator < -20:
        short_votes += 1

    position = snapshot.bollinger.position
    if position == BandPosition.LOWER:
        long_votes += 1
    elif position == BandPosition.UPPER:
        short_votes += 1

    # Strong trend reinforces whichever side already leads
    if snapshot.adx > 25:
        if long_votes > short_votes:
            long_votes += 1
        elif short_votes > long_votes:
            short_votes += 1

    return long_votes, short_votes


def resolve_direction(snapshot: IndicatorSnapshot) -> Direction | None:
    """LONG/SHORT when one side leads by more than one vote, else None (HOLD)."""
    long_votes, short_votes = direction_votes(snapshot)
    if long_votes > short_votes + 1:
        return Direction.LONG
    if short_votes > long_votes + 1:
        return Direction.SHORT
    return None
