"""Strategy matching and directional bias."""

from scout_core.strategy.matcher import (
    MATCH_RATIO_MIN,
    MatchResult,
    direction_votes,
    evaluate_conditions,
    match_strategy,
    resolve_direction,
)

__all__ = [
    "MATCH_RATIO_MIN",
    "MatchResult",
    "direction_votes",
    "evaluate_conditions",
    "match_strategy",
    "resolve_direction",
]
