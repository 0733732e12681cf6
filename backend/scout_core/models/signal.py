"""Signal data models."""

import hashlib
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from scout_core.models.indicators import IndicatorSnapshot


class Direction(str, Enum):
    """Trade direction."""

    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        return 1 if self is Direction.LONG else -1


class SignalStatus(str, Enum):
    """Signal lifecycle status."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"  # TP3 hit
    STOPPED = "STOPPED"  # Stop loss hit
    EXPIRED = "EXPIRED"  # Tracking timed out
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self is not SignalStatus.ACTIVE


class TargetHit(str, Enum):
    TP1 = "TP1"
    TP2 = "TP2"
    TP3 = "TP3"
    SL = "SL"


class MarketSentiment(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    NEUTRAL = "NEUTRAL"


class Targets(BaseModel):
    """Take-profit ladder and stop loss."""

    model_config = ConfigDict(frozen=True)

    tp1: float
    tp2: float
    tp3: float
    stop_loss: float


def _generate_signal_id(
    strategy: str,
    symbol: str,
    timeframe: str,
    created_at: datetime,
    direction: Direction,
) -> str:
    """Generate deterministic signal ID based on signal attributes.

    The same candle window evaluated twice produces the same ID, so a
    re-run pass cannot register a duplicate signal.
    """
    ts_str = created_at.strftime("%Y%m%d%H%M%S%f")
    key = f"{strategy}:{symbol}:{timeframe}:{ts_str}:{direction.value}"
    return hashlib.sha256(key.encode()).hexdigest()[:32]


class Signal(BaseModel):
    """Directional trade recommendation.

    Created only by the signal generator. While tracked, only the tracker
    changes ``status``, ``hit_targets``, ``realized_pnl_pct`` and
    ``closed_at``.
    """

    id: str = ""  # Will be set in model_post_init
    symbol: str
    direction: Direction
    confidence: float = Field(ge=0, le=100)
    entry_price: float
    targets: Targets
    risk_reward: float
    strategy_name: str
    timeframe: str = "15m"
    indicators_snapshot: IndicatorSnapshot
    created_at: datetime
    status: SignalStatus = SignalStatus.ACTIVE

    ai_score: float = 0.0
    market_sentiment: MarketSentiment = MarketSentiment.NEUTRAL
    expected_duration_min: int = 120
    volume_24h: float = 0.0
    price_change_24h: float = 0.0

    hit_targets: list[TargetHit] = Field(default_factory=list)
    realized_pnl_pct: float | None = None
    closed_at: datetime | None = None

    def model_post_init(self, __context) -> None:
        """Generate deterministic ID after model initialization."""
        if not self.id:
            object.__setattr__(
                self,
                "id",
                _generate_signal_id(
                    self.strategy_name,
                    self.symbol,
                    self.timeframe,
                    self.created_at,
                    self.direction,
                ),
            )

    @property
    def risk_amount(self) -> float:
        """Distance from entry to stop loss."""
        return abs(self.entry_price - self.targets.stop_loss)

    @property
    def reward_amount(self) -> float:
        """Distance from entry to the second take-profit."""
        return abs(self.entry_price - self.targets.tp2)
