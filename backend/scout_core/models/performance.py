"""Performance tracking and adaptive learning models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from scout_core.models.signal import Direction, TargetHit
from scout_core.models.strategy import TrackerConfig

# Threshold comparisons tolerate float noise (e.g. 102.0 vs 100 * 1.02)
EPS = 1e-9

_DEFAULT_TRACKER_CONFIG = TrackerConfig()


class PerformanceStatus(str, Enum):
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    STOPPED = "STOPPED"


class CloseReason(str, Enum):
    TP3 = "TP3"
    STOP_LOSS = "SL"
    TIMEOUT = "TIMEOUT"


class PerformanceRecord(BaseModel):
    """Live outcome of one tracked signal."""

    signal_id: str
    symbol: str
    strategy_name: str
    direction: Direction
    open_price: float
    current_price: float
    high_seen: float
    low_seen: float
    pnl_pct: float = 0.0
    elapsed_minutes: float = 0.0
    hit_targets: set[TargetHit] = Field(default_factory=set)
    status: PerformanceStatus = PerformanceStatus.RUNNING
    opened_at: datetime
    closed_at: datetime | None = None
    close_reason: CloseReason | None = None

    @classmethod
    def open(
        cls,
        signal_id: str,
        symbol: str,
        strategy_name: str,
        direction: Direction,
        price: float,
        opened_at: datetime,
    ) -> "PerformanceRecord":
        return cls(
            signal_id=signal_id,
            symbol=symbol,
            strategy_name=strategy_name,
            direction=direction,
            open_price=price,
            current_price=price,
            high_seen=price,
            low_seen=price,
            opened_at=opened_at,
        )

    @property
    def is_closed(self) -> bool:
        return self.status != PerformanceStatus.RUNNING

    @property
    def is_profit(self) -> bool:
        return self.pnl_pct > 0

    def _close(self, status: PerformanceStatus, reason: CloseReason, now: datetime) -> None:
        self.status = status
        self.close_reason = reason
        self.closed_at = now

    def update(
        self,
        price: float,
        now: datetime,
        config: TrackerConfig = _DEFAULT_TRACKER_CONFIG,
    ) -> list[TargetHit]:
        """Advance the record with a new price.

        Thresholds are evaluated in order TP1, TP2, TP3 (closes COMPLETED),
        SL (closes STOPPED), then timeout (closes COMPLETED). A closed record
        ignores further prices.

        Args:
            price: Latest traded price
            now: Time of the price update
            config: Outcome thresholds

        Returns:
            Targets newly hit by this update
        """
        if self.is_closed:
            return []

        self.current_price = price
        self.high_seen = max(self.high_seen, price)
        self.low_seen = min(self.low_seen, price)

        pnl = (price - self.open_price) * 100 / self.open_price
        if self.direction == Direction.SHORT:
            pnl = -pnl
        self.pnl_pct = pnl
        self.elapsed_minutes = (now - self.opened_at).total_seconds() / 60

        new_hits: list[TargetHit] = []
        for target, threshold in (
            (TargetHit.TP1, config.tp1_pct),
            (TargetHit.TP2, config.tp2_pct),
            (TargetHit.TP3, config.tp3_pct),
        ):
            if target not in self.hit_targets and pnl >= threshold - EPS:
                self.hit_targets.add(target)
                new_hits.append(target)

        if TargetHit.TP3 in new_hits:
            self._close(PerformanceStatus.COMPLETED, CloseReason.TP3, now)
        elif TargetHit.SL not in self.hit_targets and pnl <= config.sl_pct + EPS:
            self.hit_targets.add(TargetHit.SL)
            new_hits.append(TargetHit.SL)
            self._close(PerformanceStatus.STOPPED, CloseReason.STOP_LOSS, now)
        elif self.elapsed_minutes >= config.timeout_minutes:
            self._close(PerformanceStatus.COMPLETED, CloseReason.TIMEOUT, now)

        return new_hits


# =============================================================================
# Learning model
# =============================================================================

FEATURES = ("rsi", "adx", "volume", "volatility", "momentum")
WEIGHT_TOTAL = 5.0
LEARNING_RATE = 0.1

SUCCESS_FACTORS = {
    "rsi": 1.05,
    "adx": 1.03,
    "volume": 1.07,
    "volatility": 1.02,
    "momentum": 1.04,
}
FAILURE_FACTORS = {
    "rsi": 0.95,
    "adx": 0.97,
    "volume": 0.93,
    "volatility": 0.98,
    "momentum": 0.96,
}


class FeatureWeights(BaseModel):
    """Per-feature scoring weights. Always sum to 5.0."""

    rsi: float = 1.0
    adx: float = 1.0
    volume: float = 1.0
    volatility: float = 1.0
    momentum: float = 1.0

    @property
    def total(self) -> float:
        return sum(getattr(self, f) for f in FEATURES)

    def scaled(self, factors: dict[str, float]) -> "FeatureWeights":
        """Multiply each weight by its factor and renormalize to 5.0."""
        raw = {f: getattr(self, f) * factors[f] for f in FEATURES}
        total = sum(raw.values())
        return FeatureWeights(**{f: v * WEIGHT_TOTAL / total for f, v in raw.items()})


class LearningModel(BaseModel):
    """Adaptive per-strategy weights driven by realized outcomes."""

    strategy: str
    weights: FeatureWeights = Field(default_factory=FeatureWeights)
    success_rate_ema: float = 0.5
    adaptation_count: int = 0
    last_update: datetime | None = None

    def record_outcome(self, is_profit: bool, now: datetime) -> None:
        """Fold one closed outcome into the model."""
        outcome = 1.0 if is_profit else 0.0
        self.success_rate_ema = (
            LEARNING_RATE * outcome + (1 - LEARNING_RATE) * self.success_rate_ema
        )
        factors = SUCCESS_FACTORS if is_profit else FAILURE_FACTORS
        self.weights = self.weights.scaled(factors)
        self.adaptation_count += 1
        self.last_update = now


# =============================================================================
# Statistics
# =============================================================================

class StrategyStats(BaseModel):
    """Aggregate statistics of one strategy's closed records."""

    model_config = ConfigDict(frozen=True)

    strategy: str
    total_signals: int = 0
    win_rate: float = 0.0
    avg_pnl: float = 0.0
    total_pnl: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    avg_duration: float = 0.0  # minutes
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0


class DashboardSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    active_count: int = 0
    completed_count: int = 0
    total_pnl: float = 0.0
    avg_pnl: float = 0.0
    win_rate: float = 0.0
