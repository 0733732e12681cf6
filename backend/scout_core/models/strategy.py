"""Strategy definitions and generator/tracker configuration."""

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StrategyConditions(BaseModel):
    """Entry conditions of a strategy. ``None`` means "not defined"."""

    model_config = ConfigDict(frozen=True)

    rsi_range: tuple[float | None, float | None] | None = None
    adx_min: float | None = None
    volume_multiplier_min: float | None = None
    price_change_min_pct: float | None = None
    volatility_max: float | None = None

    @property
    def defined_count(self) -> int:
        """Number of conditions that take part in matching."""
        count = 0
        if self.rsi_range is not None and any(b is not None for b in self.rsi_range):
            count += 1
        for value in (
            self.adx_min,
            self.volume_multiplier_min,
            self.price_change_min_pct,
            self.volatility_max,
        ):
            if value is not None:
                count += 1
        return count


class Strategy(BaseModel):
    """A named rule set used to qualify a candidate signal."""

    model_config = ConfigDict(frozen=True)

    name: str
    conditions: StrategyConditions = StrategyConditions()
    tp_sl_ratio: float = Field(gt=0)
    base_confidence: float = Field(ge=0, le=100)
    expected_duration_min: int = 120

    @model_validator(mode="after")
    def _validate(self):
        rsi = self.conditions.rsi_range
        if rsi is not None and rsi[0] is not None and rsi[1] is not None:
            if rsi[0] > rsi[1]:
                raise ValueError(
                    f"{self.name}: rsi_range min {rsi[0]} is above max {rsi[1]}"
                )
        return self


DEFAULT_STRATEGIES: tuple[Strategy, ...] = (
    Strategy(
        name="BREAKOUT",
        conditions=StrategyConditions(
            rsi_range=(60, 80),
            adx_min=25,
            volume_multiplier_min=1.5,
            price_change_min_pct=3,
        ),
        tp_sl_ratio=2.5,
        base_confidence=75,
        expected_duration_min=60,
    ),
    Strategy(
        name="REVERSAL",
        conditions=StrategyConditions(
            rsi_range=(70, None),
            adx_min=30,
            volatility_max=0.05,
        ),
        tp_sl_ratio=3.0,
        base_confidence=80,
        expected_duration_min=240,
    ),
    Strategy(
        name="TREND",
        conditions=StrategyConditions(
            rsi_range=(45, 70),
            adx_min=20,
            price_change_min_pct=1,
        ),
        tp_sl_ratio=2.0,
        base_confidence=70,
        expected_duration_min=480,
    ),
    Strategy(
        name="MOMENTUM",
        conditions=StrategyConditions(
            rsi_range=(55, 75),
            volume_multiplier_min=2.0,
            price_change_min_pct=2,
        ),
        tp_sl_ratio=2.2,
        base_confidence=72,
        expected_duration_min=120,
    ),
)


class GeneratorConfig(BaseModel):
    """Thresholds used by the signal generator."""

    model_config = ConfigDict(frozen=True)

    min_candles: int = 50
    match_ratio_min: float = 0.7
    stop_loss_pct: float = 2.0
    min_risk_reward: float = 1.5
    min_confidence: float = 65.0
    sr_tolerance: float = 0.02


class TrackerConfig(BaseModel):
    """Outcome thresholds for performance tracking (percent P&L)."""

    model_config = ConfigDict(frozen=True)

    tp1_pct: float = 2.0
    tp2_pct: float = 4.0
    tp3_pct: float = 6.0
    sl_pct: float = -2.0
    timeout_minutes: float = 240.0
