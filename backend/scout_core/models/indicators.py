"""Indicator snapshot models (derived, value-only, never mutated)."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LevelKind(str, Enum):
    SUPPORT = "SUPPORT"
    RESISTANCE = "RESISTANCE"


class BandPosition(str, Enum):
    """Where the close sits relative to the Bollinger Bands."""

    UPPER = "UPPER"
    MIDDLE = "MIDDLE"
    LOWER = "LOWER"


class Trend(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    SIDEWAYS = "SIDEWAYS"


class SRLevel(BaseModel):
    """A clustered support/resistance price."""

    model_config = ConfigDict(frozen=True)

    price: float
    kind: LevelKind
    strength: float = Field(ge=0, le=100)
    touch_count: int
    is_liquidity_zone: bool = False


class MacdValues(BaseModel):
    model_config = ConfigDict(frozen=True)

    macd: float
    signal: float
    histogram: float


class BollingerValues(BaseModel):
    model_config = ConfigDict(frozen=True)

    upper: float
    middle: float
    lower: float
    bandwidth: float
    percent_b: float  # unclamped: < 0 or > 1 when price is outside the bands

    @property
    def position(self) -> BandPosition:
        if self.percent_b >= 1:
            return BandPosition.UPPER
        if self.percent_b <= 0:
            return BandPosition.LOWER
        return BandPosition.MIDDLE


class IndicatorSnapshot(BaseModel):
    """Latest indicator values for one analysis pass."""

    model_config = ConfigDict(frozen=True)

    close: float
    rsi: float
    adx: float
    aroon_oscillator: float
    macd: MacdValues
    bollinger: BollingerValues
    atr: float
    volume_ratio: float
    volatility: float
    trend: Trend
    trend_strength: float
    support_resistance: tuple[SRLevel, ...] = ()
