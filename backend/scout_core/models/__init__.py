"""Data models shared by the core and the live service layer."""

from scout_core.models.alert import AlertType, MarketAlert
from scout_core.models.candle import (
    Candle,
    Interval,
    MarketContext,
    Ticker,
    validate_candles,
)
from scout_core.models.indicators import (
    BandPosition,
    BollingerValues,
    IndicatorSnapshot,
    LevelKind,
    MacdValues,
    SRLevel,
    Trend,
)
from scout_core.models.performance import (
    CloseReason,
    DashboardSummary,
    FeatureWeights,
    LearningModel,
    PerformanceRecord,
    PerformanceStatus,
    StrategyStats,
)
from scout_core.models.signal import (
    Direction,
    MarketSentiment,
    Signal,
    SignalStatus,
    TargetHit,
    Targets,
)
from scout_core.models.strategy import (
    DEFAULT_STRATEGIES,
    GeneratorConfig,
    Strategy,
    StrategyConditions,
    TrackerConfig,
)

__all__ = [
    "AlertType",
    "MarketAlert",
    "Candle",
    "Interval",
    "MarketContext",
    "Ticker",
    "validate_candles",
    "BandPosition",
    "BollingerValues",
    "IndicatorSnapshot",
    "LevelKind",
    "MacdValues",
    "SRLevel",
    "Trend",
    "CloseReason",
    "DashboardSummary",
    "FeatureWeights",
    "LearningModel",
    "PerformanceRecord",
    "PerformanceStatus",
    "StrategyStats",
    "Direction",
    "MarketSentiment",
    "Signal",
    "SignalStatus",
    "TargetHit",
    "Targets",
    "DEFAULT_STRATEGIES",
    "GeneratorConfig",
    "Strategy",
    "StrategyConditions",
    "TrackerConfig",
]
