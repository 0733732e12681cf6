"""Signal generator: strategy matching, direction, targets and scoring.

This module is pure business logic with no I/O dependencies. Learning
weights are passed in as a snapshot, so the same generator runs inside a
worker thread during a bulk pass and directly in tests.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Mapping, Sequence

from scout_core.errors import InsufficientHistory
from scout_core.indicators import IndicatorCalculator, nearest_resistance, nearest_support
from scout_core.models import (
    DEFAULT_STRATEGIES,
    Candle,
    Direction,
    FeatureWeights,
    GeneratorConfig,
    IndicatorSnapshot,
    MarketContext,
    MarketSentiment,
    Signal,
    Strategy,
    Targets,
    validate_candles,
)
from scout_core.strategy import match_strategy, resolve_direction

logger = logging.getLogger(__name__)

TP_MULTIPLIERS = (0.5, 1.0, 1.5)

HIGH_VOLUME_24H = 100_000_000
VERY_HIGH_VOLUME_24H = 200_000_000


class Rejection(str, Enum):
    """Why an evaluation produced no signal."""

    INSUFFICIENT_HISTORY = "INSUFFICIENT_HISTORY"
    NO_STRATEGY_MATCH = "NO_STRATEGY_MATCH"
    HOLD = "HOLD"
    INSUFFICIENT_RISK_REWARD = "INSUFFICIENT_RISK_REWARD"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"


@dataclass
class EvaluationResult:
    """Result of evaluating one symbol."""
    signal: Signal | None = None
    rejection: Rejection | None = None
    snapshot: IndicatorSnapshot | None = None  # None only on insufficient history
    strategy: Strategy | None = None  # Matched strategy, if any


def _clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


class SignalGenerator:
    """
    Turn a candle window into a scored directional signal.

    Pipeline:
    1. Validate candles and compute the indicator snapshot
    2. Match the first qualifying strategy (priority order)
    3. Resolve direction from indicator votes (HOLD when no side leads)
    4. Compute stop loss and the TP1/TP2/TP3 ladder
    5. Gate on risk/reward, then on confidence
    """

    def __init__(
        self,
        config: GeneratorConfig | None = None,
        strategies: Sequence[Strategy] = DEFAULT_STRATEGIES,
        calculator: IndicatorCalculator | None = None,
    ):
        self.config = config or GeneratorConfig()
        self.strategies = tuple(strategies)
        self.calculator = calculator or IndicatorCalculator(
            sr_tolerance=self.config.sr_tolerance
        )

    def calculate_targets(
        self,
        direction: Direction,
        entry_price: float,
        snapshot: IndicatorSnapshot,
        tp_sl_ratio: float,
    ) -> Targets:
        """
        Calculate stop loss and take-profit ladder.

        The stop sits stop_loss_pct adverse from entry, tightened to the
        nearest SUPPORT (LONG) / RESISTANCE (SHORT) level when that level
        lies between entry and the default stop.

        Returns:
            Targets with TP1/2/3 at 0.5/1.0/1.5 x risk x tp_sl_ratio
        """
        stop_distance = entry_price * self.config.stop_loss_pct / 100
        levels = snapshot.support_resistance

        if direction == Direction.LONG:
            stop = entry_price - stop_distance
            support = nearest_support(levels, entry_price)
            if support is not None and support.price >= stop:
                stop = support.price
        else:
            stop = entry_price + stop_distance
            resistance = nearest_resistance(levels, entry_price)
            if resistance is not None and resistance.price <= stop:
                stop = resistance.price

        risk = abs(entry_price - stop)
        sign = direction.sign
        tp1, tp2, tp3 = (
            entry_price + sign * m * risk * tp_sl_ratio for m in TP_MULTIPLIERS
        )
        return Targets(tp1=tp1, tp2=tp2, tp3=tp3, stop_loss=stop)

    def calculate_confidence(
        self,
        strategy: Strategy,
        snapshot: IndicatorSnapshot,
        context: MarketContext,
        weights: FeatureWeights,
    ) -> float:
        """Base confidence adjusted by volume, volatility and ADX, clamped to [0, 100]."""
        confidence = strategy.base_confidence

        if context.volume_24h > HIGH_VOLUME_24H:
            confidence += 5 * weights.volume
        if context.volume_24h > VERY_HIGH_VOLUME_24H:
            confidence += 5 * weights.volume

        if snapshot.volatility > 0.10:
            confidence -= 10 * weights.volatility
        if snapshot.volatility > 0.15:
            confidence -= 10 * weights.volatility

        if snapshot.adx > 30:
            confidence += 5 * weights.adx
        if snapshot.adx > 40:
            confidence += 5 * weights.adx

        return _clamp(confidence)

    def calculate_ai_score(
        self,
        snapshot: IndicatorSnapshot,
        context: MarketContext,
        weights: FeatureWeights,
    ) -> float:
        """Secondary quality score in [0, 100] weighted by learned feature weights."""
        score = 50.0
        if 30 < snapshot.rsi < 70:
            score += 10 * weights.rsi
        if snapshot.adx > 20:
            score += 10 * weights.adx
        if snapshot.volume_ratio > 1.5:
            score += 15 * weights.volume
        if abs(context.price_change_pct) > 3:
            score += 10 * weights.momentum
        if context.volume_24h > HIGH_VOLUME_24H:
            score += 5
        return _clamp(score)

    @staticmethod
    def market_sentiment(snapshot: IndicatorSnapshot) -> MarketSentiment:
        """Majority vote of RSI vs 50, MACD sign and Aroon sign."""
        bullish = sum((
            snapshot.rsi > 50,
            snapshot.macd.macd > 0,
            snapshot.aroon_oscillator > 0,
        ))
        bearish = sum((
            snapshot.rsi < 50,
            snapshot.macd.macd < 0,
            snapshot.aroon_oscillator < 0,
        ))
        if bullish >= 2:
            return MarketSentiment.BULLISH
        if bearish >= 2:
            return MarketSentiment.BEARISH
        return MarketSentiment.NEUTRAL

    def evaluate_detailed(
        self,
        symbol: str,
        candles: Sequence[Candle],
        strategies: Sequence[Strategy] | None = None,
        context: MarketContext | None = None,
        weights: Mapping[str, FeatureWeights] | None = None,
        now: datetime | None = None,
    ) -> EvaluationResult:
        """
        Evaluate one symbol's candle window.

        Args:
            symbol: Instrument symbol
            candles: Candle series, oldest first
            strategies: Strategy table in priority order (default: generator's)
            context: 24h market data (default: derived from the candles)
            weights: Learned feature weights per strategy name
            now: Signal creation time (default: close time of the last candle)

        Returns:
            EvaluationResult with either a signal or a rejection reason

        Raises:
            MalformedInput: If the candle series cannot be analysed
        """
        validate_candles(candles)

        if len(candles) < self.config.min_candles:
            logger.debug(
                f"{symbol}: {len(candles)} candles, need {self.config.min_candles}"
            )
            return EvaluationResult(rejection=Rejection.INSUFFICIENT_HISTORY)

        try:
            snapshot = self.calculator.calculate(candles)
        except InsufficientHistory as e:
            logger.debug(f"{symbol}: {e}")
            return EvaluationResult(rejection=Rejection.INSUFFICIENT_HISTORY)

        if context is None:
            context = MarketContext.from_candles(candles)

        strategy = match_strategy(
            strategies if strategies is not None else self.strategies,
            snapshot,
            context,
            self.config.match_ratio_min,
        )
        if strategy is None:
            return EvaluationResult(rejection=Rejection.NO_STRATEGY_MATCH, snapshot=snapshot)

        direction = resolve_direction(snapshot)
        if direction is None:
            return EvaluationResult(
                rejection=Rejection.HOLD, snapshot=snapshot, strategy=strategy
            )

        entry_price = snapshot.close
        targets = self.calculate_targets(direction, entry_price, snapshot, strategy.tp_sl_ratio)
        risk = abs(entry_price - targets.stop_loss)
        if risk == 0:
            return EvaluationResult(
                rejection=Rejection.INSUFFICIENT_RISK_REWARD,
                snapshot=snapshot,
                strategy=strategy,
            )
        risk_reward = abs(entry_price - targets.tp2) / risk
        if risk_reward < self.config.min_risk_reward:
            return EvaluationResult(
                rejection=Rejection.INSUFFICIENT_RISK_REWARD,
                snapshot=snapshot,
                strategy=strategy,
            )

        strategy_weights = FeatureWeights()
        if weights is not None and strategy.name in weights:
            strategy_weights = weights[strategy.name]

        confidence = self.calculate_confidence(strategy, snapshot, context, strategy_weights)
        if confidence < self.config.min_confidence:
            logger.debug(
                f"{symbol}: {strategy.name} confidence {confidence:.1f} "
                f"below {self.config.min_confidence}"
            )
            return EvaluationResult(
                rejection=Rejection.LOW_CONFIDENCE, snapshot=snapshot, strategy=strategy
            )

        last = candles[-1]
        created_at = now or last.open_time + timedelta(minutes=last.interval.minutes)

        signal = Signal(
            symbol=symbol,
            direction=direction,
            confidence=confidence,
            entry_price=entry_price,
            targets=targets,
            risk_reward=risk_reward,
            strategy_name=strategy.name,
            timeframe=last.interval.value,
            indicators_snapshot=snapshot,
            created_at=created_at,
            ai_score=self.calculate_ai_score(snapshot, context, strategy_weights),
            market_sentiment=self.market_sentiment(snapshot),
            expected_duration_min=strategy.expected_duration_min,
            volume_24h=context.volume_24h,
            price_change_24h=context.price_change_pct,
        )
        logger.info(
            f"{direction.value} signal: {symbol} @ {entry_price} [{strategy.name}] "
            f"conf={confidence:.1f} SL={targets.stop_loss:.6g} TP2={targets.tp2:.6g}"
        )
        return EvaluationResult(signal=signal, snapshot=snapshot, strategy=strategy)

    def evaluate(
        self,
        symbol: str,
        candles: Sequence[Candle],
        strategies: Sequence[Strategy] | None = None,
        context: MarketContext | None = None,
        weights: Mapping[str, FeatureWeights] | None = None,
        now: datetime | None = None,
    ) -> Signal | None:
        """Evaluate one symbol; None when any gate rejects it."""
        return self.evaluate_detailed(
            symbol, candles, strategies, context, weights, now
        ).signal
