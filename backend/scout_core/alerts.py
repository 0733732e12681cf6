"""Pump/dump and breakout/breakdown detection on ticker updates."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Sequence

from scout_core.models import AlertType, Candle, MarketAlert, Ticker

logger = logging.getLogger(__name__)

PUMP_DUMP_THRESHOLD_PCT = 3.0
BREAK_MARGIN = 0.02
VOLUME_BURST_RATIO = 2.0
MOMENTUM_THRESHOLD_PCT = 2.0
RECENT_CANDLES = 4  # 4 x 15m = last hour


class AlertDetector:
    """
    Detect unusual moves from ticker updates.

    - PUMP/DUMP: |24h change| >= 3%
    - BREAKOUT: rising and price > 2% above the recent candles' highest high
    - BREAKDOWN: falling and price > 2% below the recent candles' lowest low

    The same (symbol, type) alert is not repeated within ``cooldown``.
    """

    def __init__(
        self,
        threshold_pct: float = PUMP_DUMP_THRESHOLD_PCT,
        cooldown: timedelta = timedelta(minutes=15),
    ):
        self.threshold_pct = threshold_pct
        self.cooldown = cooldown
        self._last_alert: dict[tuple[str, AlertType], datetime] = {}

    def _reasons(
        self,
        ticker: Ticker,
        recent: Sequence[Candle],
    ) -> list[str]:
        """Explain a move from the last hour of candles."""
        if len(recent) < 2:
            return []

        reasons = []
        avg_volume = sum(c.volume for c in recent) / len(recent)
        if avg_volume > 0:
            burst = recent[-1].volume / avg_volume
            if burst > VOLUME_BURST_RATIO:
                reasons.append(f"Volume burst ({burst:.1f}x normal)")

        max_high = max(c.high for c in recent)
        min_low = min(c.low for c in recent)
        if ticker.change_pct > 0 and ticker.last_price > max_high * (1 + BREAK_MARGIN):
            reasons.append(f"Resistance break ({max_high:.4f})")
        if ticker.change_pct < 0 and ticker.last_price < min_low * (1 - BREAK_MARGIN):
            reasons.append(f"Support break ({min_low:.4f})")

        prev_close = recent[-2].close
        if prev_close > 0:
            momentum = (recent[-1].close - prev_close) / prev_close * 100
            if abs(momentum) > MOMENTUM_THRESHOLD_PCT:
                reasons.append(f"Strong momentum (15m: {momentum:.1f}%)")

        return reasons

    def _cooled_down(self, symbol: str, alert_type: AlertType, now: datetime) -> bool:
        last = self._last_alert.get((symbol, alert_type))
        return last is None or now - last >= self.cooldown

    def detect(
        self,
        ticker: Ticker,
        recent_candles: Sequence[Candle] = (),
        now: datetime | None = None,
    ) -> list[MarketAlert]:
        """
        Check one ticker update for alert conditions.

        Args:
            ticker: Latest ticker
            recent_candles: Latest candles of the symbol, oldest first
            now: Detection time (default: ticker timestamp or current UTC time)

        Returns:
            New alerts (empty when nothing fired or all are cooling down)
        """
        now = now or ticker.timestamp or datetime.now(timezone.utc)
        recent = list(recent_candles)[-RECENT_CANDLES:]
        alerts: list[MarketAlert] = []
        candidates: list[tuple[AlertType, str]] = []

        change = ticker.change_pct
        if abs(change) >= self.threshold_pct:
            alert_type = AlertType.PUMP if change > 0 else AlertType.DUMP
            candidates.append(
                (alert_type, f"{ticker.symbol} {alert_type.value} {change:+.2f}% -> {ticker.last_price}")
            )

        if recent:
            max_high = max(c.high for c in recent)
            min_low = min(c.low for c in recent)
            if change > 0 and ticker.last_price > max_high * (1 + BREAK_MARGIN):
                candidates.append(
                    (AlertType.BREAKOUT, f"{ticker.symbol} broke above {max_high:.4f}")
                )
            elif change < 0 and ticker.last_price < min_low * (1 - BREAK_MARGIN):
                candidates.append(
                    (AlertType.BREAKDOWN, f"{ticker.symbol} broke below {min_low:.4f}")
                )

        if not candidates:
            return alerts

        reasons = tuple(self._reasons(ticker, recent))
        for alert_type, message in candidates:
            if not self._cooled_down(ticker.symbol, alert_type, now):
                continue
            self._last_alert[(ticker.symbol, alert_type)] = now
            alerts.append(
                MarketAlert(
                    symbol=ticker.symbol,
                    type=alert_type,
                    message=message,
                    percentage=change,
                    volume=ticker.volume,
                    price=ticker.last_price,
                    reasons=reasons,
                    timestamp=now,
                )
            )
            logger.info(
                "%s alert: %s | %s", alert_type.value, message, " | ".join(reasons) or "-"
            )

        return alerts
