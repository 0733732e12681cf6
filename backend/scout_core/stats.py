"""Statistics over closed performance records.

Per-strategy win rate, P&L aggregates, Sharpe-like ratio and maximum
drawdown, plus the dashboard summary across all strategies. Records are
processed in chronological close order.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from statistics import fmean, pstdev
from typing import Iterable

from scout_core.models.performance import (
    DashboardSummary,
    PerformanceRecord,
    StrategyStats,
)


def sharpe_ratio(pnls: list[float]) -> float:
    """mean / population std of P&L values (0 when std is 0)."""
    if len(pnls) < 2:
        return 0.0
    std = pstdev(pnls)
    if std == 0:
        return 0.0
    return fmean(pnls) / std


def max_drawdown(pnls: list[float]) -> float:
    """Largest peak-to-trough drop of cumulative P&L; the peak starts at 0."""
    peak = 0.0
    cumulative = 0.0
    drawdown = 0.0
    for pnl in pnls:
        cumulative += pnl
        peak = max(peak, cumulative)
        drawdown = max(drawdown, peak - cumulative)
    return drawdown


def _close_order(record: PerformanceRecord) -> datetime:
    return record.closed_at or record.opened_at


class StrategyStatsCalculator:
    """Calculate per-strategy statistics and the dashboard summary."""

    def calculate(self, strategy: str, records: Iterable[PerformanceRecord]) -> StrategyStats:
        closed = sorted((r for r in records if r.is_closed), key=_close_order)
        if not closed:
            return StrategyStats(strategy=strategy)

        pnls = [r.pnl_pct for r in closed]
        wins = sum(1 for r in closed if r.is_profit)

        return StrategyStats(
            strategy=strategy,
            total_signals=len(closed),
            win_rate=wins / len(closed) * 100,
            avg_pnl=fmean(pnls),
            total_pnl=sum(pnls),
            best_trade=max(pnls),
            worst_trade=min(pnls),
            avg_duration=fmean(r.elapsed_minutes for r in closed),
            sharpe_ratio=sharpe_ratio(pnls),
            max_drawdown=max_drawdown(pnls),
        )

    def calculate_all(self, records: Iterable[PerformanceRecord]) -> dict[str, StrategyStats]:
        """Statistics for every strategy that has at least one record."""
        groups: dict[str, list[PerformanceRecord]] = defaultdict(list)
        for record in records:
            groups[record.strategy_name].append(record)
        return {name: self.calculate(name, group) for name, group in sorted(groups.items())}

    def dashboard(
        self,
        active_count: int,
        closed: Iterable[PerformanceRecord],
    ) -> DashboardSummary:
        closed = [r for r in closed if r.is_closed]
        if not closed:
            return DashboardSummary(active_count=active_count)

        pnls = [r.pnl_pct for r in closed]
        wins = sum(1 for r in closed if r.is_profit)
        return DashboardSummary(
            active_count=active_count,
            completed_count=len(closed),
            total_pnl=sum(pnls),
            avg_pnl=fmean(pnls),
            win_rate=wins / len(closed) * 100,
        )
