"""
Trade Stats

Dashboard statistics over closed trades: aggregate stats, equity curve,
and per-symbol / per-strategy performance.

Every view is a pure function of the trade list handed in. Nothing here
touches the store, checks trade status, or caches results; each view can be
computed independently of the others.
"""

from typing import List, Mapping, Optional, Sequence

from .models import (
    StreakType,
    ClosedTrade,
    TradingStats,
    EquityCurvePoint,
    StrategyPerformance,
    SymbolPerformance,
)
from .numeric import (
    RPolicy,
    Present,
    Absent,
    ABSENT,
    OptionalNumber,
    Finite,
    Unbounded,
    UNBOUNDED,
    ProfitFactor,
)
from .stats_engine import StatsEngine, StreakState
from .equity_engine import EquityEngine
from .grouping_engine import GroupingEngine
from .trade_adapter import adapt_row, adapt_rows

__all__ = [
    "StreakType",
    "ClosedTrade",
    "TradingStats",
    "EquityCurvePoint",
    "StrategyPerformance",
    "SymbolPerformance",
    "RPolicy",
    "Present",
    "Absent",
    "ABSENT",
    "OptionalNumber",
    "Finite",
    "Unbounded",
    "UNBOUNDED",
    "ProfitFactor",
    "StatsEngine",
    "StreakState",
    "EquityEngine",
    "GroupingEngine",
    "adapt_row",
    "adapt_rows",
    "compute_trading_stats",
    "build_equity_curve",
    "compute_symbol_performance",
    "compute_strategy_performance",
]


def compute_trading_stats(trades: Sequence[ClosedTrade]) -> TradingStats:
    """Aggregate stats. Trades should be ordered by exit time ascending for streaks."""
    return StatsEngine().compute(trades)


def build_equity_curve(trades: Sequence[ClosedTrade]) -> List[EquityCurvePoint]:
    """Equity curve over trades already filtered to an exit date and sorted ascending."""
    return EquityEngine().build(trades)


def compute_symbol_performance(trades: Sequence[ClosedTrade]) -> List[SymbolPerformance]:
    """Per-symbol rollup, sorted by total PnL descending."""
    return GroupingEngine().by_symbol(trades)


def compute_strategy_performance(
    trades: Sequence[ClosedTrade],
    names: Optional[Mapping[str, str]] = None,
) -> List[StrategyPerformance]:
    """Per-strategy rollup in source order."""
    return GroupingEngine().by_strategy(trades, names)
