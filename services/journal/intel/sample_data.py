# services/journal/intel/sample_data.py
"""
Sample dashboard data.

Served to unauthenticated callers and when a non-stats view cannot reach the
store, so the dashboard always has something to render.
"""

from datetime import date, timedelta
from typing import List

import numpy as np

from .models import PortfolioSummary, RecentTrade
from .trade_stats import (
    EquityCurvePoint,
    Finite,
    StrategyPerformance,
    StreakType,
    SymbolPerformance,
    TradingStats,
)

EQUITY_SEED = 20241210
EQUITY_START = date(2024, 9, 10)
EQUITY_POINTS = 60


def sample_trading_stats() -> TradingStats:
    return TradingStats(
        total_trades=127,
        open_trades=3,
        closed_trades=124,
        winning_trades=78,
        losing_trades=42,
        breakeven_trades=4,
        win_rate=62.9,
        total_pnl=15420.50,
        total_fees=312.80,
        net_pnl=15107.70,
        avg_win=287.35,
        avg_loss=156.82,
        largest_win=1245.00,
        largest_loss=-567.00,
        profit_factor=Finite(2.14),
        avg_r_multiple=1.87,
        expectancy=121.83,
        current_streak=4,
        streak_type=StreakType.WINNING,
        best_streak=9,
        worst_streak=5,
    )


def sample_equity_curve(seed: int = EQUITY_SEED) -> List[EquityCurvePoint]:
    """
    60 daily points. Each day wins up to 500 with probability 0.6, otherwise
    loses up to 300. Same seed, same curve.
    """
    rng = np.random.default_rng(seed)
    is_win = rng.random(EQUITY_POINTS) > 0.4
    magnitude = rng.random(EQUITY_POINTS)
    pnl = np.where(is_win, magnitude * 500, -magnitude * 300)
    cumulative = np.cumsum(pnl)

    return [
        EquityCurvePoint(
            date=(EQUITY_START + timedelta(days=i)).isoformat(),
            pnl=round(float(pnl[i]), 2),
            cumulative_pnl=round(float(cumulative[i]), 2),
            trade_count=i + 1,
        )
        for i in range(EQUITY_POINTS)
    ]


def sample_strategy_performance() -> List[StrategyPerformance]:
    return [
        StrategyPerformance("1", "Breakout H1", 45, 68.9, 2.1, 8750.0, Finite(2.8)),
        StrategyPerformance("2", "Mean Reversion", 32, 71.8, 1.5, 4230.0, Finite(2.1)),
        StrategyPerformance("3", "Trend Following", 28, 53.5, 2.8, 3890.0, Finite(1.9)),
        StrategyPerformance("4", "Scalping M15", 22, 59.0, 0.8, -1120.0, Finite(0.7)),
    ]


def sample_symbol_performance() -> List[SymbolPerformance]:
    return [
        SymbolPerformance("EURUSD", 35, 71.4, 5420.0, 2.1),
        SymbolPerformance("BTCUSD", 28, 64.2, 4180.0, 1.8),
        SymbolPerformance("GBPUSD", 22, 59.0, 2340.0, 1.5),
        SymbolPerformance("XAUUSD", 18, 55.5, 1890.0, 1.9),
        SymbolPerformance("USDJPY", 15, 66.6, 1280.0, 1.4),
    ]


def sample_recent_trades() -> List[RecentTrade]:
    return [
        RecentTrade(
            id="1", symbol="EURUSD", direction="LONG", status="CLOSED",
            entry_date="2024-12-09T10:30:00Z", exit_date="2024-12-09T14:45:00Z",
            entry_price=1.0542, exit_price=1.0578, quantity=100000,
            net_pnl=360.0, r_multiple=2.4, strategy_name="Breakout H1",
        ),
        RecentTrade(
            id="2", symbol="BTCUSD", direction="SHORT", status="CLOSED",
            entry_date="2024-12-08T08:15:00Z", exit_date="2024-12-08T16:20:00Z",
            entry_price=44250.0, exit_price=43800.0, quantity=0.5,
            net_pnl=225.0, r_multiple=1.8, strategy_name="Trend Following",
        ),
        RecentTrade(
            id="3", symbol="GBPUSD", direction="LONG", status="OPEN",
            entry_date="2024-12-10T09:00:00Z",
            entry_price=1.2745, quantity=50000,
            net_pnl=0.0, r_multiple=0.0,
        ),
        RecentTrade(
            id="4", symbol="XAUUSD", direction="LONG", status="CLOSED",
            entry_date="2024-12-07T11:00:00Z", exit_date="2024-12-07T15:30:00Z",
            entry_price=2035.50, exit_price=2028.20, quantity=10,
            net_pnl=-73.0, r_multiple=-0.8, strategy_name="Mean Reversion",
        ),
        RecentTrade(
            id="5", symbol="USDJPY", direction="SHORT", status="CLOSED",
            entry_date="2024-12-06T07:45:00Z", exit_date="2024-12-06T12:00:00Z",
            entry_price=149.85, exit_price=149.32, quantity=100000,
            net_pnl=354.0, r_multiple=2.1, strategy_name="Breakout H1",
        ),
    ]


def sample_portfolio_summaries() -> List[PortfolioSummary]:
    return [
        PortfolioSummary("1", "Live Trading", "PERSONAL", 10000.0, 15107.70, 5107.70, 51.07, 85, 64.7),
        PortfolioSummary("2", "Demo Account", "DEMO", 100000.0, 112450.0, 12450.0, 12.45, 42, 59.5),
    ]
