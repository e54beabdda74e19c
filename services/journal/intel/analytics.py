# services/journal/intel/analytics.py
"""Dashboard analytics for the journal service.

Reads closed trades from the store and hands them to trade_stats. Each view
returns an ActionResult:

    no user        -> sample data
    store failure  -> failure result for stats, sample data for other views
    no trades      -> empty stats / empty lists
"""

from typing import List, Optional

from .db import JournalDB, JournalStoreError
from .models import ActionResult, DashboardFilters, PortfolioSummary, RecentTrade
from .trade_stats import (
    EquityCurvePoint,
    StrategyPerformance,
    SymbolPerformance,
    TradingStats,
    adapt_rows,
    build_equity_curve,
    compute_strategy_performance,
    compute_symbol_performance,
    compute_trading_stats,
)
from .trade_stats.numeric import to_float
from . import sample_data

PORTFOLIO_BASE_BALANCE = 10000.0


class Analytics:
    """Performance analytics over a user's closed trades."""

    def __init__(self, db: JournalDB, logger=None):
        self.db = db
        self.logger = logger

    def _log_store_error(self, view: str, err: Exception):
        if self.logger:
            self.logger.error(f"{view}: store unavailable: {err}")

    def get_trading_stats(
        self,
        user_id: Optional[str],
        filters: Optional[DashboardFilters] = None,
    ) -> ActionResult[TradingStats]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_trading_stats())

        try:
            rows = self.db.list_closed_trades(user_id, filters)
        except JournalStoreError as e:
            self._log_store_error("stats", e)
            return ActionResult.fail("Failed to compute trading statistics")

        if not rows:
            return ActionResult.ok(TradingStats.empty())
        return ActionResult.ok(compute_trading_stats(adapt_rows(rows)))

    def get_equity_curve(
        self,
        user_id: Optional[str],
        filters: Optional[DashboardFilters] = None,
    ) -> ActionResult[List[EquityCurvePoint]]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_equity_curve())

        try:
            rows = self.db.list_closed_trades_for_equity(user_id, filters)
        except JournalStoreError as e:
            self._log_store_error("equity", e)
            return ActionResult.ok(sample_data.sample_equity_curve())

        return ActionResult.ok(build_equity_curve(adapt_rows(rows)))

    def get_strategy_performance(
        self,
        user_id: Optional[str],
        filters: Optional[DashboardFilters] = None,
    ) -> ActionResult[List[StrategyPerformance]]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_strategy_performance())

        try:
            rows = self.db.list_closed_trades(user_id, filters)
            names = self.db.strategy_names(user_id)
        except JournalStoreError as e:
            self._log_store_error("strategies", e)
            return ActionResult.ok(sample_data.sample_strategy_performance())

        return ActionResult.ok(compute_strategy_performance(adapt_rows(rows), names))

    def get_symbol_performance(
        self,
        user_id: Optional[str],
        filters: Optional[DashboardFilters] = None,
    ) -> ActionResult[List[SymbolPerformance]]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_symbol_performance())

        try:
            rows = self.db.list_closed_trades(user_id, filters)
        except JournalStoreError as e:
            self._log_store_error("symbols", e)
            return ActionResult.ok(sample_data.sample_symbol_performance())

        return ActionResult.ok(compute_symbol_performance(adapt_rows(rows)))

    def get_recent_trades(
        self,
        user_id: Optional[str],
        limit: int = 10,
    ) -> ActionResult[List[RecentTrade]]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_recent_trades())

        try:
            rows = self.db.list_recent_trades(user_id, limit)
        except JournalStoreError as e:
            self._log_store_error("recent", e)
            return ActionResult.ok(sample_data.sample_recent_trades())

        trades = [
            RecentTrade(
                id=r['id'],
                symbol=r['symbol'],
                direction=r['direction'],
                status=r['status'],
                entry_date=r['entry_date'],
                exit_date=r['exit_date'],
                entry_price=to_float(r['entry_price']),
                exit_price=to_float(r['exit_price']) if r['exit_price'] else None,
                quantity=to_float(r['quantity']),
                net_pnl=to_float(r['net_pnl']),
                r_multiple=to_float(r['r_multiple']),
                strategy_name=r['strategy_name'],
            )
            for r in rows
        ]
        return ActionResult.ok(trades)

    def get_portfolio_summaries(
        self,
        user_id: Optional[str],
    ) -> ActionResult[List[PortfolioSummary]]:
        if not user_id:
            return ActionResult.ok(sample_data.sample_portfolio_summaries())

        try:
            rows = self.db.portfolio_stats(user_id)
        except JournalStoreError as e:
            self._log_store_error("portfolios", e)
            return ActionResult.ok(sample_data.sample_portfolio_summaries())

        summaries = []
        for p in rows:
            total_pnl = to_float(p['total_pnl'])
            total_trades = int(p['total_trades'] or 0)
            wins = int(p['winning_trades'] or 0)
            summaries.append(PortfolioSummary(
                id=p['portfolio_id'],
                name=p['portfolio_name'],
                type=p['portfolio_type'],
                initial_balance=PORTFOLIO_BASE_BALANCE,
                current_balance=PORTFOLIO_BASE_BALANCE + total_pnl,
                total_pnl=total_pnl,
                return_percent=(total_pnl / PORTFOLIO_BASE_BALANCE) * 100,
                trades=total_trades,
                win_rate=(wins / total_trades) * 100 if total_trades > 0 else 0.0,
            ))
        return ActionResult.ok(summaries)
