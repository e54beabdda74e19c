"""
Trade Stats: Stats Engine

Aggregate performance over closed trades. Pure computation: no I/O, no state
kept between calls. Empty input is handled by returning TradingStats.empty().

Formulas:
    win_rate       = winners / closed × 100
    avg_win        = mean(net_pnl where net_pnl > 0)
    avg_loss       = |mean(net_pnl where net_pnl < 0)|
    profit_factor  = Σ wins / |Σ losses|        (no losses, wins > 0 → UNBOUNDED)
    avg_r_multiple = mean(R), absent R counted as 0
    expectancy     = Σ net_pnl / closed

Streaks are a single fold over the trades in the order received. Callers
must sort by exit time ascending first; a different order gives different
streaks.
"""

from dataclasses import dataclass, replace
from functools import reduce
from typing import Optional, Sequence

import numpy as np

from .models import ClosedTrade, StreakType, TradingStats
from .numeric import RPolicy, mean_of, profit_factor, value_or


@dataclass(frozen=True)
class StreakState:
    """Fold state for the streak scan. last_win is None before the first trade."""
    best_streak: int = 0
    worst_streak: int = 0
    current_streak: int = 0
    streak_type: StreakType = StreakType.NONE
    run_length: int = 0
    last_win: Optional[bool] = None


class StatsEngine:
    """Stateless stats computation. All methods are pure functions."""

    @staticmethod
    def _pnl_array(trades: Sequence[ClosedTrade]) -> np.ndarray:
        return np.array([t.net_pnl for t in trades], dtype=np.float64)

    # -----------------------------------------------------------------
    # Streaks
    # -----------------------------------------------------------------

    @staticmethod
    def _close_run(state: StreakState) -> StreakState:
        """Fold the run in progress into best (win run) or worst (non-win run)."""
        if state.last_win is None:
            return state
        if state.last_win:
            return replace(state, best_streak=max(state.best_streak, state.run_length))
        return replace(state, worst_streak=max(state.worst_streak, state.run_length))

    @classmethod
    def _advance(cls, state: StreakState, trade: ClosedTrade) -> StreakState:
        # Binary classification: breakeven extends a non-win run
        is_win = trade.net_pnl > 0
        if state.last_win is None or is_win == state.last_win:
            return replace(state, run_length=state.run_length + 1, last_win=is_win)
        closed = cls._close_run(state)
        return replace(closed, run_length=1, last_win=is_win)

    @classmethod
    def compute_streaks(cls, trades: Sequence[ClosedTrade]) -> StreakState:
        """
        Left-to-right fold over the trades.

        The still-open final run becomes current_streak / streak_type and is
        also folded into best or worst.
        """
        state = reduce(cls._advance, trades, StreakState())
        if state.last_win is None:
            return state
        state = cls._close_run(state)
        return replace(
            state,
            current_streak=state.run_length,
            streak_type=StreakType.WINNING if state.last_win else StreakType.LOSING,
        )

    # -----------------------------------------------------------------
    # Aggregate
    # -----------------------------------------------------------------

    def compute(self, trades: Sequence[ClosedTrade]) -> TradingStats:
        n = len(trades)
        if n == 0:
            return TradingStats.empty()

        pnl = self._pnl_array(trades)
        wins = pnl[pnl > 0]
        losses = pnl[pnl < 0]
        n_breakeven = int(np.count_nonzero(pnl == 0))

        net_total = float(np.sum(pnl))
        total_fees = float(sum(t.fees for t in trades))
        gross_total = float(sum(value_or(t.gross_pnl, t.net_pnl) for t in trades))

        gross_wins = float(np.sum(wins))
        gross_losses = abs(float(np.sum(losses)))

        avg_win = float(np.mean(wins)) if len(wins) > 0 else 0.0
        avg_loss = abs(float(np.mean(losses))) if len(losses) > 0 else 0.0

        # Absent R counts as 0 here but is dropped in grouping_engine.
        # Known inconsistency between the two views, raised with product; keep both.
        avg_r = mean_of((t.r_multiple for t in trades), RPolicy.COERCE_TO_ZERO)

        streaks = self.compute_streaks(trades)

        return TradingStats(
            total_trades=n,
            open_trades=0,
            closed_trades=n,
            winning_trades=len(wins),
            losing_trades=len(losses),
            breakeven_trades=n_breakeven,
            win_rate=len(wins) / n * 100,
            total_pnl=gross_total,
            total_fees=total_fees,
            net_pnl=net_total,
            avg_win=avg_win,
            avg_loss=avg_loss,
            largest_win=float(np.max(wins)) if len(wins) > 0 else 0.0,
            largest_loss=float(np.min(losses)) if len(losses) > 0 else 0.0,
            profit_factor=profit_factor(gross_wins, gross_losses),
            avg_r_multiple=avg_r,
            expectancy=net_total / n,
            current_streak=streaks.current_streak,
            streak_type=streaks.streak_type,
            best_streak=streaks.best_streak,
            worst_streak=streaks.worst_streak,
        )
