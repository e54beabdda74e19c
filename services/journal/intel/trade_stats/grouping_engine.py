"""
Trade Stats: Grouping Engine

Per-symbol and per-strategy rollups.

Per group:
    trades          count
    win_rate        wins / trades × 100
    total_pnl       Σ net_pnl
    avg_r_multiple  mean of PRESENT R-multiples only (absent R excluded
                    from numerator and denominator; 0.0 if none present)

Note the R-multiple policy differs from stats_engine, which counts absent R
as 0. Both behaviors are kept as the dashboard has always shown them.

Ordering:
    by_symbol    sorted by total_pnl descending
    by_strategy  first-seen source order, no implicit sort
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .models import ClosedTrade, StrategyPerformance, SymbolPerformance
from .numeric import OptionalNumber, RPolicy, mean_of, profit_factor


@dataclass
class _GroupTally:
    trades: int = 0
    wins: int = 0
    pnl: float = 0.0
    gross_wins: float = 0.0
    gross_losses: float = 0.0
    r_multiples: List[OptionalNumber] = field(default_factory=list)
    name: Optional[str] = None

    def add(self, trade: ClosedTrade) -> None:
        self.trades += 1
        self.pnl += trade.net_pnl
        if trade.net_pnl > 0:
            self.wins += 1
            self.gross_wins += trade.net_pnl
        elif trade.net_pnl < 0:
            self.gross_losses += abs(trade.net_pnl)
        self.r_multiples.append(trade.r_multiple)
        if self.name is None and trade.strategy_name:
            self.name = trade.strategy_name

    @property
    def win_rate(self) -> float:
        return (self.wins / self.trades) * 100 if self.trades > 0 else 0.0

    @property
    def avg_r_multiple(self) -> float:
        return mean_of(self.r_multiples, RPolicy.EXCLUDE)


class GroupingEngine:
    """Stateless grouped-performance computation."""

    @staticmethod
    def _partition(
        trades: Sequence[ClosedTrade],
        key: Callable[[ClosedTrade], Optional[str]],
    ) -> Dict[str, _GroupTally]:
        """Group by key in first-seen order. Trades with no key are skipped."""
        groups: Dict[str, _GroupTally] = {}
        for trade in trades:
            k = key(trade)
            if k is None:
                continue
            groups.setdefault(k, _GroupTally()).add(trade)
        return groups

    def by_symbol(self, trades: Sequence[ClosedTrade]) -> List[SymbolPerformance]:
        groups = self._partition(trades, lambda t: t.symbol)
        performance = [
            SymbolPerformance(
                symbol=symbol,
                trades=g.trades,
                win_rate=g.win_rate,
                total_pnl=g.pnl,
                avg_r_multiple=g.avg_r_multiple,
            )
            for symbol, g in groups.items()
        ]
        return sorted(performance, key=lambda p: p.total_pnl, reverse=True)

    def by_strategy(
        self,
        trades: Sequence[ClosedTrade],
        names: Optional[Mapping[str, str]] = None,
    ) -> List[StrategyPerformance]:
        """
        Strategy rollup in source order.

        Display names come from `names` when given, else from the first
        trade in the group carrying a strategy_name, else the id itself.
        """
        names = names or {}
        groups = self._partition(trades, lambda t: t.strategy_id)
        return [
            StrategyPerformance(
                id=strategy_id,
                name=names.get(strategy_id) or g.name or strategy_id,
                trades=g.trades,
                win_rate=g.win_rate,
                avg_r_multiple=g.avg_r_multiple,
                total_pnl=g.pnl,
                profit_factor=profit_factor(g.gross_wins, g.gross_losses),
            )
            for strategy_id, g in groups.items()
        ]
