"""
Trade Stats: Equity Engine

Cumulative PnL curve, one point per trade, in the order supplied.

Input contract: trades already filtered to a non-null exit date and sorted
by exit date ascending. The engine does not re-sort; trade_count is the
1-based position in the supplied sequence.
"""

from typing import List, Sequence

from .models import ClosedTrade, EquityCurvePoint


class EquityEngine:
    """Stateless equity curve builder."""

    @staticmethod
    def _day(trade: ClosedTrade) -> str:
        if trade.exit_date is None:
            return ""
        return trade.exit_date.date().isoformat()

    def build(self, trades: Sequence[ClosedTrade]) -> List[EquityCurvePoint]:
        points: List[EquityCurvePoint] = []
        cumulative_pnl = 0.0

        for idx, trade in enumerate(trades, start=1):
            cumulative_pnl += trade.net_pnl
            points.append(EquityCurvePoint(
                date=self._day(trade),
                pnl=trade.net_pnl,
                cumulative_pnl=cumulative_pnl,
                trade_count=idx,
            ))

        return points
