"""
Trade Stats: Data Models

Frozen contracts between the trade store and the dashboard views.
The engines only ever read ClosedTrade and only ever emit the result types below.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .numeric import (
    ABSENT,
    Finite,
    OptionalNumber,
    ProfitFactor,
    optional_number,
    profit_factor_fields,
    to_float,
)


class StreakType(Enum):
    WINNING = "winning"
    LOSING = "losing"
    NONE = "none"


@dataclass(frozen=True)
class ClosedTrade:
    """
    One exited position.

    Status is never checked here: whoever builds the list is responsible for
    passing closed trades only. Required numerics are coerced NaN-safe to
    0.0 and optional numerics are normalized to OptionalNumber on creation,
    so a malformed record can never make an engine raise.
    """
    net_pnl: float
    symbol: str
    exit_date: Optional[datetime] = None
    fees: float = 0.0
    gross_pnl: OptionalNumber = ABSENT
    r_multiple: OptionalNumber = ABSENT
    strategy_id: Optional[str] = None

    # Presentation only; engines ignore these
    trade_id: Optional[str] = None
    strategy_name: Optional[str] = None
    direction: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "net_pnl", to_float(self.net_pnl))
        object.__setattr__(self, "fees", to_float(self.fees))
        object.__setattr__(self, "gross_pnl", optional_number(self.gross_pnl))
        object.__setattr__(self, "r_multiple", optional_number(self.r_multiple))


@dataclass(frozen=True)
class TradingStats:
    """Immutable snapshot of aggregate performance over a closed-trade set."""
    total_trades: int = 0
    open_trades: int = 0
    closed_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    breakeven_trades: int = 0
    win_rate: float = 0.0

    total_pnl: float = 0.0       # gross PnL (falls back to net per trade)
    total_fees: float = 0.0
    net_pnl: float = 0.0

    avg_win: float = 0.0
    avg_loss: float = 0.0        # magnitude
    largest_win: float = 0.0
    largest_loss: float = 0.0    # most negative net PnL
    profit_factor: ProfitFactor = field(default_factory=lambda: Finite(0.0))
    avg_r_multiple: float = 0.0
    expectancy: float = 0.0

    current_streak: int = 0
    streak_type: StreakType = StreakType.NONE
    best_streak: int = 0
    worst_streak: int = 0

    @classmethod
    def empty(cls) -> "TradingStats":
        """The distinguished all-zero snapshot for an empty trade set."""
        return cls()

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("profit_factor")
        d.update(profit_factor_fields(self.profit_factor))
        d["streak_type"] = self.streak_type.value
        return d


@dataclass(frozen=True)
class EquityCurvePoint:
    date: str
    pnl: float
    cumulative_pnl: float
    trade_count: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class StrategyPerformance:
    id: str
    name: str
    trades: int
    win_rate: float
    avg_r_multiple: float
    total_pnl: float
    profit_factor: ProfitFactor = field(default_factory=lambda: Finite(0.0))

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("profit_factor")
        d.update(profit_factor_fields(self.profit_factor))
        return d


@dataclass(frozen=True)
class SymbolPerformance:
    symbol: str
    trades: int
    win_rate: float
    total_pnl: float
    avg_r_multiple: float

    def to_dict(self) -> dict:
        return asdict(self)
