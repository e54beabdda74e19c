# services/journal/intel/models.py
"""Data models for the journal service."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, Mapping, Optional, TypeVar

T = TypeVar("T")


class TradeDirection(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TradeStatus(str, Enum):
    PENDING = "PENDING"
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class TradeMode(str, Enum):
    LIVE = "LIVE"
    BACKTEST = "BACKTEST"


def utc_isoformat(dt: datetime) -> str:
    """
    Canonical stored timestamp: UTC, fixed-width microseconds.

    Every timestamp column is written in this form so text comparison in
    SQL matches chronological order. Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec='microseconds')


def _iso_or_none(raw: Any) -> Optional[str]:
    """Normalize a date filter to the stored form; unparseable input is dropped."""
    if not raw:
        return None
    if isinstance(raw, datetime):
        return utc_isoformat(raw)
    try:
        dt = datetime.fromisoformat(str(raw).strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    return utc_isoformat(dt)


@dataclass(frozen=True)
class DashboardFilters:
    """Optional narrowing of the closed-trade set feeding the dashboard."""
    portfolio_id: Optional[str] = None
    strategy_id: Optional[str] = None
    mode: Optional[TradeMode] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'date_from', _iso_or_none(self.date_from))
        object.__setattr__(self, 'date_to', _iso_or_none(self.date_to))

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> 'DashboardFilters':
        """Build from request query params. Unknown mode or bad dates are ignored."""
        mode_raw = (query.get('mode') or '').upper()
        return cls(
            portfolio_id=query.get('portfolio_id') or None,
            strategy_id=query.get('strategy_id') or None,
            mode=TradeMode(mode_raw) if mode_raw in TradeMode.__members__ else None,
            date_from=query.get('from'),
            date_to=query.get('to'),
        )


@dataclass
class RecentTrade:
    """A trade row for the recent-trades panel (any status)."""
    id: str
    symbol: str
    direction: str
    status: str
    entry_date: str
    entry_price: float
    quantity: float
    net_pnl: float
    r_multiple: float
    exit_date: Optional[str] = None
    exit_price: Optional[float] = None
    strategy_name: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PortfolioSummary:
    """Balance and performance rollup for one portfolio."""
    id: str
    name: str
    type: str
    initial_balance: float
    current_balance: float
    total_pnl: float
    return_percent: float
    trades: int
    win_rate: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ActionResult(Generic[T]):
    """Outcome of an analytics call: data on success, a message on failure."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> 'ActionResult[T]':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> 'ActionResult[T]':
        return cls(success=False, error=error)

    def to_dict(self, render=None) -> dict:
        """Envelope for the API. `render` converts data to JSON-safe form."""
        if not self.success:
            return {'success': False, 'error': self.error}
        data: Any = render(self.data) if render else self.data
        return {'success': True, 'data': data}
