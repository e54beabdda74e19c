"""
Trade Stats: Trade Adapter

Bridges trade store rows → ClosedTrade objects.

Handles:
    - NaN-safe numeric coercion (bad net_pnl / fees → 0.0)
    - Falsy gross_pnl treated as missing (falls back to net_pnl downstream)
    - Falsy r_multiple treated as missing (journal stores undefined risk as
      NULL or 0, both mean "no R")
    - exit_date parsing from ISO strings, dates or datetimes
"""

from datetime import date, datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from .models import ClosedTrade
from .numeric import ABSENT, OptionalNumber, optional_number


def _parse_exit_date(raw: Any) -> Optional[datetime]:
    """Parse to a timezone-aware datetime. Unparseable input → None."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, date):
        dt = datetime(raw.year, raw.month, raw.day)
    else:
        try:
            dt = datetime.fromisoformat(str(raw).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _truthy_number(raw: Any) -> OptionalNumber:
    n = optional_number(raw)
    if n is ABSENT or n.value == 0:
        return ABSENT
    return n


def _optional_str(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    s = str(raw).strip()
    return s or None


def adapt_row(row: Mapping[str, Any]) -> ClosedTrade:
    """Convert one store row to a ClosedTrade. Never raises on bad numerics."""
    return ClosedTrade(
        trade_id=_optional_str(row.get("id")),
        symbol=str(row.get("symbol") or ""),
        net_pnl=row.get("net_pnl"),
        gross_pnl=_truthy_number(row.get("gross_pnl")),
        fees=row.get("total_fees"),
        r_multiple=_truthy_number(row.get("r_multiple")),
        exit_date=_parse_exit_date(row.get("exit_date")),
        strategy_id=_optional_str(row.get("strategy_id")),
        strategy_name=_optional_str(row.get("strategy_name")),
        direction=_optional_str(row.get("direction")),
    )


def adapt_rows(rows: Iterable[Mapping[str, Any]]) -> List[ClosedTrade]:
    """Convert store rows to ClosedTrades, preserving order."""
    return [adapt_row(row) for row in rows]
