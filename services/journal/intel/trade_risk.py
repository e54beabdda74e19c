# services/journal/intel/trade_risk.py
"""New-trade validation and planned risk metrics.

Risk math (per unit of quantity):
    LONG   risk = entry - stop      gain = target - entry
    SHORT  risk = stop - entry      gain = entry - target

    total_risk = |risk * quantity|
    planned R  = gain / |risk|      (None without a target or when risk == 0)
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import TradeDirection, TradeMode, utc_isoformat


class TradeValidationError(ValueError):
    """Payload failed validation. `issues` holds one message per problem."""

    def __init__(self, issues: List[str]):
        self.issues = issues
        super().__init__(", ".join(issues))


class PsychologyInput(BaseModel):
    """Trader state logged alongside a new trade."""
    tilt_score: Optional[int] = Field(default=None, ge=1, le=10)
    confidence_level: Optional[int] = Field(default=None, ge=1, le=10)
    stress_level: Optional[int] = Field(default=None, ge=1, le=10)
    emotion_tags: List[str] = Field(default_factory=list)
    discipline_rating: Optional[bool] = None
    notes: Optional[str] = Field(default=None, max_length=1000)


class NewTradeInput(BaseModel):
    """Entry form for opening a trade."""
    symbol: str = Field(min_length=1, max_length=20)
    direction: TradeDirection
    mode: TradeMode
    portfolio_id: str = Field(min_length=1)
    strategy_id: Optional[str] = None

    entry_price: float = Field(gt=0)
    quantity: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    take_profit: Optional[float] = Field(default=None, gt=0)

    setup_notes: Optional[str] = Field(default=None, max_length=2000)
    tags: List[str] = Field(default_factory=list)
    screenshot_url: Optional[str] = None
    chart_timeframe: Optional[str] = Field(default=None, max_length=10)

    psychology: Optional[PsychologyInput] = None

    @field_validator('symbol')
    @classmethod
    def upper_symbol(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError('Symbol is required')
        return v

    @field_validator('strategy_id', 'take_profit', 'screenshot_url', mode='before')
    @classmethod
    def blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('screenshot_url')
    @classmethod
    def http_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(('http://', 'https://')):
            raise ValueError('Screenshot URL must be an http(s) URL')
        return v


class CloseTradeInput(BaseModel):
    """Exit details for closing an open trade."""
    exit_price: float = Field(gt=0)
    fees: float = Field(default=0.0, ge=0)
    exit_date: Optional[datetime] = None
    exit_notes: Optional[str] = Field(default=None, max_length=2000)
    lessons_learned: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('exit_date', mode='before')
    @classmethod
    def blank_exit_date(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def exit_timestamp(self) -> Optional[str]:
        """Exit date in stored form (UTC). Naive input is taken as UTC."""
        return utc_isoformat(self.exit_date) if self.exit_date else None


def _issues(err: ValidationError) -> List[str]:
    issues = []
    for e in err.errors():
        loc = '.'.join(str(p) for p in e.get('loc', ()))
        issues.append(f"{loc}: {e.get('msg')}" if loc else str(e.get('msg')))
    return issues


def validate_new_trade(payload: Dict[str, Any]) -> NewTradeInput:
    """Validate a new-trade payload. Raises TradeValidationError listing every issue."""
    try:
        return NewTradeInput.model_validate(payload)
    except ValidationError as e:
        raise TradeValidationError(_issues(e)) from e


def validate_close_trade(payload: Dict[str, Any]) -> CloseTradeInput:
    try:
        return CloseTradeInput.model_validate(payload)
    except ValidationError as e:
        raise TradeValidationError(_issues(e)) from e


@dataclass(frozen=True)
class RiskMetrics:
    risk_per_unit: float
    total_risk: float
    r_multiple: Optional[float]


def compute_risk_metrics(trade: NewTradeInput) -> RiskMetrics:
    """Planned risk at entry, from stop distance and optional target."""
    is_long = trade.direction == TradeDirection.LONG
    risk_per_unit = (
        trade.entry_price - trade.stop_loss if is_long
        else trade.stop_loss - trade.entry_price
    )
    total_risk = abs(risk_per_unit * trade.quantity)

    r_multiple = None
    if trade.take_profit is not None and risk_per_unit != 0:
        potential_gain = (
            trade.take_profit - trade.entry_price if is_long
            else trade.entry_price - trade.take_profit
        )
        r_multiple = potential_gain / abs(risk_per_unit)

    return RiskMetrics(
        risk_per_unit=risk_per_unit,
        total_risk=total_risk,
        r_multiple=r_multiple,
    )


def realized_pnl(
    direction: str,
    entry_price: float,
    exit_price: float,
    quantity: float,
    fees: float = 0.0,
) -> Dict[str, float]:
    """Gross and net PnL of a round trip."""
    sign = 1.0 if direction == TradeDirection.LONG.value else -1.0
    gross = (exit_price - entry_price) * quantity * sign
    return {'gross_pnl': gross, 'net_pnl': gross - fees}


def realized_r_multiple(net_pnl: float, risk_amount: Optional[float]) -> Optional[float]:
    """Net PnL in units of the planned risk; None when risk was undefined."""
    if not risk_amount or risk_amount <= 0:
        return None
    return net_pnl / risk_amount
