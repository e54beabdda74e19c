"""
Trade Stats: Numeric Primitives

Optional numeric fields are an explicit sum type: Present(value) or ABSENT.
Callers choose how absence is treated with a named RPolicy instead of ad-hoc
`or 0` coercion, because the engines use both policies:

    stats_engine     RPolicy.COERCE_TO_ZERO   absent R counts as 0 in the mean
    grouping_engine  RPolicy.EXCLUDE          absent R is dropped from the mean

Profit factor is a tagged variant: Finite(value) or UNBOUNDED ("no downside").
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union


class RPolicy(Enum):
    """How an absent optional number participates in a mean."""
    COERCE_TO_ZERO = "coerce_to_zero"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class Present:
    value: float


@dataclass(frozen=True)
class Absent:
    pass


ABSENT = Absent()

OptionalNumber = Union[Present, Absent]


def to_float(raw: Any) -> float:
    """
    NaN-safe numeric coercion.

    Accepts numbers and numeric strings. Anything unparseable, NaN or
    infinite becomes 0.0. Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        value = float(str(raw).strip()) if isinstance(raw, str) else float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value


def optional_number(raw: Any) -> OptionalNumber:
    """Wrap a raw value: None, empty or unparseable input is ABSENT."""
    if isinstance(raw, (Present, Absent)):
        return raw
    if raw is None or isinstance(raw, bool):
        return ABSENT
    if isinstance(raw, str) and not raw.strip():
        return ABSENT
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return ABSENT
    if not math.isfinite(value):
        return ABSENT
    return Present(value)


def value_or(number: OptionalNumber, default: float) -> float:
    return number.value if isinstance(number, Present) else default


def mean_of(numbers: Iterable[OptionalNumber], policy: RPolicy) -> float:
    """
    Mean of optional numbers under an explicit absence policy.

    COERCE_TO_ZERO: absent values add 0 to the sum and 1 to the count.
    EXCLUDE: absent values are dropped from both sum and count.
    Returns 0.0 when the effective count is zero.
    """
    total = 0.0
    count = 0
    for n in numbers:
        if isinstance(n, Present):
            total += n.value
            count += 1
        elif policy is RPolicy.COERCE_TO_ZERO:
            count += 1
    return total / count if count else 0.0


# ---------------------------------------------------------------------------
# Profit factor
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Finite:
    value: float


@dataclass(frozen=True)
class Unbounded:
    """Gross wins with zero gross losses."""


UNBOUNDED = Unbounded()

ProfitFactor = Union[Finite, Unbounded]


def profit_factor(gross_wins: float, gross_losses: float) -> ProfitFactor:
    """
    gross_wins / gross_losses with the no-downside edge policy.

    gross_losses > 0             → Finite(ratio)
    gross_losses == 0, wins > 0  → UNBOUNDED
    both zero                    → Finite(0.0)
    """
    if gross_losses > 0:
        return Finite(gross_wins / gross_losses)
    if gross_wins > 0:
        return UNBOUNDED
    return Finite(0.0)


def profit_factor_fields(pf: ProfitFactor) -> dict:
    """JSON-safe rendering. UNBOUNDED has no numeric value, so it is flagged."""
    if isinstance(pf, Unbounded):
        return {"profit_factor": None, "profit_factor_unbounded": True}
    return {"profit_factor": pf.value, "profit_factor_unbounded": False}
