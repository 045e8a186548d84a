from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import TYPE_CHECKING, Any, Dict

if TYPE_CHECKING:
    from backend.risk.calculator import PositionPlan


PLACEHOLDER = "--"
LOTS_UNIT = "手"

LEVERAGE_FIELDS = frozenset({"actual_leverage"})
LOTS_FIELDS = frozenset({"open_quantity"})


def _is_finite(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError, OverflowError):
        return False


def _quantize(value: float, decimals: int) -> Decimal:
    # str() gives the shortest decimal form, so 2.005 rounds as written rather than as 2.00499...
    number = Decimal(str(float(value)))
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + decimals + 2)
        return number.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def format_number(value: Any, decimals: int = 2) -> float:
    """
    Round half away from zero to `decimals` places.

    NaN, infinities and non-numeric values collapse to 0.
    """
    if not _is_finite(value):
        return 0.0
    return float(_quantize(float(value), decimals))


def _fixed(value: float, decimals: int) -> str:
    return f"{_quantize(value, decimals):.{decimals}f}"


def format_currency(value: Any) -> str:
    if not _is_finite(value):
        return "$ 0.00"
    return "$ " + _fixed(float(value), 2)


def format_leverage(value: Any) -> str:
    if not _is_finite(value):
        return "0 x"
    return _fixed(float(value), 2) + " x"


def format_lots(value: Any) -> str:
    if not _is_finite(value):
        return f"0.00 {LOTS_UNIT}"
    number = float(value)
    # tiny positions would display as 0.00
    if 0 < number < 0.01:
        return f"{_fixed(number, 6)} {LOTS_UNIT}"
    return f"{_fixed(number, 2)} {LOTS_UNIT}"


def format_field(name: str, value: Any) -> str:
    if name in LEVERAGE_FIELDS:
        return format_leverage(value)
    if name in LOTS_FIELDS:
        return format_lots(value)
    return format_currency(value)


def format_results(plan: "PositionPlan") -> Dict[str, str]:
    """Display strings for every result field, keyed like PositionPlan.to_dict()."""
    return {name: format_field(name, value) for name, value in plan.to_dict().items()}


def placeholder_results() -> Dict[str, str]:
    from backend.risk.calculator import RESULT_FIELDS

    return {name: PLACEHOLDER for name in RESULT_FIELDS}
