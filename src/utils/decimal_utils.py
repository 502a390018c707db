"""
Decimal Utilities Module - Consistent handling of money arithmetic
Multipliers arrive as floats from the growth curve; payouts are computed in
Decimal and floored to whole currency units so float artefacts never leak
into balances (100 * 1.15 must pay 115, not floor(114.99999999999999)).
"""

import logging
import math
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

logger = logging.getLogger(__name__)

Numeric = Union[Decimal, float, str, int]

ZERO = Decimal("0")
ONE = Decimal("1")
MULTIPLIER_PRECISION = Decimal("0.01")

__all__ = [
    "MULTIPLIER_PRECISION",
    "ONE",
    "ZERO",
    "floor_units",
    "is_finite_number",
    "payout_for",
    "profit_for",
    "round_multiplier",
    "to_decimal",
]


def to_decimal(value: Numeric, default: Decimal | None = None) -> Decimal:
    """
    Safely convert value to Decimal

    Floats go through str() so 2.1 becomes Decimal("2.1"), not its binary
    expansion.

    Raises:
        ValueError if conversion fails and no default provided
    """
    if isinstance(value, Decimal):
        return value

    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        if default is not None:
            logger.warning(f"Failed to convert {value} to Decimal: {e}, using default {default}")
            return default
        raise ValueError(f"Cannot convert {value} to Decimal: {e}")


def is_finite_number(value: Numeric) -> bool:
    """True for real, finite numbers (rejects NaN, Infinity and non-numerics)"""
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    return False


def floor_units(value: Numeric) -> int:
    """Floor a Decimal-convertible value to a whole number of currency units"""
    return int(to_decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def payout_for(amount: int, multiplier: Numeric) -> int:
    """Gross return for a stake cashed out at multiplier: floor(amount * multiplier)"""
    return floor_units(Decimal(amount) * to_decimal(multiplier))


def profit_for(amount: int, multiplier: Numeric) -> int:
    """Net profit for a stake cashed out at multiplier"""
    return payout_for(amount, multiplier) - amount


def round_multiplier(multiplier: Numeric) -> Decimal:
    """Round a multiplier to 2 decimal places (display and logs only)"""
    return to_decimal(multiplier).quantize(MULTIPLIER_PRECISION, rounding=ROUND_HALF_UP)
