"""
Fixed-point money helpers.

All pool fund amounts are Decimals with exactly two places. Binary floats
are rejected at the boundary instead of being rounded.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from housing_ledger.app.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Amounts are persisted as signed 64-bit cents
MAX_CENTS = 2 ** 63 - 1
MIN_CENTS = -(2 ** 63)
MAX_AMOUNT = Decimal(MAX_CENTS) * CENT
MIN_AMOUNT = Decimal(MIN_CENTS) * CENT


def to_amount(value: Any, field: str = "amount") -> Decimal:
    """
    Parse a monetary value into a 2-place Decimal.

    Accepts Decimal, int and numeric strings. Floats, values with more
    than two decimal places and values outside the storable cent range
    raise ValidationError.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be a decimal string or Decimal, not {type(value).__name__}", field=field)
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} is not a valid decimal amount: {value!r}", field=field)
    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite", field=field)
    if amount > MAX_AMOUNT or amount < MIN_AMOUNT:
        raise ValidationError(f"{field} is out of range: {value}", field=field)
    try:
        quantized = amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} is not a valid decimal amount: {value!r}", field=field)
    if amount.as_tuple().exponent < -2 and amount != quantized:
        raise ValidationError(f"{field} has more than two decimal places: {value}", field=field)
    return quantized


def to_non_negative_amount(value: Any, field: str = "amount") -> Decimal:
    amount = to_amount(value, field)
    if amount < ZERO:
        raise ValidationError(f"{field} must not be negative", field=field)
    return amount


def optional_amount(value: Any, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    return to_amount(value, field)


def total(values) -> Decimal:
    """Sum of Decimals, 0.00 for an empty iterable."""
    result = ZERO
    for value in values:
        result += value
    return result.quantize(CENT)
