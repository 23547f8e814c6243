"""
Fixed-point money helpers.

All monetary values are Decimal with two fractional digits, rounded half-up.
Binary floats are rejected at the boundary: JSON clients send money as strings
("45.00") or integers.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from .errors import ValidationError

CENT = Decimal("0.01")
RATE_STEP = Decimal("0.0001")
ZERO = Decimal("0.00")

# Matches the DECIMAL(10,2) columns
MAX_AMOUNT = Decimal("99999999.99")
MAX_PRICE = Decimal("9999999.99")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a decimal amount")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be a string or integer, not a float")
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, int):
        d = Decimal(value)
    elif isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation:
            raise ValidationError(f"{field} must be a decimal amount")
    else:
        raise ValidationError(f"{field} must be a decimal amount")

    if not d.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    return d


def to_money(value, field: str = "amount") -> Decimal:
    """Coerce Decimal/int/str to a 2-digit Decimal (half-up)."""
    return quantize(_to_decimal(value, field))


def to_rate(value, field: str = "rate") -> Decimal:
    """Coerce a fractional rate such as "0.12"; must be within [0, 1]."""
    d = _to_decimal(value, field).quantize(RATE_STEP, rounding=ROUND_HALF_UP)
    if d < 0 or d > 1:
        raise ValidationError(f"{field} must be between 0 and 1")
    return d


def money_str(value: Decimal | None) -> str | None:
    if value is None:
        return None
    return str(quantize(Decimal(value)))


def format_money(value: Decimal | None, symbol: str = "") -> str:
    if value is None:
        return "N/A"
    return f"{symbol}{quantize(Decimal(value)):,.2f}"
