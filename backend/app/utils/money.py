"""Lenient numeric parsing for user-editable price fields.

Configurator inputs arrive as loosely typed strings; none of these helpers raise.
Malformed values collapse to a safe default (0 for money/percent, 1 for quantity).
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any

ZERO = Decimal('0')
CENT = Decimal('0.01')
# digits before the point; larger inputs are treated as malformed
MAX_INTEGER_DIGITS = 15
# wide enough to quantize sums and products of bounded inputs
WORK_PRECISION = 60


def to_decimal(raw: Any, default: Decimal = ZERO) -> Decimal:
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, Decimal):
        value = raw
    else:
        try:
            value = Decimal(str(raw).strip())
        except (InvalidOperation, ValueError, TypeError):
            return default
    if not value.is_finite() or value.adjusted() >= MAX_INTEGER_DIGITS:
        return default
    return value


def round2(value: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = WORK_PRECISION
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(raw: Any) -> Decimal:
    return round2(to_decimal(raw))


def to_quantity(raw: Any) -> int:
    """Integer quantity; fractional input truncates, anything below 1 becomes 1."""
    value = to_decimal(raw, default=Decimal(1))
    qty = int(value)
    return qty if qty >= 1 else 1


def money_str(value: Decimal) -> str:
    return str(round2(value))


__all__ = ['ZERO', 'to_decimal', 'round2', 'to_money', 'to_quantity', 'money_str']
