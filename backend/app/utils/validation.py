"""Request payload coercion helpers.

Each helper returns the cleaned value or aborts with 400 so route handlers
read top to bottom without try/except noise.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional
from flask import abort

from app.utils.money import MAX_INTEGER_DIGITS, round2

# money columns are Numeric(10, 2)
MONEY_LIMIT = Decimal('100000000')


def validate_choice(value: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that value is inside allowed; returns it for inline usage."""
    if value not in allowed:
        abort(400, description=f"{field_name} invalid")
    return value


def require_str(data: dict, field: str, max_len: Optional[int] = None) -> str:
    val = data.get(field)
    if not isinstance(val, str) or not val.strip():
        abort(400, description=f'{field} required')
    val = val.strip()
    if max_len is not None and len(val) > max_len:
        abort(400, description=f'{field} too long')
    return val


def optional_str(data: dict, field: str, default: Optional[str] = None) -> Optional[str]:
    val = data.get(field, default)
    if val is None:
        return None
    if not isinstance(val, str):
        abort(400, description=f'{field} must be string')
    return val


def coerce_int(raw: Any, field: str, required: bool = True) -> Optional[int]:
    if raw in (None, ''):
        if required:
            abort(400, description=f'{field} required')
        return None
    if isinstance(raw, bool):
        abort(400, description=f'{field} must be int')
    try:
        return int(raw)
    except (TypeError, ValueError):
        abort(400, description=f'{field} must be int')


def coerce_money(raw: Any, field: str, required: bool = True, allow_negative: bool = False) -> Optional[Decimal]:
    """Parse a decimal amount (number or numeric string) to 2 places."""
    if raw in (None, ''):
        if required:
            abort(400, description=f'{field} required')
        return None
    if isinstance(raw, bool):
        abort(400, description=f'{field} must be numeric')
    try:
        val = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        abort(400, description=f'{field} must be numeric')
    if not val.is_finite():
        abort(400, description=f'{field} must be numeric')
    if val.adjusted() >= MAX_INTEGER_DIGITS:
        abort(400, description=f'{field} too large')
    if val < 0 and not allow_negative:
        abort(400, description=f'{field} cannot be negative')
    val = round2(val)
    if abs(val) >= MONEY_LIMIT:
        abort(400, description=f'{field} too large')
    return val


def coerce_bool(raw: Any, field: str) -> bool:
    if isinstance(raw, bool):
        return raw
    abort(400, description=f'{field} must be boolean')


__all__ = ['validate_choice', 'require_str', 'optional_str', 'coerce_int', 'coerce_money', 'coerce_bool']
