"""
Decimal parsing and half-up rounding to integer cents.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from marketcore._errors import ValidationError

type Numeric = int | float | str | Decimal

_ONE = Decimal(1)
_HUNDRED = Decimal(100)


def as_decimal(value: Numeric, field: str = "value") -> Decimal:
    """Parse a number without passing through binary floating point."""
    if isinstance(value, bool):
        raise ValidationError("expected a number, got a boolean", field)
    try:
        match value:
            case Decimal():
                parsed = value
            case int():
                parsed = Decimal(value)
            case float():
                # repr() of a float is its shortest round-tripping decimal
                parsed = Decimal(repr(value))
            case str():
                parsed = Decimal(value.strip())
            case _:
                raise ValidationError(f"unsupported numeric type {type(value).__name__}", field)
    except InvalidOperation:
        raise ValidationError(f"malformed decimal {value!r}", field) from None
    if not parsed.is_finite():
        raise ValidationError(f"non-finite number {value!r}", field)
    return parsed


def round_half_up(value: Decimal | int) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(Decimal(value).quantize(_ONE, rounding=ROUND_HALF_UP))


def to_cents(value: Numeric, field: str = "amount") -> int:
    """
    Convert a major-unit amount to integer cents.

    Example:
        to_cents("33.33")  # 3333
        to_cents(0.125)    # 13
    """
    return round_half_up(as_decimal(value, field) * _HUNDRED)


def as_percentage(value: Numeric, field: str = "percentage") -> Decimal:
    """Parse a percentage and require it to lie in [0, 100]."""
    pct = as_decimal(value, field)
    if pct < 0 or pct > _HUNDRED:
        raise ValidationError(f"must be between 0 and 100, got {value}", field)
    return pct


__all__ = ("Numeric", "as_decimal", "round_half_up", "to_cents", "as_percentage")
