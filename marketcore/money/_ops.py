"""
Money operations — pure, no I/O.

Every function rounds at most once per independent quantity.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from marketcore._errors import ValidationError
from marketcore._types import require_aware
from marketcore.money._rounding import (
    Numeric,
    as_decimal,
    as_percentage,
    round_half_up,
)
from marketcore.money._types import MoneyAmount, LineItem

# ═══════════════════════════════════════════════════════════════════════════════
# Lines
# ═══════════════════════════════════════════════════════════════════════════════


def line_total(
    unit_price: MoneyAmount | Numeric,
    quantity: int,
    currency: str = "USD",
) -> MoneyAmount:
    """
    Unit price x quantity.

    A decimal unit price is converted to cents (half-up) before multiplying,
    so ``line_total("33.33", 3)`` is 9999 cents, not ``round(99.99 * 100)``.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(f"quantity must be a positive integer, got {quantity!r}", "quantity")
    price = unit_price if isinstance(unit_price, MoneyAmount) else MoneyAmount.of(unit_price, currency)
    return price.times(quantity)


def sum_lines(
    lines: Iterable[MoneyAmount | LineItem],
    currency: str | None = None,
) -> MoneyAmount:
    """
    Sum already-rounded line totals.

    Currency defaults to the first line's; an empty input sums to zero USD.
    """
    amounts = [line.line_total if isinstance(line, LineItem) else line for line in lines]
    code = currency or (amounts[0].currency if amounts else "USD")
    total = MoneyAmount.zero(code)
    for amount in amounts:
        total = total + amount
    return total


# ═══════════════════════════════════════════════════════════════════════════════
# Percentages
# ═══════════════════════════════════════════════════════════════════════════════


def percentage_of(cents: int, percentage: Numeric) -> int:
    return round_half_up(Decimal(cents) * as_percentage(percentage) / 100)


def apply_percentage_split(
    total: MoneyAmount,
    percentage: Numeric,
) -> tuple[MoneyAmount, MoneyAmount]:
    """
    Split ``total`` into ``(part, remainder)``.

    ``part`` is rounded half-up, ``remainder`` is whatever is left, so the
    two always add back to ``total`` exactly.

    Example:
        deposit, balance = apply_percentage_split(MoneyAmount(9999), 50)
        # (5000, 4999)
    """
    part = percentage_of(total.cents, percentage)
    return (
        MoneyAmount(part, total.currency),
        MoneyAmount(total.cents - part, total.currency),
    )


def apply_promotional_discount(
    original_price: MoneyAmount,
    discount_percentage: Numeric | None,
    promotion_active: bool,
    promotion_end_date: datetime | None,
    now: datetime,
) -> tuple[MoneyAmount, MoneyAmount]:
    """
    Returns ``(effective_price, discount_amount)``.

    The promotion counts only while active and before its end date; an end
    date equal to ``now`` has already expired.
    """
    pct = as_percentage(discount_percentage or 0, "discount_percentage")
    require_aware(promotion_end_date, "promotion_end_date")
    require_aware(now, "now")
    live = promotion_active and (promotion_end_date is None or promotion_end_date > now)
    if not live or not pct:
        return original_price, MoneyAmount.zero(original_price.currency)

    discount = percentage_of(original_price.cents, pct)
    return (
        MoneyAmount(original_price.cents - discount, original_price.currency),
        MoneyAmount(discount, original_price.currency),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Rates
# ═══════════════════════════════════════════════════════════════════════════════


def apply_tax(subtotal: MoneyAmount, rate: Numeric) -> MoneyAmount:
    """Tax at ``rate`` (a fraction: 0.08 is 8%)."""
    fraction = as_decimal(rate, "tax_rate")
    if fraction < 0:
        raise ValidationError("tax rate cannot be negative", "tax_rate")
    return MoneyAmount(round_half_up(Decimal(subtotal.cents) * fraction), subtotal.currency)


def apply_rate(amount: MoneyAmount, rate: Numeric, currency: str) -> MoneyAmount:
    """Convert ``amount`` with an exchange rate, rounding once."""
    factor = as_decimal(rate, "rate")
    if factor <= 0:
        raise ValidationError(f"exchange rate must be positive, got {rate}", "rate")
    return MoneyAmount(round_half_up(Decimal(amount.cents) * factor), currency)


__all__ = (
    "line_total",
    "sum_lines",
    "percentage_of",
    "apply_percentage_split",
    "apply_promotional_discount",
    "apply_tax",
    "apply_rate",
)
