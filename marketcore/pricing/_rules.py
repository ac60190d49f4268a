"""
Wholesale order rules: MOQ, payment terms, minimum order value, deposit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from marketcore._errors import ValidationError
from marketcore.domain import WholesaleTerms
from marketcore.money import MoneyAmount, format_money
from marketcore.pricing._calc import (
    MoqViolation,
    WholesaleLine,
    WholesaleTotals,
    compute_wholesale_with_moq,
    validate_moq,
)

NET_DAYS: dict[str, int] = {
    "Net 30": 30,
    "Net 60": 60,
    "Net 90": 90,
    "Immediate": 0,
}


@dataclass(frozen=True, slots=True)
class WholesaleValidation:
    totals: WholesaleTotals
    payment_terms: str
    errors: tuple[str, ...]
    moq_violations: tuple[MoqViolation, ...]
    minimum_order_value: MoneyAmount
    shortfall: MoneyAmount

    @property
    def valid(self) -> bool:
        return not self.errors


def validate_wholesale_order(
    lines: Sequence[WholesaleLine],
    terms: WholesaleTerms,
    payment_terms: str,
) -> WholesaleValidation:
    """
    Run every rule and collect every failure.

    The deposit split uses ``terms.deposit_percentage``.
    """
    if not lines:
        raise ValidationError("wholesale order needs at least one item", "items")

    totals = compute_wholesale_with_moq(lines, terms.deposit_percentage)
    errors: list[str] = []

    violations = validate_moq(lines)
    errors.extend(str(v) for v in violations)

    if payment_terms not in terms.allowed_payment_terms:
        errors.append(f"Payment term '{payment_terms}' is not allowed")

    minimum = terms.minimum_order_value
    if totals.subtotal.currency != minimum.currency:
        errors.append(
            f"Order currency {totals.subtotal.currency} does not match terms currency {minimum.currency}"
        )
        shortfall = MoneyAmount.zero(minimum.currency)
    else:
        shortfall = MoneyAmount(max(minimum.cents - totals.subtotal.cents, 0), minimum.currency)
        if shortfall.cents:
            errors.append(
                f"Minimum order value not met. Required: {format_money(minimum)}, "
                f"Current: {format_money(totals.subtotal)}, Shortfall: {format_money(shortfall)}"
            )

    return WholesaleValidation(
        totals=totals,
        payment_terms=payment_terms,
        errors=tuple(errors),
        moq_violations=violations,
        minimum_order_value=minimum,
        shortfall=shortfall,
    )


def payment_due_date(order_date: datetime, payment_terms: str) -> datetime:
    """``Net N`` adds N days; ``Immediate`` is due on the order date."""
    days = NET_DAYS.get(payment_terms)
    if days is None:
        raise ValidationError(f"Unknown payment terms: {payment_terms}", "payment_terms")
    return order_date + timedelta(days=days)


__all__ = ("NET_DAYS", "WholesaleValidation", "validate_wholesale_order", "payment_due_date")
