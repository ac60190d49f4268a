"""
Pure totals — the preview path and the persisted path share these.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from marketcore._errors import ValidationError
from marketcore.money import (
    MoneyAmount,
    LineItem,
    Totals,
    Numeric,
    apply_percentage_split,
    apply_tax,
    line_total,
    sum_lines,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Line-Item Totals
# ═══════════════════════════════════════════════════════════════════════════════


def _deposit_percentage(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValidationError(f"must be an integer between 0 and 100, got {value!r}", "deposit_percentage")
    return value


def compute_line_item_totals(
    lines: Iterable[LineItem],
    tax_rate: Numeric = 0,
    shipping: MoneyAmount | None = None,
    deposit_percentage: int = 50,
    currency: str = "USD",
) -> Totals:
    """
    Subtotal, tax, shipping, total and the deposit/balance split.

    Line totals are summed in cents before tax is applied; balance is
    ``total - deposit``.

    Example:
        compute_line_item_totals(
            [LineItem.create("Widget", "100.00", 2), LineItem.create("Gadget", "50.00", 1)],
            tax_rate="0.08",
        )
        # subtotal 25000, tax 2000, total 27000
    """
    pct = _deposit_percentage(deposit_percentage)
    subtotal = sum_lines(lines, currency)
    tax = apply_tax(subtotal, tax_rate)
    ship = shipping if shipping is not None else MoneyAmount.zero(currency)
    total = subtotal + tax + ship
    deposit, balance = apply_percentage_split(total, pct)
    return Totals(
        subtotal=subtotal,
        tax=tax,
        shipping=ship,
        total=total,
        deposit=deposit,
        deposit_percentage=pct,
        balance=balance,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Wholesale / MOQ
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class WholesaleLine:
    unit_price: MoneyAmount
    quantity: int
    moq: int | None = None
    product_id: str | None = None


@dataclass(frozen=True, slots=True)
class MoqLine:
    line: WholesaleLine
    line_total: MoneyAmount
    moq_compliant: bool


@dataclass(frozen=True, slots=True)
class MoqViolation:
    index: int
    quantity: int
    moq: int
    product_id: str | None = None

    def __str__(self) -> str:
        subject = self.product_id or f"line {self.index + 1}"
        return f"{subject} requires minimum quantity of {self.moq}, but only {self.quantity} provided"


@dataclass(frozen=True, slots=True)
class WholesaleTotals:
    lines: tuple[MoqLine, ...]
    subtotal: MoneyAmount
    deposit: MoneyAmount
    balance: MoneyAmount
    deposit_percentage: int

    @property
    def total(self) -> MoneyAmount:
        return self.subtotal

    @property
    def moq_compliant(self) -> bool:
        return all(line.moq_compliant for line in self.lines)


def _is_moq_compliant(line: WholesaleLine) -> bool:
    return not line.moq or line.quantity >= line.moq


def compute_wholesale_with_moq(
    items: Sequence[WholesaleLine],
    deposit_percentage: int = 50,
    currency: str | None = None,
) -> WholesaleTotals:
    """
    Wholesale subtotal with per-line MOQ compliance.

    Non-compliant lines still count toward the subtotal; compliance is for
    the caller to act on before committing.
    """
    pct = _deposit_percentage(deposit_percentage)
    priced = tuple(
        MoqLine(item, line_total(item.unit_price, item.quantity), _is_moq_compliant(item))
        for item in items
    )
    subtotal = sum_lines((p.line_total for p in priced), currency)
    deposit, balance = apply_percentage_split(subtotal, pct)
    return WholesaleTotals(priced, subtotal, deposit, balance, pct)


def validate_moq(items: Sequence[WholesaleLine]) -> tuple[MoqViolation, ...]:
    return tuple(
        MoqViolation(i, item.quantity, item.moq, item.product_id)
        for i, item in enumerate(items)
        if item.moq and not _is_moq_compliant(item)
    )


__all__ = (
    "compute_line_item_totals",
    "WholesaleLine",
    "MoqLine",
    "MoqViolation",
    "WholesaleTotals",
    "compute_wholesale_with_moq",
    "validate_moq",
)
