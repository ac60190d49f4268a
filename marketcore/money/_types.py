"""
Money value types.

All amounts are integer minor units (cents). Decimal forms exist only at the
edges: ``MoneyAmount.of`` on the way in, ``to_decimal`` / ``format_money`` on
the way out.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from marketcore._errors import ValidationError
from marketcore._types import require_aware
from marketcore.money._rounding import Numeric, to_cents, as_percentage

# ═══════════════════════════════════════════════════════════════════════════════
# MoneyAmount
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MoneyAmount:
    """
    Non-negative integer cents in one currency.

    Example:
        price = MoneyAmount.of("19.99", "usd")   # MoneyAmount(1999, "USD")
        line = price.times(3)                    # MoneyAmount(5997, "USD")
    """

    cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        if isinstance(self.cents, bool) or not isinstance(self.cents, int):
            raise ValidationError("amount must be integer cents", "cents")
        if self.cents < 0:
            raise ValidationError(f"amount cannot be negative, got {self.cents}", "cents")
        code = self.currency.strip().upper() if isinstance(self.currency, str) else ""
        if len(code) != 3 or not code.isalpha():
            raise ValidationError(f"invalid currency code {self.currency!r}", "currency")
        object.__setattr__(self, "currency", code)

    @classmethod
    def of(cls, value: Numeric, currency: str = "USD") -> MoneyAmount:
        """Build from a major-unit amount (``"100.00"``, ``Decimal``, ``33.33``)."""
        return cls(to_cents(value), currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> MoneyAmount:
        return cls(0, currency)

    def __add__(self, other: MoneyAmount) -> MoneyAmount:
        self._same_currency(other)
        return MoneyAmount(self.cents + other.cents, self.currency)

    def __sub__(self, other: MoneyAmount) -> MoneyAmount:
        self._same_currency(other)
        return MoneyAmount(self.cents - other.cents, self.currency)

    def times(self, quantity: int) -> MoneyAmount:
        return MoneyAmount(self.cents * quantity, self.currency)

    def to_decimal(self) -> Decimal:
        return Decimal(self.cents) / 100

    def _same_currency(self, other: MoneyAmount) -> None:
        if other.currency != self.currency:
            raise ValidationError(
                f"currency mismatch: {self.currency} vs {other.currency}", "currency"
            )

    def __str__(self) -> str:
        return f"{self.to_decimal():.2f} {self.currency}"


# ═══════════════════════════════════════════════════════════════════════════════
# LineItem
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItem:
    """Priced line. ``line_total`` is computed once, at creation."""

    description: str
    unit_price: MoneyAmount
    quantity: int
    line_total: MoneyAmount

    def __post_init__(self) -> None:
        if self.line_total != self.unit_price.times(self.quantity):
            raise ValidationError("line total does not match unit price x quantity", "line_total")

    @classmethod
    def create(
        cls,
        description: str,
        unit_price: MoneyAmount | Numeric,
        quantity: int,
        currency: str = "USD",
    ) -> LineItem:
        from marketcore.money._ops import line_total

        price = unit_price if isinstance(unit_price, MoneyAmount) else MoneyAmount.of(unit_price, currency)
        return cls(description, price, quantity, line_total(price, quantity))


# ═══════════════════════════════════════════════════════════════════════════════
# Totals
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Totals:
    """
    Order/quotation totals.

    Balance is derived as ``total - deposit``; construction fails if the
    parts do not reconcile to the cent.
    """

    subtotal: MoneyAmount
    tax: MoneyAmount
    shipping: MoneyAmount
    total: MoneyAmount
    deposit: MoneyAmount
    deposit_percentage: int
    balance: MoneyAmount

    def __post_init__(self) -> None:
        if not 0 <= self.deposit_percentage <= 100:
            raise ValidationError("must be between 0 and 100", "deposit_percentage")
        if self.subtotal.cents + self.tax.cents + self.shipping.cents != self.total.cents:
            raise ValidationError("subtotal + tax + shipping must equal total", "total")
        if self.deposit.cents + self.balance.cents != self.total.cents:
            raise ValidationError("deposit + balance must equal total", "balance")

    @property
    def currency(self) -> str:
        return self.total.currency


# ═══════════════════════════════════════════════════════════════════════════════
# Promotion
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Promotion:
    """Time-bounded percentage discount attached to a product."""

    active: bool = False
    discount_percentage: Decimal = Decimal(0)
    end_date: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "discount_percentage", as_percentage(self.discount_percentage, "discount_percentage")
        )
        require_aware(self.end_date, "end_date")

    def applies_at(self, now: datetime) -> bool:
        """Active, and either open-ended or ending strictly after ``now``."""
        return self.active and (self.end_date is None or self.end_date > now)


__all__ = ("MoneyAmount", "LineItem", "Totals", "Promotion")
