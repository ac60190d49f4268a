"""
Pricing — totals, deposits, MOQ compliance, conversions, refunds.

    from marketcore import pricing as P

    totals = P.compute_line_item_totals(lines, tax_rate="0.08")
    service = P.PricingService(store, rate_provider)
"""

from __future__ import annotations

from marketcore.pricing._calc import (
    compute_line_item_totals,
    WholesaleLine,
    MoqLine,
    MoqViolation,
    WholesaleTotals,
    compute_wholesale_with_moq,
    validate_moq,
)
from marketcore.pricing._rules import (
    NET_DAYS,
    WholesaleValidation,
    validate_wholesale_order,
    payment_due_date,
)
from marketcore.pricing._service import (
    DEFAULT_CART_TAX_RATE,
    CartLine,
    CartTotals,
    RefundKind,
    RefundLine,
    PricingService,
    refund_for,
)

__all__ = (
    "compute_line_item_totals",
    "WholesaleLine",
    "MoqLine",
    "MoqViolation",
    "WholesaleTotals",
    "compute_wholesale_with_moq",
    "validate_moq",
    "NET_DAYS",
    "WholesaleValidation",
    "validate_wholesale_order",
    "payment_due_date",
    "DEFAULT_CART_TAX_RATE",
    "CartLine",
    "CartTotals",
    "RefundKind",
    "RefundLine",
    "PricingService",
    "refund_for",
)
