"""
Money — integer-cent values and pure arithmetic.

    from marketcore import money as M

    price = M.MoneyAmount.of("33.33")
    line = M.line_total(price, 3)                     # 9999 cents
    deposit, balance = M.apply_percentage_split(line, 50)  # 5000 / 4999
"""

from __future__ import annotations

from marketcore.money._rounding import (
    Numeric,
    as_decimal,
    as_percentage,
    round_half_up,
    to_cents,
)
from marketcore.money._types import MoneyAmount, LineItem, Totals, Promotion
from marketcore.money._ops import (
    line_total,
    sum_lines,
    percentage_of,
    apply_percentage_split,
    apply_promotional_discount,
    apply_tax,
    apply_rate,
)
from marketcore.money._format import format_money, currency_for_country

__all__ = (
    "Numeric",
    "as_decimal",
    "as_percentage",
    "round_half_up",
    "to_cents",
    "MoneyAmount",
    "LineItem",
    "Totals",
    "Promotion",
    "line_total",
    "sum_lines",
    "percentage_of",
    "apply_percentage_split",
    "apply_promotional_discount",
    "apply_tax",
    "apply_rate",
    "format_money",
    "currency_for_country",
)
