"""
Tests for pricing: line-item totals, wholesale rules, conversions, carts, refunds.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest
from kungfu import Error, Ok

from marketcore import money as M
from marketcore import pricing as P
from marketcore._errors import NotFoundError, UpstreamUnavailable, ValidationError
from marketcore.domain import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    Product,
    Quotation,
    QuotationItem,
    WholesaleOrder,
    WholesaleTerms,
)

from conftest import NOW, World, ok

USD = M.MoneyAmount


def test_cart_totals_with_tax() -> None:
    lines = [M.LineItem.create("Widget", "100.00", 2), M.LineItem.create("Gadget", "50.00", 1)]
    totals = P.compute_line_item_totals(lines, tax_rate="0.08")
    assert totals.subtotal.cents == 25_000
    assert totals.tax.cents == 2_000
    assert totals.total.cents == 27_000
    assert totals.shipping.cents == 0


def test_quotation_deposit_split() -> None:
    lines = [M.LineItem.create("Consulting", 33.33, 3)]
    totals = P.compute_line_item_totals(lines, deposit_percentage=50)
    assert lines[0].line_total.cents == 9_999
    assert totals.deposit.cents == 5_000
    assert totals.balance.cents == 4_999
    assert totals.deposit.cents + totals.balance.cents == totals.total.cents


def test_shipping_is_added_after_tax() -> None:
    lines = [M.LineItem.create("Crate", "10.00", 1)]
    totals = P.compute_line_item_totals(lines, tax_rate="0.1", shipping=USD(500))
    assert (totals.tax.cents, totals.total.cents) == (100, 1_600)


@pytest.mark.parametrize("pct", [-1, 101, 50.5, True])
def test_deposit_percentage_must_be_integer_in_range(pct: object) -> None:
    with pytest.raises(ValidationError):
        P.compute_line_item_totals([M.LineItem.create("x", "1.00", 1)], deposit_percentage=pct)  # type: ignore[arg-type]


def test_moq_shortfall_still_counts_toward_subtotal() -> None:
    items = [
        P.WholesaleLine(USD(1_000), 5, moq=10, product_id="p1"),
        P.WholesaleLine(USD(200), 50, moq=20, product_id="p2"),
    ]
    totals = P.compute_wholesale_with_moq(items, deposit_percentage=30)
    assert totals.lines[0].moq_compliant is False
    assert totals.lines[1].moq_compliant is True
    assert totals.subtotal.cents == 5_000 + 10_000
    assert not totals.moq_compliant
    assert totals.deposit.cents == 4_500
    assert totals.deposit.cents + totals.balance.cents == totals.total.cents

    violations = P.validate_moq(items)
    assert len(violations) == 1
    assert str(violations[0]) == "p1 requires minimum quantity of 10, but only 5 provided"


def test_wholesale_rules_collect_every_error() -> None:
    terms = WholesaleTerms(deposit_percentage=30, minimum_order_value=USD(100_000))
    items = [P.WholesaleLine(USD(1_000), 5, moq=10, product_id="p1")]

    result = P.validate_wholesale_order(items, terms, "Net 45")

    assert not result.valid
    assert len(result.errors) == 3
    assert result.errors[0].startswith("p1 requires minimum quantity")
    assert "Net 45" in result.errors[1]
    assert result.errors[2] == (
        "Minimum order value not met. Required: $1,000.00, Current: $50.00, Shortfall: $950.00"
    )
    assert result.shortfall.cents == 95_000


def test_wholesale_rules_pass() -> None:
    terms = WholesaleTerms(deposit_percentage=30, minimum_order_value=USD(10_000))
    items = [P.WholesaleLine(USD(1_000), 12, moq=10)]

    result = P.validate_wholesale_order(items, terms, "Net 60")

    assert result.valid
    assert result.totals.deposit.cents == 3_600
    assert result.shortfall.cents == 0


def test_wholesale_needs_items() -> None:
    with pytest.raises(ValidationError):
        P.validate_wholesale_order([], WholesaleTerms(), "Net 30")


def test_payment_due_date() -> None:
    assert P.payment_due_date(NOW, "Net 60") == NOW + timedelta(days=60)
    assert P.payment_due_date(NOW, "Immediate") == NOW
    with pytest.raises(ValidationError):
        P.payment_due_date(NOW, "Net 7")


# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════


def test_convert_same_currency_skips_rates(world: World) -> None:
    world.source.steps = [RuntimeError("no network")]
    amount = USD(12_345)

    assert ok(asyncio.run(world.services.pricing.convert_amount(amount, "usd"))) is amount
    assert world.source.calls == []


def test_convert_applies_rate_once(world: World) -> None:
    converted = ok(asyncio.run(world.services.pricing.convert_amount(USD(1_001), "EUR")))
    assert converted == M.MoneyAmount(501, "EUR")


def test_convert_surfaces_upstream_failure(world: World) -> None:
    world.source.steps = [RuntimeError("down")]

    match asyncio.run(world.services.pricing.convert_amount(USD(100), "GBP")):
        case Error(e):
            assert isinstance(e, UpstreamUnavailable)
        case Ok(v):
            raise AssertionError(v)


def _catalog() -> tuple[Product, Product]:
    widget = Product("p1", "seller", "Widget", USD(10_000), image="w.png")
    gadget = Product(
        "p2",
        "seller",
        "Gadget",
        USD(5_000),
        promotion=M.Promotion(True, Decimal(10), NOW + timedelta(days=1)),
    )
    return widget, gadget


def test_cart_totals_apply_promotions_and_tax(world: World) -> None:
    widget, gadget = _catalog()
    cart = Cart("c1", "buyer", "seller", (CartItem("p1", 2), CartItem("p2", 1, "red")))

    async def scenario() -> P.CartTotals:
        await world.store.seed(widget, gadget, cart)
        return await world.services.pricing.cart_totals("c1", "buyer")

    totals = asyncio.run(scenario())
    assert totals.subtotal.cents == 20_000 + 4_500
    assert totals.discount.cents == 500
    assert totals.tax.cents == 1_960
    assert totals.total.cents == 26_460
    assert totals.lines[1].variant == "red"


def test_cart_of_another_buyer_is_not_found(world: World) -> None:
    cart = Cart("c1", "buyer", "seller")

    async def scenario() -> None:
        await world.store.seed(cart)
        await world.services.pricing.cart_totals("c1", "intruder")

    with pytest.raises(NotFoundError):
        asyncio.run(scenario())


def test_quotation_totals_recomputed_from_items(world: World) -> None:
    lines = [M.LineItem.create("a", "12.50", 4), M.LineItem.create("b", "3.00", 1)]
    stored_totals = P.compute_line_item_totals(lines, tax_rate="0.1", deposit_percentage=20)
    quotation = Quotation("q1", "QT-1", "seller", "b@example.com", stored_totals, Decimal("0.1"), NOW)
    items = [
        QuotationItem(f"qi{n}", "q1", n, line.description, line.unit_price, line.quantity, line.line_total)
        for n, line in enumerate(lines, start=1)
    ]

    async def scenario() -> M.Totals:
        await world.store.seed(quotation, *items)
        return await world.services.pricing.quotation_totals("q1", "seller")

    assert asyncio.run(scenario()) == stored_totals


def _order() -> tuple[Order, list[OrderItem]]:
    order = Order("o1", "ORD-1", "buyer", "seller", USD(3_000), USD(0), USD(0), USD(3_000), NOW)
    items = [
        OrderItem("i1", "o1", "p1", "A", 1, USD(1_000), USD(0), USD(1_000)),
        OrderItem("i2", "o1", "p2", "B", 2, USD(1_000), USD(0), USD(2_000)),
    ]
    return order, items


def test_full_refund_is_order_total() -> None:
    order, items = _order()
    assert P.refund_for(order, items, P.RefundKind.FULL, []) == USD(3_000)


def test_partial_refund_sums_lines() -> None:
    order, items = _order()
    lines = [P.RefundLine("i1", USD(400)), P.RefundLine("i2", USD(2_000))]
    assert P.refund_for(order, items, P.RefundKind.PARTIAL, lines) == USD(2_400)


def test_partial_refund_rejects_bad_lines() -> None:
    order, items = _order()
    with pytest.raises(ValidationError):
        P.refund_for(order, items, P.RefundKind.PARTIAL, [])
    with pytest.raises(ValidationError):
        P.refund_for(order, items, P.RefundKind.PARTIAL, [P.RefundLine("i1", USD(1_001))])
    with pytest.raises(NotFoundError):
        P.refund_for(order, items, P.RefundKind.PARTIAL, [P.RefundLine("zz", USD(1))])


def test_partial_refund_sums_lines_per_item() -> None:
    order, items = _order()
    twice = [P.RefundLine("i1", USD(1_000)), P.RefundLine("i1", USD(1_000))]
    with pytest.raises(ValidationError, match="i1"):
        P.refund_for(order, items, P.RefundKind.PARTIAL, twice)

    split = [P.RefundLine("i2", USD(1_500)), P.RefundLine("i2", USD(500))]
    assert P.refund_for(order, items, P.RefundKind.PARTIAL, split) == USD(2_000)


def test_refund_amount_checks_seller(world: World) -> None:
    order, items = _order()

    async def scenario() -> None:
        await world.store.seed(order, *items)
        assert await world.services.pricing.refund_amount("o1", "seller", P.RefundKind.FULL) == USD(3_000)
        await world.services.pricing.refund_amount("o1", "other", P.RefundKind.FULL)

    with pytest.raises(NotFoundError):
        asyncio.run(scenario())


def test_wholesale_balance_is_total_minus_deposit() -> None:
    order = WholesaleOrder(
        "w1", "WHS-1", "seller", "buyer",
        subtotal=USD(120_000), total=USD(120_000), deposit=USD(36_000), balance=USD(84_000),
        deposit_percentage=30, balance_percentage=70, payment_terms="Net 30",
        due_date=NOW + timedelta(days=30), created_at=NOW,
    )
    assert P.PricingService.wholesale_balance(order) == USD(84_000)
