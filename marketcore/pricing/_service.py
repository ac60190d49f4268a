"""
Pricing Service — money primitives + exchange rates + stored records.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from kungfu import Result, Ok, Error

from marketcore._errors import NotFoundError, UpstreamUnavailable, ValidationError
from marketcore._types import WallClock, utcnow
from marketcore.domain import Cart, Order, OrderItem, Product, Quotation, QuotationItem, WholesaleOrder
from marketcore.money import (
    LineItem,
    MoneyAmount,
    Numeric,
    Totals,
    apply_promotional_discount,
    apply_rate,
    apply_tax,
    sum_lines,
)
from marketcore.pricing._calc import compute_line_item_totals
from marketcore.rates import RateProvider
from marketcore.store import Store, require

DEFAULT_CART_TAX_RATE = Decimal("0.08")

# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """Cart line priced against the live catalog."""

    product: Product
    quantity: int
    variant: str | None
    unit_price: MoneyAmount
    discount: MoneyAmount
    line_total: MoneyAmount


@dataclass(frozen=True, slots=True)
class CartTotals:
    lines: tuple[CartLine, ...]
    subtotal: MoneyAmount
    discount: MoneyAmount
    tax: MoneyAmount
    shipping: MoneyAmount
    total: MoneyAmount


class RefundKind(StrEnum):
    FULL = "full"
    PARTIAL = "partial"


@dataclass(frozen=True, slots=True)
class RefundLine:
    order_item_id: str
    amount: MoneyAmount


# ═══════════════════════════════════════════════════════════════════════════════
# Service
# ═══════════════════════════════════════════════════════════════════════════════


class PricingService:
    """
    Authoritative totals for carts, orders, quotations and wholesale orders.

    Holds no business state of its own: records are read through the store
    and results are returned, never written.
    """

    def __init__(
        self,
        store: Store,
        rates: RateProvider,
        *,
        cart_tax_rate: Numeric = DEFAULT_CART_TAX_RATE,
        now: WallClock = utcnow,
    ) -> None:
        self._store = store
        self._rates = rates
        self._cart_tax_rate = cart_tax_rate
        self._now = now

    @property
    def rates(self) -> RateProvider:
        return self._rates

    # ─── currency ────────────────────────────────────────────────────────────

    async def convert_amount(
        self,
        amount: MoneyAmount,
        to_currency: str,
    ) -> Result[MoneyAmount, UpstreamUnavailable]:
        """Identity when currencies match; the rate provider is not consulted."""
        target = to_currency.upper()
        if amount.currency == target:
            return Ok(amount)
        match await self._rates.get_rate(amount.currency, target):
            case Ok(quote):
                return Ok(apply_rate(amount, quote.rate, target))
            case Error(e):
                return Error(e)

    # ─── line items ──────────────────────────────────────────────────────────

    def compute_line_item_totals(
        self,
        lines: Iterable[LineItem],
        tax_rate: Numeric = 0,
        shipping: MoneyAmount | None = None,
        deposit_percentage: int = 50,
        currency: str = "USD",
    ) -> Totals:
        return compute_line_item_totals(lines, tax_rate, shipping, deposit_percentage, currency)

    # ─── carts ───────────────────────────────────────────────────────────────

    def price_cart(
        self,
        cart: Cart,
        products: Mapping[str, Product],
        shipping: MoneyAmount | None = None,
        at: datetime | None = None,
    ) -> CartTotals:
        """
        Price ``cart`` against ``products`` with promotions live at ``at``.

        Products must be priced in the cart's currency.
        """
        when = at or self._now()
        lines: list[CartLine] = []
        for item in cart.items:
            product = products.get(item.product_id)
            if product is None:
                raise NotFoundError("Product", item.product_id)
            if product.price.currency != cart.currency:
                raise ValidationError(
                    f"product {product.id} is priced in {product.price.currency}, cart is {cart.currency}",
                    "currency",
                )
            promo = product.promotion
            unit, discount = apply_promotional_discount(
                product.price, promo.discount_percentage, promo.active, promo.end_date, when
            )
            lines.append(CartLine(product, item.quantity, item.variant, unit, discount, unit.times(item.quantity)))

        subtotal = sum_lines((line.line_total for line in lines), cart.currency)
        discount = sum_lines((line.discount.times(line.quantity) for line in lines), cart.currency)
        tax = apply_tax(subtotal, self._cart_tax_rate)
        ship = shipping if shipping is not None else MoneyAmount.zero(cart.currency)
        return CartTotals(tuple(lines), subtotal, discount, tax, ship, subtotal + tax + ship)

    async def load_cart_products(self, cart: Cart) -> dict[str, Product]:
        products: dict[str, Product] = {}
        for item in cart.items:
            if item.product_id not in products:
                products[item.product_id] = await require(self._store, Product, item.product_id)
        return products

    async def cart_totals(self, cart_id: str, buyer_id: str) -> CartTotals:
        """Live cart preview. Another buyer's cart reads as not found."""
        cart = await require(self._store, Cart, cart_id)
        if cart.buyer_id != buyer_id:
            raise NotFoundError("Cart", cart_id)
        return self.price_cart(cart, await self.load_cart_products(cart))

    # ─── quotations ──────────────────────────────────────────────────────────

    async def quotation_totals(self, quotation_id: str, seller_id: str) -> Totals:
        """Recompute a stored quotation from its items."""
        quotation = await require(self._store, Quotation, quotation_id)
        if quotation.seller_id != seller_id:
            raise NotFoundError("Quotation", quotation_id)
        items = await self._store.find_many(QuotationItem, quotation_id=quotation_id)
        return self.totals_for_items(quotation, items, quotation.totals.deposit_percentage)

    def totals_for_items(
        self,
        quotation: Quotation,
        items: Sequence[QuotationItem],
        deposit_percentage: int,
    ) -> Totals:
        lines = [
            LineItem(item.description, item.unit_price, item.quantity, item.line_total)
            for item in sorted(items, key=lambda i: i.line_number)
        ]
        return compute_line_item_totals(
            lines,
            quotation.tax_rate,
            quotation.totals.shipping,
            deposit_percentage,
            quotation.totals.currency,
        )

    # ─── refunds ─────────────────────────────────────────────────────────────

    async def refund_amount(
        self,
        order_id: str,
        seller_id: str,
        kind: RefundKind,
        lines: Sequence[RefundLine] = (),
    ) -> MoneyAmount:
        order = await require(self._store, Order, order_id)
        if order.seller_id != seller_id:
            raise NotFoundError("Order", order_id)
        items = await self._store.find_many(OrderItem, order_id=order_id)
        return refund_for(order, items, kind, lines)

    @staticmethod
    def wholesale_balance(order: WholesaleOrder) -> MoneyAmount:
        return order.total - order.deposit


def refund_for(
    order: Order,
    items: Sequence[OrderItem],
    kind: RefundKind,
    lines: Sequence[RefundLine],
) -> MoneyAmount:
    """
    Refund total for ``order``.

    Full refunds return the order total. Partial refunds need at least one
    line; each line must name an item of this order, and the lines for one
    item together may not exceed that item's subtotal.
    """
    if kind is RefundKind.FULL:
        return order.total
    if not lines:
        raise ValidationError("partial refund requires line items", "lines")

    by_id = {item.id: item for item in items}
    per_item: defaultdict[str, int] = defaultdict(int)
    for line in lines:
        if line.order_item_id not in by_id:
            raise NotFoundError("OrderItem", line.order_item_id)
        per_item[line.order_item_id] += line.amount.cents

    for item_id, cents in per_item.items():
        item = by_id[item_id]
        if cents > item.subtotal.cents:
            raise ValidationError(
                f"refund for item {item.id} exceeds its subtotal", "lines"
            )

    amount = sum_lines((line.amount for line in lines), order.total.currency)
    if amount.cents > order.total.cents:
        raise ValidationError("refund exceeds order total", "lines")
    return amount


__all__ = (
    "DEFAULT_CART_TAX_RATE",
    "CartLine",
    "CartTotals",
    "RefundKind",
    "RefundLine",
    "PricingService",
    "refund_for",
)
