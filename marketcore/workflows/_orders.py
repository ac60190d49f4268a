"""
Retail order workflows: checkout, fulfillment, refunds.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from kungfu import Result

from marketcore import commit as T
from marketcore._errors import MarketError, NotFoundError, ValidationError
from marketcore.domain import (
    Cart,
    CartStatus,
    FulfillmentStatus,
    ItemStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
)
from marketcore.events import ORDER_UPDATED, SALE_COMPLETED, user_room
from marketcore.money import MoneyAmount
from marketcore.pricing import CartTotals, RefundKind, RefundLine
from marketcore.store import Transaction, require
from marketcore.workflows._services import Services, document_number


def order_effects(order: Order, **extra: object) -> list[T.Effect]:
    """Cache invalidation and ``order:updated`` for both parties."""
    payload = {
        "order_id": order.id,
        "order_number": order.order_number,
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "fulfillment_status": order.fulfillment_status.value,
        **extra,
    }
    return [
        T.Invalidate(f"order:{order.id}"),
        T.Invalidate(f"orders:buyer:{order.buyer_id}*"),
        T.Invalidate(f"orders:seller:{order.seller_id}*"),
        T.Publish(user_room(order.buyer_id), ORDER_UPDATED, payload),
        T.Publish(user_room(order.seller_id), ORDER_UPDATED, payload),
    ]


async def load_seller_order(services: Services, seller_id: str, order_id: str) -> Order:
    order = await require(services.store, Order, order_id)
    if order.seller_id != seller_id:
        raise NotFoundError("Order", order_id)
    return order


# ═══════════════════════════════════════════════════════════════════════════════
# create_order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class _Checkout:
    cart: Cart
    totals: CartTotals
    created_at: datetime


async def create_order(
    services: Services,
    buyer_id: str,
    cart_id: str,
) -> Result[T.Committed[Order], MarketError]:
    """
    Turn the buyer's active cart into an order.

    Items are snapshotted at their effective (promotional) price, the cart
    is emptied and closed in the same transaction.
    """

    async def prepare(ctx: T.WorkflowContext) -> _Checkout:
        cart = await require(services.store, Cart, cart_id)
        if cart.buyer_id != buyer_id:
            raise NotFoundError("Cart", cart_id)
        ctx.check("cart.owner")
        if cart.status is not CartStatus.ACTIVE or not cart.items:
            raise ValidationError("Cart is empty")
        ctx.check("cart.active")

        now = services.now()
        products = await services.pricing.load_cart_products(cart)
        return _Checkout(cart, services.pricing.price_cart(cart, products, at=now), now)

    async def execute(tx: Transaction, p: _Checkout) -> Order:
        order = await tx.insert(Order(
            id=services.new_id(),
            order_number=document_number("ORD", p.created_at),
            buyer_id=p.cart.buyer_id,
            seller_id=p.cart.seller_id,
            subtotal=p.totals.subtotal,
            tax=p.totals.tax,
            shipping=p.totals.shipping,
            total=p.totals.total,
            created_at=p.created_at,
            cart_id=p.cart.id,
        ))
        for line in p.totals.lines:
            await tx.insert(OrderItem(
                id=services.new_id(),
                order_id=order.id,
                product_id=line.product.id,
                name=line.product.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                discount=line.discount,
                subtotal=line.line_total,
                image=line.product.image,
                product_type=line.product.product_type,
                variant=line.variant,
            ))
        await tx.update(replace(p.cart, items=(), status=CartStatus.COMPLETED))
        return order

    def finalize(order: Order) -> list[T.Effect]:
        return [
            *order_effects(order),
            T.Publish(user_room(order.seller_id), SALE_COMPLETED, {
                "order_id": order.id,
                "order_number": order.order_number,
                "buyer_id": order.buyer_id,
                "total_cents": order.total.cents,
                "currency": order.total.currency,
            }),
        ]

    wf = T.workflow("order.create").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# update_fulfillment
# ═══════════════════════════════════════════════════════════════════════════════


async def update_fulfillment(
    services: Services,
    seller_id: str,
    order_id: str,
    status: FulfillmentStatus,
    tracking_number: str | None = None,
    carrier: str | None = None,
) -> Result[T.Committed[Order], MarketError]:
    """
    Set the fulfillment status of an order.

    With both a tracking number and a carrier, every item of the order is
    stamped with them and moved to the matching item status.
    """
    ship_items = bool(tracking_number and carrier)

    async def prepare(ctx: T.WorkflowContext) -> tuple[Order, list[OrderItem]]:
        order = await load_seller_order(services, seller_id, order_id)
        ctx.check("order.seller")
        items = await services.store.find_many(OrderItem, order_id=order_id) if ship_items else []
        return order, items

    async def execute(tx: Transaction, p: tuple[Order, list[OrderItem]]) -> Order:
        order, items = p
        updated = await tx.update(replace(
            order,
            fulfillment_status=status,
            tracking_number=tracking_number or order.tracking_number,
            carrier=carrier or order.carrier,
        ))
        for item in items:
            await tx.update(replace(
                item,
                tracking_number=tracking_number,
                carrier=carrier,
                item_status=ItemStatus.for_fulfillment(status),
            ))
        return updated

    def finalize(order: Order) -> list[T.Effect]:
        return order_effects(order, tracking_number=order.tracking_number, carrier=order.carrier)

    wf = T.workflow("order.fulfillment").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# issue_refund
# ═══════════════════════════════════════════════════════════════════════════════


async def issue_refund(
    services: Services,
    seller_id: str,
    order_id: str,
    kind: RefundKind,
    lines: Sequence[RefundLine] = (),
) -> Result[T.Committed[Order], MarketError]:
    """
    Record a full or partial refund.

    Refunds accumulate in ``Order.refunded`` and may never exceed the order
    total across calls.
    """

    async def prepare(ctx: T.WorkflowContext) -> tuple[Order, MoneyAmount]:
        amount = await services.pricing.refund_amount(order_id, seller_id, kind, lines)
        order = await load_seller_order(services, seller_id, order_id)
        ctx.check("order.seller")

        refunded = (order.refunded or MoneyAmount.zero(order.total.currency)) + amount
        if refunded.cents > order.total.cents:
            raise ValidationError("refund exceeds order total", "lines")
        return order, refunded

    async def execute(tx: Transaction, p: tuple[Order, MoneyAmount]) -> Order:
        order, refunded = p
        return await tx.update(replace(
            order,
            status=OrderStatus.REFUNDED,
            payment_status=PaymentStatus.REFUNDED,
            refunded=refunded,
        ))

    def finalize(order: Order) -> list[T.Effect]:
        assert order.refunded is not None
        return order_effects(order, refunded_cents=order.refunded.cents)

    wf = T.workflow("order.refund").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


__all__ = ("order_effects", "create_order", "update_fulfillment", "issue_refund")
