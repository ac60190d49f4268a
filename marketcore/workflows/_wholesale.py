"""
Wholesale workflows: invitation acceptance and order placement.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from kungfu import Result

from marketcore import commit as T
from marketcore._errors import ForbiddenError, MarketError, ValidationError
from marketcore.domain import (
    GrantStatus,
    InvitationStatus,
    Product,
    WholesaleAccessGrant,
    WholesaleInvitation,
    WholesaleOrder,
    WholesaleOrderEvent,
    WholesaleOrderItem,
    WholesaleTerms,
)
from marketcore.events import WHOLESALE_INVITATION_ACCEPTED, WHOLESALE_ORDER_PLACED, user_room
from marketcore.pricing import WholesaleLine, WholesaleValidation, payment_due_date, validate_wholesale_order
from marketcore.store import Transaction, require
from marketcore.workflows._services import Services, document_number

# ═══════════════════════════════════════════════════════════════════════════════
# accept_invitation
# ═══════════════════════════════════════════════════════════════════════════════


async def accept_invitation(
    services: Services,
    buyer_id: str,
    invitation_id: str,
) -> Result[T.Committed[WholesaleAccessGrant], MarketError]:
    """Accept a pending invitation and grant the buyer wholesale access."""

    async def prepare(ctx: T.WorkflowContext) -> WholesaleInvitation:
        invitation = await require(services.store, WholesaleInvitation, invitation_id)
        if invitation.status is not InvitationStatus.PENDING:
            raise ValidationError(f"Invitation is {invitation.status.value}", "status")
        if invitation.expires_at <= services.now():
            raise ValidationError("Invitation has expired", "expires_at")
        ctx.check("invitation.pending")

        active = await services.store.find_many(
            WholesaleAccessGrant,
            seller_id=invitation.seller_id,
            buyer_id=buyer_id,
            status=GrantStatus.ACTIVE,
        )
        if active:
            raise ValidationError("Wholesale access already granted")
        ctx.check("grant.absent")
        return invitation

    async def execute(tx: Transaction, invitation: WholesaleInvitation) -> WholesaleAccessGrant:
        now = services.now()
        await tx.update(replace(
            invitation,
            status=InvitationStatus.ACCEPTED,
            buyer_id=buyer_id,
            accepted_at=now,
        ))
        return await tx.insert(WholesaleAccessGrant(
            id=services.new_id(),
            seller_id=invitation.seller_id,
            buyer_id=buyer_id,
            created_at=now,
            invitation_id=invitation.id,
        ))

    def finalize(grant: WholesaleAccessGrant) -> list[T.Effect]:
        return [
            T.Invalidate(f"wholesale:invitations:seller:{grant.seller_id}*"),
            T.Invalidate(f"wholesale:grants:buyer:{grant.buyer_id}*"),
            T.Publish(user_room(grant.seller_id), WHOLESALE_INVITATION_ACCEPTED, {
                "invitation_id": grant.invitation_id,
                "buyer_id": grant.buyer_id,
                "grant_id": grant.id,
            }),
        ]

    wf = T.workflow("wholesale.accept_invitation").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# place_wholesale_order
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class WholesaleItemRequest:
    product_id: str
    quantity: int
    variant: str | None = None


@dataclass(frozen=True, slots=True)
class _Placement:
    requests: tuple[WholesaleItemRequest, ...]
    products: tuple[Product, ...]
    validation: WholesaleValidation
    created_at: datetime
    due_date: datetime


async def terms_for(services: Services, buyer_id: str, seller_id: str) -> WholesaleTerms:
    """Terms of the buyer's most recently accepted invitation from ``seller_id``."""
    invitations = await services.store.find_many(
        WholesaleInvitation,
        seller_id=seller_id,
        buyer_id=buyer_id,
        status=InvitationStatus.ACCEPTED,
    )
    if not invitations:
        return WholesaleTerms()
    latest = max(invitations, key=lambda i: i.accepted_at or i.expires_at)
    return latest.terms


async def place_wholesale_order(
    services: Services,
    buyer_id: str,
    seller_id: str,
    items: Sequence[WholesaleItemRequest],
    payment_terms: str = "Net 30",
    po_number: str | None = None,
) -> Result[T.Committed[WholesaleOrder], MarketError]:
    """
    Place a B2B order against a seller's wholesale catalog.

    Every rule (MOQ, payment terms, minimum value) is checked before any
    write; a single violation rejects the whole order and the error lists
    all of them.
    """
    requests = tuple(items)

    async def prepare(ctx: T.WorkflowContext) -> _Placement:
        grants = await services.store.find_many(
            WholesaleAccessGrant,
            seller_id=seller_id,
            buyer_id=buyer_id,
            status=GrantStatus.ACTIVE,
        )
        if not grants:
            raise ForbiddenError("No wholesale access to this seller")
        ctx.check("grant.active")

        terms = await terms_for(services, buyer_id, seller_id)
        products: list[Product] = []
        for request in requests:
            product = await require(services.store, Product, request.product_id)
            if product.seller_id != seller_id:
                raise ValidationError(f"Product {product.id} does not belong to this seller", "items")
            products.append(product)

        lines = [
            WholesaleLine(
                unit_price=product.price if product.wholesale_price is None else product.wholesale_price,
                quantity=request.quantity,
                moq=product.moq,
                product_id=product.id,
            )
            for request, product in zip(requests, products)
        ]
        validation = validate_wholesale_order(lines, terms, payment_terms)
        if not validation.valid:
            raise ValidationError("; ".join(validation.errors), "items")
        ctx.check("rules")

        now = services.now()
        return _Placement(requests, tuple(products), validation, now, payment_due_date(now, payment_terms))

    async def execute(tx: Transaction, p: _Placement) -> WholesaleOrder:
        totals = p.validation.totals
        order = await tx.insert(WholesaleOrder(
            id=services.new_id(),
            order_number=document_number("WHS", p.created_at),
            seller_id=seller_id,
            buyer_id=buyer_id,
            subtotal=totals.subtotal,
            total=totals.total,
            deposit=totals.deposit,
            balance=totals.balance,
            deposit_percentage=totals.deposit_percentage,
            balance_percentage=100 - totals.deposit_percentage,
            payment_terms=payment_terms,
            due_date=p.due_date,
            created_at=p.created_at,
            po_number=po_number,
        ))
        for request, product, line in zip(p.requests, p.products, totals.lines):
            await tx.insert(WholesaleOrderItem(
                id=services.new_id(),
                wholesale_order_id=order.id,
                product_id=product.id,
                name=product.name,
                quantity=request.quantity,
                unit_price=line.line.unit_price,
                subtotal=line.line_total,
                moq=product.moq,
                image=product.image,
                variant=request.variant,
            ))
        await tx.insert(WholesaleOrderEvent(
            id=services.new_id(),
            wholesale_order_id=order.id,
            event_type="order_created",
            actor_id=buyer_id,
            created_at=p.created_at,
            description=f"Order {order.order_number} placed",
        ))
        return order

    def finalize(order: WholesaleOrder) -> list[T.Effect]:
        payload = {
            "order_id": order.id,
            "order_number": order.order_number,
            "buyer_id": order.buyer_id,
            "total_cents": order.total.cents,
            "deposit_cents": order.deposit.cents,
            "currency": order.total.currency,
        }
        return [
            T.Invalidate(f"wholesale:orders:buyer:{order.buyer_id}*"),
            T.Invalidate(f"wholesale:orders:seller:{order.seller_id}*"),
            T.Publish(user_room(order.seller_id), WHOLESALE_ORDER_PLACED, payload),
            T.Publish(user_room(order.buyer_id), WHOLESALE_ORDER_PLACED, payload),
        ]

    wf = T.workflow("wholesale.place_order").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


__all__ = ("accept_invitation", "WholesaleItemRequest", "terms_for", "place_wholesale_order")
