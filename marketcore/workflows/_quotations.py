"""
Quotation workflows: create → update (draft) → send → accept.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from kungfu import Result

from marketcore import commit as T
from marketcore._errors import MarketError, NotFoundError, ValidationError
from marketcore._types import require_aware
from marketcore.domain import (
    PaymentSchedule,
    Quotation,
    QuotationEvent,
    QuotationItem,
    QuotationStatus,
    ScheduleKind,
)
from marketcore.events import (
    QUOTATION_ACCEPTED,
    QUOTATION_CREATED,
    QUOTATION_SENT,
    QUOTATION_UPDATED,
    user_room,
)
from marketcore.money import LineItem, MoneyAmount, Numeric, Totals, as_decimal
from marketcore.store import Transaction, require
from marketcore.workflows._services import Services, document_number


def _payload(quotation: Quotation, **extra: object) -> dict[str, object]:
    return {
        "quotation_id": quotation.id,
        "quotation_number": quotation.quotation_number,
        "status": quotation.status.value,
        "total_cents": quotation.totals.total.cents,
        "currency": quotation.totals.currency,
        **extra,
    }


def _invalidate(quotation: Quotation) -> list[T.Effect]:
    return [
        T.Invalidate(f"quotation:{quotation.id}"),
        T.Invalidate(f"quotations:seller:{quotation.seller_id}*"),
    ]


async def _items(
    tx: Transaction,
    services: Services,
    quotation_id: str,
    lines: Sequence[LineItem],
) -> None:
    for number, line in enumerate(lines, start=1):
        await tx.insert(QuotationItem(
            id=services.new_id(),
            quotation_id=quotation_id,
            line_number=number,
            description=line.description,
            unit_price=line.unit_price,
            quantity=line.quantity,
            line_total=line.line_total,
        ))


async def _event(
    tx: Transaction,
    services: Services,
    quotation_id: str,
    event_type: str,
    actor_id: str,
    details: str | None = None,
) -> None:
    await tx.insert(QuotationEvent(
        id=services.new_id(),
        quotation_id=quotation_id,
        event_type=event_type,
        actor_id=actor_id,
        created_at=services.now(),
        details=details,
    ))


async def _seller_quotation(services: Services, seller_id: str, quotation_id: str) -> Quotation:
    quotation = await require(services.store, Quotation, quotation_id)
    if quotation.seller_id != seller_id:
        raise NotFoundError("Quotation", quotation_id)
    return quotation


# ═══════════════════════════════════════════════════════════════════════════════
# create_quotation
# ═══════════════════════════════════════════════════════════════════════════════


async def create_quotation(
    services: Services,
    seller_id: str,
    buyer_email: str,
    lines: Sequence[LineItem],
    deposit_percentage: int = 50,
    tax_rate: Numeric = 0,
    shipping: MoneyAmount | None = None,
    currency: str | None = None,
    valid_until: datetime | None = None,
) -> Result[T.Committed[Quotation], MarketError]:
    code = (currency or services.settings.default_currency).upper()

    async def prepare(ctx: T.WorkflowContext) -> Totals:
        require_aware(valid_until, "valid_until")
        if "@" not in buyer_email:
            raise ValidationError(f"invalid email {buyer_email!r}", "buyer_email")
        if not lines:
            raise ValidationError("quotation needs at least one line item", "lines")
        ctx.check("input")
        return services.pricing.compute_line_item_totals(lines, tax_rate, shipping, deposit_percentage, code)

    async def execute(tx: Transaction, totals: Totals) -> Quotation:
        now = services.now()
        quotation = await tx.insert(Quotation(
            id=services.new_id(),
            quotation_number=document_number("QT", now),
            seller_id=seller_id,
            buyer_email=buyer_email,
            totals=totals,
            tax_rate=as_decimal(tax_rate, "tax_rate"),
            created_at=now,
            valid_until=valid_until,
        ))
        await _items(tx, services, quotation.id, lines)
        await _event(tx, services, quotation.id, "created", seller_id)
        return quotation

    def finalize(q: Quotation) -> list[T.Effect]:
        return [
            T.Invalidate(f"quotations:seller:{q.seller_id}*"),
            T.Publish(user_room(q.seller_id), QUOTATION_CREATED, _payload(q)),
        ]

    wf = T.workflow("quotation.create").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# update_quotation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class _Revision:
    quotation: Quotation
    totals: Totals


async def update_quotation(
    services: Services,
    seller_id: str,
    quotation_id: str,
    lines: Sequence[LineItem] | None = None,
    deposit_percentage: int | None = None,
    valid_until: datetime | None = None,
) -> Result[T.Committed[Quotation], MarketError]:
    """
    Revise a draft.

    New ``lines`` replace every stored item. Changing only the deposit
    percentage recomputes the split from the stored items.
    """
    changes = [
        name
        for name, value in (("items", lines), ("deposit_percentage", deposit_percentage), ("valid_until", valid_until))
        if value is not None
    ]

    async def prepare(ctx: T.WorkflowContext) -> _Revision:
        if not changes:
            raise ValidationError("nothing to update")
        require_aware(valid_until, "valid_until")
        quotation = await _seller_quotation(services, seller_id, quotation_id)
        if quotation.status is not QuotationStatus.DRAFT:
            raise ValidationError("Only draft quotations can be updated", "status")
        ctx.check("quotation.draft")

        pct = quotation.totals.deposit_percentage if deposit_percentage is None else deposit_percentage
        if lines is not None:
            if not lines:
                raise ValidationError("quotation needs at least one line item", "lines")
            totals = services.pricing.compute_line_item_totals(
                lines, quotation.tax_rate, quotation.totals.shipping, pct, quotation.totals.currency
            )
        else:
            items = await services.store.find_many(QuotationItem, quotation_id=quotation_id)
            totals = services.pricing.totals_for_items(quotation, items, pct)
        return _Revision(quotation, totals)

    async def execute(tx: Transaction, p: _Revision) -> Quotation:
        if lines is not None:
            await tx.delete_many(QuotationItem, quotation_id=quotation_id)
            await _items(tx, services, quotation_id, lines)
        updated = await tx.update(replace(
            p.quotation,
            totals=p.totals,
            valid_until=valid_until or p.quotation.valid_until,
        ))
        await _event(tx, services, quotation_id, "updated", seller_id, ",".join(changes))
        return updated

    def finalize(q: Quotation) -> list[T.Effect]:
        payload = _payload(q, changes=list(changes))
        effects = [*_invalidate(q), T.Publish(user_room(q.seller_id), QUOTATION_UPDATED, payload)]
        if q.buyer_id:
            effects.append(T.Publish(user_room(q.buyer_id), QUOTATION_UPDATED, payload))
        return effects

    wf = T.workflow("quotation.update").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# send_quotation
# ═══════════════════════════════════════════════════════════════════════════════


async def send_quotation(
    services: Services,
    seller_id: str,
    quotation_id: str,
) -> Result[T.Committed[Quotation], MarketError]:
    async def prepare(ctx: T.WorkflowContext) -> Quotation:
        quotation = await _seller_quotation(services, seller_id, quotation_id)
        if quotation.status is not QuotationStatus.DRAFT:
            raise ValidationError("Only draft quotations can be sent", "status")
        ctx.check("quotation.draft")
        return quotation

    async def execute(tx: Transaction, quotation: Quotation) -> Quotation:
        sent = await tx.update(replace(quotation, status=QuotationStatus.SENT))
        await _event(tx, services, quotation.id, "sent", seller_id, quotation.buyer_email)
        return sent

    def finalize(q: Quotation) -> list[T.Effect]:
        return [
            *_invalidate(q),
            T.Publish(user_room(q.seller_id), QUOTATION_SENT, _payload(q, buyer_email=q.buyer_email)),
        ]

    wf = T.workflow("quotation.send").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


# ═══════════════════════════════════════════════════════════════════════════════
# accept_quotation
# ═══════════════════════════════════════════════════════════════════════════════


async def accept_quotation(
    services: Services,
    buyer_id: str,
    quotation_id: str,
) -> Result[T.Committed[Quotation], MarketError]:
    """
    Buyer accepts a sent quotation.

    Deposit and balance payment schedules are created once per quotation;
    a quotation that already has schedules keeps them.
    """

    async def prepare(ctx: T.WorkflowContext) -> Quotation:
        quotation = await require(services.store, Quotation, quotation_id)
        if quotation.buyer_id is not None and quotation.buyer_id != buyer_id:
            raise NotFoundError("Quotation", quotation_id)
        if quotation.status is QuotationStatus.ACCEPTED:
            raise ValidationError("Quotation already accepted", "status")
        if quotation.status is not QuotationStatus.SENT:
            raise ValidationError("Only sent quotations can be accepted", "status")
        if quotation.valid_until is not None and quotation.valid_until <= services.now():
            raise ValidationError("Quotation has expired", "valid_until")
        ctx.check("quotation.sent")
        return quotation

    async def execute(tx: Transaction, quotation: Quotation) -> Quotation:
        accepted = await tx.update(replace(quotation, buyer_id=buyer_id, status=QuotationStatus.ACCEPTED))
        await _event(tx, services, quotation.id, "accepted", buyer_id)

        if not await tx.find_many(PaymentSchedule, quotation_id=quotation.id):
            totals = quotation.totals
            await tx.insert(PaymentSchedule(
                id=services.new_id(),
                quotation_id=quotation.id,
                kind=ScheduleKind.DEPOSIT,
                amount=totals.deposit,
                due_date=services.now(),
            ))
            await tx.insert(PaymentSchedule(
                id=services.new_id(),
                quotation_id=quotation.id,
                kind=ScheduleKind.BALANCE,
                amount=totals.balance,
                due_date=quotation.valid_until,
            ))
        return accepted

    def finalize(q: Quotation) -> list[T.Effect]:
        payload = _payload(q, buyer_id=q.buyer_id)
        effects = [*_invalidate(q), T.Publish(user_room(q.seller_id), QUOTATION_ACCEPTED, payload)]
        if q.buyer_id:
            effects.append(T.Publish(user_room(q.buyer_id), QUOTATION_ACCEPTED, payload))
        return effects

    wf = T.workflow("quotation.accept").prepare(prepare).execute(execute).finalize(finalize)
    return await T.run(wf, services.runtime)


__all__ = ("create_quotation", "update_quotation", "send_quotation", "accept_quotation")
