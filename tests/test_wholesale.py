"""
Tests for wholesale invitations and order placement.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from kungfu import Error, Ok

from marketcore import money as M
from marketcore import workflows as W
from marketcore._errors import ErrorKind, ForbiddenError, ValidationError
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
from marketcore.events import WHOLESALE_INVITATION_ACCEPTED, WHOLESALE_ORDER_PLACED

from conftest import NOW, World, ok

USD = M.MoneyAmount

TERMS = WholesaleTerms(deposit_percentage=30, minimum_order_value=USD(50_000))


def _invitation(expires_in: timedelta = timedelta(days=7), **kwargs: object) -> WholesaleInvitation:
    return WholesaleInvitation("inv-1", "seller", "buyer@example.com", NOW + expires_in, terms=TERMS, **kwargs)


def _catalog() -> list[Product]:
    return [
        Product("bolt", "seller", "Bolt", USD(500), wholesale_price=USD(300), moq=100),
        Product("nut", "seller", "Nut", USD(200), moq=10),
        Product("foreign", "other-seller", "Washer", USD(100)),
    ]


def _with_access(world: World) -> None:
    async def scenario() -> None:
        await world.store.seed(_invitation(), *_catalog())
        ok(await W.accept_invitation(world.services, "buyer", "inv-1"))

    asyncio.run(scenario())
    world.publisher.sent.clear()


def test_accept_invitation_grants_access(world: World) -> None:
    async def scenario() -> tuple[WholesaleAccessGrant, WholesaleInvitation]:
        await world.store.seed(_invitation())
        await world.cache.set("wholesale:grants:buyer:buyer", ["old"])
        done = ok(await W.accept_invitation(world.services, "buyer", "inv-1"))
        assert await world.cache.get("wholesale:grants:buyer:buyer") is None
        return done.value, ok(await world.store.find_one(WholesaleInvitation, "inv-1"))

    grant, invitation = asyncio.run(scenario())
    assert (grant.seller_id, grant.buyer_id, grant.status) == ("seller", "buyer", GrantStatus.ACTIVE)
    assert grant.invitation_id == "inv-1"
    assert invitation.status is InvitationStatus.ACCEPTED
    assert (invitation.buyer_id, invitation.accepted_at) == ("buyer", NOW)
    assert world.publisher.events("user:seller") == [WHOLESALE_INVITATION_ACCEPTED]


def test_naive_invitation_expiry_is_rejected() -> None:
    with pytest.raises(ValidationError) as info:
        WholesaleInvitation("inv-1", "seller", "buyer@example.com", datetime(2030, 1, 1))
    assert info.value.field == "expires_at"


def test_expired_invitation_is_rejected(world: World) -> None:
    async def scenario() -> None:
        await world.store.seed(_invitation(expires_in=timedelta(0)))
        match await W.accept_invitation(world.services, "buyer", "inv-1"):
            case Error(e):
                assert isinstance(e, ValidationError)
            case Ok(done):
                raise AssertionError(done)
        assert await world.store.find_many(WholesaleAccessGrant) == []

    asyncio.run(scenario())


def test_invitation_cannot_be_accepted_twice(world: World) -> None:
    async def scenario() -> None:
        await world.store.seed(_invitation())
        ok(await W.accept_invitation(world.services, "buyer", "inv-1"))
        match await W.accept_invitation(world.services, "buyer", "inv-1"):
            case Error(e):
                assert e.kind is ErrorKind.VALIDATION
            case Ok(done):
                raise AssertionError(done)
        assert len(await world.store.find_many(WholesaleAccessGrant)) == 1

    asyncio.run(scenario())


def test_existing_grant_blocks_second_invitation(world: World) -> None:
    async def scenario() -> None:
        await world.store.seed(
            _invitation(),
            WholesaleAccessGrant("g-0", "seller", "buyer", NOW - timedelta(days=30)),
        )
        match await W.accept_invitation(world.services, "buyer", "inv-1"):
            case Error(e):
                assert "already granted" in e.message
            case Ok(done):
                raise AssertionError(done)

    asyncio.run(scenario())


def test_place_order_without_grant_is_forbidden(world: World) -> None:
    asyncio.run(world.store.seed(*_catalog()))

    match asyncio.run(W.place_wholesale_order(
        world.services, "buyer", "seller", [W.WholesaleItemRequest("bolt", 200)]
    )):
        case Error(e):
            assert isinstance(e, ForbiddenError)
            assert e.kind is ErrorKind.FORBIDDEN
        case Ok(done):
            raise AssertionError(done)


def test_place_order(world: World) -> None:
    _with_access(world)
    items = [W.WholesaleItemRequest("bolt", 200, "zinc"), W.WholesaleItemRequest("nut", 50)]

    async def scenario() -> tuple[WholesaleOrder, list[WholesaleOrderItem], list[WholesaleOrderEvent]]:
        done = ok(await W.place_wholesale_order(
            world.services, "buyer", "seller", items, payment_terms="Net 60", po_number="PO-7"
        ))
        order = done.value
        return (
            order,
            await world.store.find_many(WholesaleOrderItem, wholesale_order_id=order.id),
            await world.store.find_many(WholesaleOrderEvent, wholesale_order_id=order.id),
        )

    order, order_items, events = asyncio.run(scenario())
    # 200 x 3.00 wholesale + 50 x 2.00 retail
    assert order.subtotal.cents == 60_000 + 10_000
    assert order.total == order.subtotal
    assert (order.deposit.cents, order.balance.cents) == (21_000, 49_000)
    assert (order.deposit_percentage, order.balance_percentage) == (30, 70)
    assert order.due_date == NOW + timedelta(days=60)
    assert order.order_number.startswith("WHS-")
    assert order.po_number == "PO-7"
    by_product = {i.product_id: i for i in order_items}
    assert by_product["bolt"].unit_price.cents == 300
    assert by_product["bolt"].variant == "zinc"
    assert by_product["nut"].subtotal.cents == 10_000
    assert [e.event_type for e in events] == ["order_created"]
    assert world.publisher.events("user:seller") == [WHOLESALE_ORDER_PLACED]
    assert world.publisher.events("user:buyer") == [WHOLESALE_ORDER_PLACED]


def test_moq_violation_rejects_whole_order(world: World) -> None:
    _with_access(world)
    items = [W.WholesaleItemRequest("bolt", 200), W.WholesaleItemRequest("nut", 5)]

    async def scenario() -> None:
        match await W.place_wholesale_order(world.services, "buyer", "seller", items):
            case Error(e):
                assert isinstance(e, ValidationError)
                assert "nut requires minimum quantity of 10, but only 5 provided" in e.message
            case Ok(done):
                raise AssertionError(done)
        assert await world.store.find_many(WholesaleOrder) == []
        assert await world.store.find_many(WholesaleOrderItem) == []

    asyncio.run(scenario())
    assert world.publisher.sent == []


def test_all_rule_violations_are_reported_together(world: World) -> None:
    _with_access(world)

    match asyncio.run(W.place_wholesale_order(
        world.services, "buyer", "seller", [W.WholesaleItemRequest("nut", 5)], payment_terms="Net 7"
    )):
        case Error(e):
            assert "minimum quantity" in e.message
            assert "Net 7" in e.message
            assert "Minimum order value not met" in e.message
        case Ok(done):
            raise AssertionError(done)


def test_product_of_another_seller_is_rejected(world: World) -> None:
    _with_access(world)

    match asyncio.run(W.place_wholesale_order(
        world.services, "buyer", "seller", [W.WholesaleItemRequest("foreign", 1_000)]
    )):
        case Error(e):
            assert e.kind is ErrorKind.VALIDATION
        case Ok(done):
            raise AssertionError(done)


def test_unknown_product_is_not_found(world: World) -> None:
    _with_access(world)

    match asyncio.run(W.place_wholesale_order(
        world.services, "buyer", "seller", [W.WholesaleItemRequest("ghost", 1)]
    )):
        case Error(e):
            assert e.kind is ErrorKind.NOT_FOUND
        case Ok(done):
            raise AssertionError(done)


def test_terms_come_from_latest_accepted_invitation(world: World) -> None:
    older = WholesaleInvitation(
        "inv-0", "seller", "buyer@example.com", NOW, InvitationStatus.ACCEPTED, "buyer",
        NOW - timedelta(days=90), WholesaleTerms(deposit_percentage=50),
    )
    newer = WholesaleInvitation(
        "inv-2", "seller", "buyer@example.com", NOW, InvitationStatus.ACCEPTED, "buyer",
        NOW - timedelta(days=1), WholesaleTerms(deposit_percentage=10),
    )

    async def scenario() -> WholesaleTerms:
        await world.store.seed(older, newer)
        return await W.terms_for(world.services, "buyer", "seller")

    assert asyncio.run(scenario()).deposit_percentage == 10
