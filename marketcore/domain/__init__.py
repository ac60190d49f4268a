"""
Domain records.

Every record is a frozen dataclass with ``id`` and ``version``; changes go
through ``dataclasses.replace`` and ``Transaction.update``.
"""

from __future__ import annotations

from marketcore.domain._catalog import (
    MAX_CART_QUANTITY,
    Product,
    CartStatus,
    CartItem,
    Cart,
)
from marketcore.domain._orders import (
    OrderStatus,
    PaymentStatus,
    FulfillmentStatus,
    ItemStatus,
    Order,
    OrderItem,
)
from marketcore.domain._quotations import (
    QuotationStatus,
    Quotation,
    QuotationItem,
    QuotationEvent,
    ScheduleKind,
    ScheduleStatus,
    PaymentSchedule,
)
from marketcore.domain._wholesale import (
    DEFAULT_PAYMENT_TERMS,
    WholesaleTerms,
    InvitationStatus,
    GrantStatus,
    WholesaleInvitation,
    WholesaleAccessGrant,
    WholesaleOrderStatus,
    WholesaleOrder,
    WholesaleOrderItem,
    WholesaleOrderEvent,
)

__all__ = (
    "MAX_CART_QUANTITY",
    "Product",
    "CartStatus",
    "CartItem",
    "Cart",
    "OrderStatus",
    "PaymentStatus",
    "FulfillmentStatus",
    "ItemStatus",
    "Order",
    "OrderItem",
    "QuotationStatus",
    "Quotation",
    "QuotationItem",
    "QuotationEvent",
    "ScheduleKind",
    "ScheduleStatus",
    "PaymentSchedule",
    "DEFAULT_PAYMENT_TERMS",
    "WholesaleTerms",
    "InvitationStatus",
    "GrantStatus",
    "WholesaleInvitation",
    "WholesaleAccessGrant",
    "WholesaleOrderStatus",
    "WholesaleOrder",
    "WholesaleOrderItem",
    "WholesaleOrderEvent",
)
