"""
Retail order records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from marketcore.money import MoneyAmount


class OrderStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class FulfillmentStatus(StrEnum):
    UNFULFILLED = "unfulfilled"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ItemStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def for_fulfillment(cls, status: FulfillmentStatus) -> ItemStatus:
        if status is FulfillmentStatus.UNFULFILLED:
            return cls.PENDING
        return cls(status.value)


@dataclass(frozen=True, slots=True)
class Order:
    id: str
    order_number: str
    buyer_id: str
    seller_id: str
    subtotal: MoneyAmount
    tax: MoneyAmount
    shipping: MoneyAmount
    total: MoneyAmount
    created_at: datetime
    cart_id: str | None = None
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    fulfillment_status: FulfillmentStatus = FulfillmentStatus.UNFULFILLED
    tracking_number: str | None = None
    carrier: str | None = None
    refunded: MoneyAmount | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class OrderItem:
    """Snapshot of a cart line at checkout; later catalog edits do not touch it."""

    id: str
    order_id: str
    product_id: str
    name: str
    quantity: int
    unit_price: MoneyAmount
    discount: MoneyAmount
    subtotal: MoneyAmount
    image: str | None = None
    product_type: str = "in-stock"
    variant: str | None = None
    item_status: ItemStatus = ItemStatus.PENDING
    tracking_number: str | None = None
    carrier: str | None = None
    version: int = 0


__all__ = (
    "OrderStatus",
    "PaymentStatus",
    "FulfillmentStatus",
    "ItemStatus",
    "Order",
    "OrderItem",
)
