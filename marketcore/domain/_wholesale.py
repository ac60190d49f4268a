"""
Wholesale (B2B) records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from marketcore._types import require_aware
from marketcore.money import MoneyAmount

DEFAULT_PAYMENT_TERMS: tuple[str, ...] = ("Net 30", "Net 60", "Net 90", "Immediate")


@dataclass(frozen=True, slots=True)
class WholesaleTerms:
    """Commercial terms a seller attaches to an invitation."""

    deposit_percentage: int = 30
    minimum_order_value: MoneyAmount = MoneyAmount(100_000)
    allowed_payment_terms: tuple[str, ...] = DEFAULT_PAYMENT_TERMS


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


class GrantStatus(StrEnum):
    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class WholesaleInvitation:
    id: str
    seller_id: str
    buyer_email: str
    expires_at: datetime
    status: InvitationStatus = InvitationStatus.PENDING
    buyer_id: str | None = None
    accepted_at: datetime | None = None
    terms: WholesaleTerms = WholesaleTerms()
    version: int = 0

    def __post_init__(self) -> None:
        require_aware(self.expires_at, "expires_at")
        require_aware(self.accepted_at, "accepted_at")


@dataclass(frozen=True, slots=True)
class WholesaleAccessGrant:
    id: str
    seller_id: str
    buyer_id: str
    created_at: datetime
    status: GrantStatus = GrantStatus.ACTIVE
    invitation_id: str | None = None
    version: int = 0


class WholesaleOrderStatus(StrEnum):
    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class WholesaleOrder:
    id: str
    order_number: str
    seller_id: str
    buyer_id: str
    subtotal: MoneyAmount
    total: MoneyAmount
    deposit: MoneyAmount
    balance: MoneyAmount
    deposit_percentage: int
    balance_percentage: int
    payment_terms: str
    due_date: datetime
    created_at: datetime
    status: WholesaleOrderStatus = WholesaleOrderStatus.PENDING
    po_number: str | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class WholesaleOrderItem:
    id: str
    wholesale_order_id: str
    product_id: str
    name: str
    quantity: int
    unit_price: MoneyAmount
    subtotal: MoneyAmount
    moq: int | None = None
    image: str | None = None
    variant: str | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class WholesaleOrderEvent:
    id: str
    wholesale_order_id: str
    event_type: str
    actor_id: str
    created_at: datetime
    description: str | None = None
    version: int = 0


__all__ = (
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
