"""
Quotation records.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from marketcore._types import require_aware
from marketcore.money import MoneyAmount, Totals


class QuotationStatus(StrEnum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class Quotation:
    id: str
    quotation_number: str
    seller_id: str
    buyer_email: str
    totals: Totals
    tax_rate: Decimal
    created_at: datetime
    buyer_id: str | None = None
    status: QuotationStatus = QuotationStatus.DRAFT
    valid_until: datetime | None = None
    version: int = 0

    def __post_init__(self) -> None:
        require_aware(self.valid_until, "valid_until")


@dataclass(frozen=True, slots=True)
class QuotationItem:
    id: str
    quotation_id: str
    line_number: int
    description: str
    unit_price: MoneyAmount
    quantity: int
    line_total: MoneyAmount
    product_id: str | None = None
    version: int = 0


@dataclass(frozen=True, slots=True)
class QuotationEvent:
    id: str
    quotation_id: str
    event_type: str
    actor_id: str
    created_at: datetime
    details: str | None = None
    version: int = 0


class ScheduleKind(StrEnum):
    DEPOSIT = "deposit"
    BALANCE = "balance"


class ScheduleStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"


@dataclass(frozen=True, slots=True)
class PaymentSchedule:
    id: str
    quotation_id: str
    kind: ScheduleKind
    amount: MoneyAmount
    status: ScheduleStatus = ScheduleStatus.PENDING
    due_date: datetime | None = None
    version: int = 0


__all__ = (
    "QuotationStatus",
    "Quotation",
    "QuotationItem",
    "QuotationEvent",
    "ScheduleKind",
    "ScheduleStatus",
    "PaymentSchedule",
)
