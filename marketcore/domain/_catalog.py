"""
Catalog and cart records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from marketcore._errors import ValidationError
from marketcore.money import MoneyAmount, Promotion

MAX_CART_QUANTITY = 10_000


@dataclass(frozen=True, slots=True)
class Product:
    id: str
    seller_id: str
    name: str
    price: MoneyAmount
    image: str | None = None
    product_type: str = "in-stock"
    promotion: Promotion = Promotion()
    wholesale_price: MoneyAmount | None = None
    moq: int | None = None
    version: int = 0


class CartStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class CartItem:
    product_id: str
    quantity: int
    variant: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.quantity <= MAX_CART_QUANTITY:
            raise ValidationError(
                f"must be between 1 and {MAX_CART_QUANTITY}, got {self.quantity}", "quantity"
            )


@dataclass(frozen=True, slots=True)
class Cart:
    id: str
    buyer_id: str
    seller_id: str
    items: tuple[CartItem, ...] = ()
    status: CartStatus = CartStatus.ACTIVE
    currency: str = "USD"
    version: int = 0


__all__ = ("MAX_CART_QUANTITY", "Product", "CartStatus", "CartItem", "Cart")
