"""
Events — post-commit notifications to user rooms.

    from marketcore import events as Ev

    await publisher.publish(Ev.user_room(seller_id), Ev.ORDER_UPDATED, {...})
"""

from __future__ import annotations

from marketcore.events._types import (
    ORDER_UPDATED,
    SALE_COMPLETED,
    QUOTATION_CREATED,
    QUOTATION_UPDATED,
    QUOTATION_SENT,
    QUOTATION_ACCEPTED,
    WHOLESALE_ORDER_PLACED,
    WHOLESALE_INVITATION_ACCEPTED,
    user_room,
    Publisher,
    Published,
    MemoryPublisher,
)

__all__ = (
    "ORDER_UPDATED",
    "SALE_COMPLETED",
    "QUOTATION_CREATED",
    "QUOTATION_UPDATED",
    "QUOTATION_SENT",
    "QUOTATION_ACCEPTED",
    "WHOLESALE_ORDER_PLACED",
    "WHOLESALE_INVITATION_ACCEPTED",
    "user_room",
    "Publisher",
    "Published",
    "MemoryPublisher",
)
