"""
Event publication interface.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Event Names
# ═══════════════════════════════════════════════════════════════════════════════

ORDER_UPDATED = "order:updated"
SALE_COMPLETED = "analytics:sale-completed"
QUOTATION_CREATED = "quotation:created"
QUOTATION_UPDATED = "quotation:updated"
QUOTATION_SENT = "quotation:sent"
QUOTATION_ACCEPTED = "quotation:accepted"
WHOLESALE_ORDER_PLACED = "wholesale:order-placed"
WHOLESALE_INVITATION_ACCEPTED = "wholesale:invitation-accepted"


def user_room(user_id: str) -> str:
    """Delivery room for one user."""
    return f"user:{user_id}"


# ═══════════════════════════════════════════════════════════════════════════════
# Publisher Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Publisher(Protocol):
    """
    Fire-and-forget delivery to a room.

    Implementations may drop messages; callers never depend on delivery for
    the correctness of the operation that produced the event.
    """

    async def publish(self, target: str, event: str, payload: Mapping[str, Any]) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Publisher
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Published:
    target: str
    event: str
    payload: Mapping[str, Any]


@dataclass(slots=True)
class MemoryPublisher:
    """
    Records every publish in order.

    Set ``fail_with`` to make every publish raise, to exercise best-effort
    delivery.
    """

    sent: list[Published] = field(default_factory=list)
    fail_with: Exception | None = None

    async def publish(self, target: str, event: str, payload: Mapping[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(Published(target, event, dict(payload)))

    def events(self, target: str | None = None) -> list[str]:
        return [p.event for p in self.sent if target is None or p.target == target]


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
