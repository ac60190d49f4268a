"""
Storage interface.

Records are frozen dataclasses carrying ``id`` and ``version``. The record
class itself names the entity type, so there is no string registry:

    order = await store.find_one(Order, order_id)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from kungfu import Result, Ok, Error

from marketcore._errors import NotFoundError

# ═══════════════════════════════════════════════════════════════════════════════
# Record
# ═══════════════════════════════════════════════════════════════════════════════


class Record(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def version(self) -> int: ...


def matches(record: object, where: dict[str, Any]) -> bool:
    """Equality filter on record attributes."""
    return all(getattr(record, name) == value for name, value in where.items())


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction — Writes Inside an Atomic Section
# ═══════════════════════════════════════════════════════════════════════════════


class Transaction(Protocol):
    """
    Handle passed to the function given to ``Store.run_atomic``.

    Reads see the transaction's own uncommitted writes.
    """

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]: ...

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]: ...

    async def insert[R: Record](self, record: R) -> R:
        """Insert a new record. Fails if the id is taken."""
        ...

    async def update[R: Record](self, record: R) -> R:
        """
        Replace a stored record.

        ``record.version`` must equal the stored version (the version the
        caller read); the stored copy gets ``version + 1`` and is returned.
        Raises ``StaleRecord`` otherwise.
        """
        ...

    async def delete_many(self, entity: type[Record], **where: Any) -> int: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════

type AtomicFn[T] = Callable[[Transaction], Awaitable[T]]


class Store(Protocol):
    """
    Transactional record store.

    ``run_atomic`` is all-or-nothing: any exception raised inside ``fn``
    discards every write made through the transaction and is re-raised.
    """

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]: ...

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]: ...

    async def run_atomic[T](self, fn: AtomicFn[T]) -> T: ...


async def require[R: Record](source: Store | Transaction, entity: type[R], id: str) -> R:
    """``find_one`` that raises ``NotFoundError`` instead of returning it."""
    match await source.find_one(entity, id):
        case Ok(record):
            return record
        case Error(e):
            raise e


__all__ = ("Record", "matches", "Transaction", "AtomicFn", "Store", "require")
