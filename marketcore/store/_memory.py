"""
In-memory store — copy-on-write atomic sections.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Any

from kungfu import Result, Ok, Error

from marketcore._errors import NotFoundError, StaleRecord
from marketcore.store._types import AtomicFn, Record, Transaction, matches

type Tables = dict[type, dict[str, Any]]


class _MemoryTransaction:
    def __init__(self, tables: Tables) -> None:
        self._tables = tables

    def _rows(self, entity: type) -> dict[str, Any]:
        return self._tables.setdefault(entity, {})

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]:
        record = self._rows(entity).get(id)
        if record is None:
            return Error(NotFoundError(entity.__name__, id))
        return Ok(record)

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]:
        return [r for r in self._rows(entity).values() if matches(r, where)]

    async def insert[R: Record](self, record: R) -> R:
        rows = self._rows(type(record))
        if record.id in rows:
            raise ValueError(f"{type(record).__name__}:{record.id} already exists")
        rows[record.id] = record
        return record

    async def update[R: Record](self, record: R) -> R:
        entity = type(record)
        rows = self._rows(entity)
        current = rows.get(record.id)
        if current is None:
            raise NotFoundError(entity.__name__, record.id)
        if current.version != record.version:
            raise StaleRecord(entity.__name__, record.id, record.version)
        stored = replace(record, version=record.version + 1)  # type: ignore[type-var]
        rows[record.id] = stored
        return stored

    async def delete_many(self, entity: type[Record], **where: Any) -> int:
        rows = self._rows(entity)
        doomed = [id for id, r in rows.items() if matches(r, where)]
        for id in doomed:
            del rows[id]
        return len(doomed)


class MemoryStore:
    """
    In-memory store for tests and single-process use.

    Atomic sections run one at a time under a lock, against a shallow copy
    of every table; the copy replaces the live tables only if ``fn``
    returns. Records are immutable, so a shallow copy is enough.

    Note: data does not survive a restart.
    """

    def __init__(self) -> None:
        self._tables: Tables = {}
        self._lock = asyncio.Lock()

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]:
        record = self._tables.get(entity, {}).get(id)
        if record is None:
            return Error(NotFoundError(entity.__name__, id))
        return Ok(record)

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]:
        return [r for r in self._tables.get(entity, {}).values() if matches(r, where)]

    async def run_atomic[T](self, fn: AtomicFn[T]) -> T:
        async with self._lock:
            staged: Tables = {entity: dict(rows) for entity, rows in self._tables.items()}
            result = await fn(_MemoryTransaction(staged))
            self._tables = staged
            return result

    async def seed(self, *records: Record) -> None:
        """Insert records in one atomic section."""

        async def insert_all(tx: Transaction) -> None:
            for record in records:
                await tx.insert(record)

        await self.run_atomic(insert_all)


__all__ = ("MemoryStore",)
