"""
SQLAlchemy store — typed records in one JSON document table.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///:memory:")
    store = SQLAlchemyStore(session_factory)

    order = await store.run_atomic(lambda tx: tx.insert(order))

Each record is a row keyed by ``(entity, id)``; ``entity`` is the record
class name and ``data`` is the record encoded with a pydantic ``TypeAdapter``.
Updates are conditional on the stored ``version`` column.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, cast

from pydantic import TypeAdapter
from sqlalchemy import JSON, Integer, String, delete, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kungfu import Result, Ok, Error

from marketcore._errors import NotFoundError, StaleRecord
from marketcore.store._types import AtomicFn, Record, matches

# ═══════════════════════════════════════════════════════════════════════════════
# Table
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


class RecordRow(Base):
    __tablename__ = "records"

    entity: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


# ═══════════════════════════════════════════════════════════════════════════════
# Codec
# ═══════════════════════════════════════════════════════════════════════════════


class RecordCodec:
    """Record dataclass ⇄ JSON-safe dict, one cached adapter per entity."""

    def __init__(self) -> None:
        self._adapters: dict[type, TypeAdapter[Any]] = {}

    def _adapter(self, entity: type) -> TypeAdapter[Any]:
        adapter = self._adapters.get(entity)
        if adapter is None:
            adapter = self._adapters[entity] = TypeAdapter(entity)
        return adapter

    def encode(self, record: Record) -> dict[str, Any]:
        return self._adapter(type(record)).dump_python(record, mode="json")

    def decode[R: Record](self, entity: type[R], row: RecordRow) -> R:
        record = self._adapter(entity).validate_python(row.data)
        return replace(record, version=row.version)


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class _SessionTransaction:
    def __init__(self, session: AsyncSession, codec: RecordCodec) -> None:
        self._session = session
        self._codec = codec

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]:
        row = await self._session.get(RecordRow, (entity.__name__, id), populate_existing=True)
        if row is None:
            return Error(NotFoundError(entity.__name__, id))
        return Ok(self._codec.decode(entity, row))

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]:
        stmt = (
            select(RecordRow)
            .where(RecordRow.entity == entity.__name__)
            .execution_options(populate_existing=True)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        records = [self._codec.decode(entity, row) for row in rows]
        return [r for r in records if matches(r, where)]

    async def insert[R: Record](self, record: R) -> R:
        self._session.add(
            RecordRow(
                entity=type(record).__name__,
                id=record.id,
                version=record.version,
                data=self._codec.encode(record),
            )
        )
        # Surface duplicate keys here rather than at commit
        await self._session.flush()
        return record

    async def update[R: Record](self, record: R) -> R:
        name = type(record).__name__
        stored = replace(record, version=record.version + 1)  # type: ignore[type-var]
        stmt = (
            update(RecordRow)
            .where(
                RecordRow.entity == name,
                RecordRow.id == record.id,
                RecordRow.version == record.version,
            )
            .values(version=stored.version, data=self._codec.encode(stored))
        )
        cursor = cast(CursorResult[Any], await self._session.execute(stmt))
        if cursor.rowcount == 0:
            exists = await self._session.get(RecordRow, (name, record.id))
            if exists is None:
                raise NotFoundError(name, record.id)
            raise StaleRecord(name, record.id, record.version)
        return stored

    async def delete_many(self, entity: type[Record], **where: Any) -> int:
        doomed = [r.id for r in await self.find_many(entity, **where)]
        if not doomed:
            return 0
        await self._session.execute(
            delete(RecordRow).where(
                RecordRow.entity == entity.__name__,
                RecordRow.id.in_(doomed),
            )
        )
        return len(doomed)


# ═══════════════════════════════════════════════════════════════════════════════
# Store
# ═══════════════════════════════════════════════════════════════════════════════


class SQLAlchemyStore:
    """
    Store over an async SQLAlchemy session factory.

    ``run_atomic`` opens one session and one ``session.begin()`` block: the
    block commits when ``fn`` returns and rolls back when it raises.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._codec = RecordCodec()

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]:
        async with self._session_factory() as session:
            return await _SessionTransaction(session, self._codec).find_one(entity, id)

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]:
        async with self._session_factory() as session:
            return await _SessionTransaction(session, self._codec).find_many(entity, **where)

    async def run_atomic[T](self, fn: AtomicFn[T]) -> T:
        async with self._session_factory() as session:
            async with session.begin():
                return await fn(_SessionTransaction(session, self._codec))


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create the records table and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


__all__ = (
    "Base",
    "RecordRow",
    "RecordCodec",
    "SQLAlchemyStore",
    "create_database",
)
