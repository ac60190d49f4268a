"""
Store — transactional record storage.

    from marketcore import store as St

    store = St.MemoryStore()
    order = await store.run_atomic(lambda tx: tx.insert(order))
"""

from __future__ import annotations

from marketcore.store._types import Record, Transaction, AtomicFn, Store, matches, require
from marketcore.store._memory import MemoryStore
from marketcore.store._sqlalchemy import (
    Base,
    RecordRow,
    RecordCodec,
    SQLAlchemyStore,
    create_database,
)

__all__ = (
    "Record",
    "Transaction",
    "AtomicFn",
    "Store",
    "matches",
    "require",
    "MemoryStore",
    "Base",
    "RecordRow",
    "RecordCodec",
    "SQLAlchemyStore",
    "create_database",
)
