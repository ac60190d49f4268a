"""
Cache types.
"""

from __future__ import annotations

import asyncio
import fnmatch
from collections import OrderedDict
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto
from typing import Protocol

import structlog

from marketcore._types import Clock, monotonic

log = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Cache tier protocol.

    ``LocalTier`` is the in-process implementation; a shared backend only
    needs these five members. Patterns use glob syntax, e.g.
    ``orders:buyer:42*`` drops every cached listing page of buyer 42.
    """

    @property
    def name(self) -> str:
        """Tier name for debugging."""
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: T, ttl: timedelta | None = None) -> None:
        """Set value; ``ttl`` overrides the tier default."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching pattern. Returns count."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Stats
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    sets: int
    deletes: int
    size: int

    @property
    def hit_rate(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# Local Tier — In-Memory LRU with TTL
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class _Entry[T]:
    value: T
    expires_at: float | None


class LocalTier[T]:
    """
    In-memory LRU tier with per-entry expiry.

    Example:
        rates = LocalTier[Quote](max_size=500, ttl=timedelta(hours=1))
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: timedelta | None = None,
        clock: Clock = monotonic,
    ) -> None:
        self._max_size = max_size
        self._ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[str, _Entry[T]] = OrderedDict()
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0

    @property
    def name(self) -> str:
        return "local"

    async def get(self, key: str) -> T | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if self._expired(entry):
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    async def set(self, key: str, value: T, ttl: timedelta | None = None) -> None:
        lifetime = ttl if ttl is not None else self._ttl
        expires_at = self._clock() + lifetime.total_seconds() if lifetime else None
        async with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._max_size:
                self._entries.popitem(last=False)
            self._entries[key] = _Entry(value, expires_at)
            self._sets += 1

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._deletes += 1
            return True

    async def delete_pattern(self, pattern: str) -> int:
        async with self._lock:
            matched = [k for k in self._entries if fnmatch.fnmatchcase(k, pattern)]
            for key in matched:
                del self._entries[key]
            self._deletes += len(matched)
            return len(matched)

    async def purge_expired(self) -> int:
        """Drop expired entries. Meant for a periodic sweeper."""
        async with self._lock:
            expired = [k for k, e in self._entries.items() if self._expired(e)]
            for key in expired:
                del self._entries[key]
        if expired:
            log.debug("cache.purged", tier=self.name, count=len(expired))
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            sets=self._sets,
            deletes=self._deletes,
            size=len(self._entries),
        )

    def _expired(self, entry: _Entry[T]) -> bool:
        return entry.expires_at is not None and self._clock() >= entry.expires_at


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    """Cache operation result with metadata."""
    value: T
    hit: bool
    tier: str | None


class CacheErrorKind(Enum):
    """Cache error kinds."""
    CONNECTION = auto()
    SERIALIZATION = auto()
    TIMEOUT = auto()


@dataclass(frozen=True, slots=True)
class CacheError:
    """Cache operation error."""
    kind: CacheErrorKind
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "Tier",
    "CacheStats",
    "LocalTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
)
