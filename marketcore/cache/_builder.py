"""
Cache builder — fluent cache-aside API.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from marketcore.cache._types import Tier, CacheResult, CacheError

log = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Function Types
# ═══════════════════════════════════════════════════════════════════════════════

type KeyFn[K] = Callable[[K], str]

type StorePredicate[T] = Callable[[T], bool]


def _always(_: object) -> bool:
    return True


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """
    Fluent cache builder.

    Type parameters:
        K: Key input type
        T: Value type
        E: Error type from fetch

    Example:
        rate_cache = (
            C.cache(pair_key, fetch_quote)
            .tier(fresh_quotes)
            .when(lambda q: q.origin is Origin.LIVE)
            .build()
        )
    """

    _key_fn: KeyFn[K]
    _fetch: Callable[[K], LazyCoroResult[T, E]]
    _tiers: tuple[Tier[T], ...]
    _should_store: StorePredicate[T]

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        """Add cache tier. Tiers are read in the order added."""
        return Cache(
            _key_fn=self._key_fn,
            _fetch=self._fetch,
            _tiers=(*self._tiers, t),
            _should_store=self._should_store,
        )

    def when(self, predicate: StorePredicate[T]) -> Cache[K, T, E]:
        """Only populate tiers with fetched values that satisfy ``predicate``."""
        return Cache(
            _key_fn=self._key_fn,
            _fetch=self._fetch,
            _tiers=self._tiers,
            _should_store=predicate,
        )

    def build(self) -> CacheExecutor[K, T, E]:
        """Build executable cache."""
        return CacheExecutor(
            key_fn=self._key_fn,
            tiers=self._tiers,
            fetch=self._fetch,
            should_store=self._should_store,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    """Compiled cache executor."""

    key_fn: KeyFn[K]
    tiers: tuple[Tier[T], ...]
    fetch: Callable[[K], LazyCoroResult[T, E]]
    should_store: StorePredicate[T] = _always

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], CacheError | E]:
        """
        Get value from cache.

        Tries tiers in order, then falls back to fetch. A failing tier is
        skipped rather than failing the read.
        """
        cache_key = self.key_fn(key)

        async def execute() -> Result[CacheResult[T], CacheError | E]:
            for t in self.tiers:
                try:
                    value = await t.get(cache_key)
                except Exception as exc:
                    log.warning("cache.tier_read_failed", tier=t.name, key=cache_key, error=str(exc))
                    continue
                if value is not None:
                    return Ok(CacheResult(value=value, hit=True, tier=t.name))

            match await self.fetch(key):
                case Ok(value):
                    if self.should_store(value):
                        await self._populate(cache_key, value)
                    return Ok(CacheResult(value=value, hit=False, tier=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def _populate(self, cache_key: str, value: T) -> None:
        for t in self.tiers:
            try:
                await t.set(cache_key, value)
            except Exception as exc:
                log.warning("cache.tier_write_failed", tier=t.name, key=cache_key, error=str(exc))


# ═══════════════════════════════════════════════════════════════════════════════
# cache() — Entry Point
# ═══════════════════════════════════════════════════════════════════════════════


def cache[K, T, E](
    key: KeyFn[K],
    fetch: Callable[[K], LazyCoroResult[T, E]],
) -> Cache[K, T, E]:
    """
    Create cache builder with key function and fetch.

    Example:
        from marketcore import cache as C

        def pair_key(pair: tuple[str, str]) -> str:
            return f"rate:{pair[0]}_{pair[1]}"

        quotes = (
            C.cache(pair_key, fetch_quote)
            .tier(C.LocalTier(ttl=timedelta(hours=1)))
            .build()
        )

        result = await quotes.get(("USD", "EUR"))
    """
    return Cache(
        _key_fn=key,
        _fetch=fetch,
        _tiers=(),
        _should_store=_always,
    )


__all__ = ("Cache", "CacheExecutor", "cache")
