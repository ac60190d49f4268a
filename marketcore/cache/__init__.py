"""
Cache — tiered cache-aside with glob invalidation.

    from marketcore import cache as C

    quotes = C.cache(key_fn, fetch_fn).tier(C.LocalTier(ttl=hour)).build()
    result = await quotes.get(pair)
"""

from __future__ import annotations

from marketcore.cache._types import (
    Tier,
    CacheStats,
    LocalTier,
    CacheResult,
    CacheError,
    CacheErrorKind,
)
from marketcore.cache._builder import cache, Cache, CacheExecutor
from marketcore.cache._ops import is_glob, tier_error, invalidate_pattern

__all__ = (
    "Tier",
    "CacheStats",
    "LocalTier",
    "CacheResult",
    "CacheError",
    "CacheErrorKind",
    "cache",
    "Cache",
    "CacheExecutor",
    "is_glob",
    "tier_error",
    "invalidate_pattern",
)
