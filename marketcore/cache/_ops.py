"""
Invalidation by key or glob, with tier failures turned into values.
"""

from __future__ import annotations

from kungfu import LazyCoroResult
from combinators import lift as L

from marketcore.cache._types import Tier, CacheError, CacheErrorKind

_GLOB_CHARS = frozenset("*?[")


def is_glob(pattern: str) -> bool:
    return not _GLOB_CHARS.isdisjoint(pattern)


def tier_error(exc: Exception) -> CacheError:
    kind = CacheErrorKind.TIMEOUT if isinstance(exc, TimeoutError) else CacheErrorKind.CONNECTION
    return CacheError(kind, str(exc) or type(exc).__name__)


def invalidate_pattern[T](t: Tier[T], pattern: str) -> LazyCoroResult[int, CacheError]:
    """
    Drop every key in ``t`` matching ``pattern``.

    A pattern with no glob characters names a single key and is deleted
    directly instead of scanning the tier.

    Example:
        count = await C.invalidate_pattern(listings, f"orders:buyer:{buyer_id}*")
    """

    async def drop() -> int:
        if is_glob(pattern):
            return await t.delete_pattern(pattern)
        return int(await t.delete(pattern))

    return L.catching_async(drop, on_error=tier_error)


__all__ = ("is_glob", "tier_error", "invalidate_pattern")
