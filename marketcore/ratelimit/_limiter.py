"""
In-memory windowed rate limiter.
"""

from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from types import TracebackType

import structlog
from kungfu import Result, Ok, Error

from marketcore._errors import RateLimited
from marketcore._sweep import Sweeper
from marketcore._types import Clock, monotonic
from marketcore.ratelimit._types import (
    Admitted,
    Limit,
    LimitPolicy,
    LimitTier,
    LimiterMetrics,
    Window,
)

log = structlog.get_logger(__name__)


def limit_key(actor: str, operation: str) -> str:
    return f"{actor}:{operation}"


class RateLimiter:
    """
    Counts calls per ``(actor, operation)`` inside a window.

    The first call opens a window of ``limit.window`` seconds; calls past
    ``limit.max_requests`` are rejected until it closes. Each key has its own
    lock. A background sweeper drops closed windows.

    Example:
        async with RateLimiter(LimitPolicy()) as limiter:
            match await limiter.hit(user_id, "createOrder"):
                case Ok(_):
                    ...
                case Error(limited):
                    print(limited.retry_after)
    """

    def __init__(self, policy: LimitPolicy = LimitPolicy(), clock: Clock = monotonic) -> None:
        self._policy = policy
        self._clock = clock
        self._windows: dict[str, Window] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._sweeper = Sweeper(policy.sweep_interval, self.sweep, name="ratelimit")
        self._total = 0
        self._allowed = 0
        self._blocked: Counter[str] = Counter()

    async def hit(
        self,
        actor: str,
        operation: str,
        tier: LimitTier = LimitTier.AUTHENTICATED,
        limit: Limit | None = None,
    ) -> Result[Admitted, RateLimited]:
        """Count one call. ``limit`` overrides the tier default."""
        applied = limit or self._policy.limit_for(tier)
        key = limit_key(actor, operation)

        async with self._locks[key]:
            now = self._clock()
            self._total += 1
            window = self._windows.get(key)

            if window is None or now >= window.reset_at:
                window = self._windows[key] = Window(count=1, reset_at=now + applied.window)
            elif window.count >= applied.max_requests:
                self._blocked[tier.value] += 1
                retry_after = max(window.reset_at - now, 0.0)
                log.info("ratelimit.blocked", key=key, tier=tier.value, retry_after=retry_after)
                return Error(RateLimited(key, retry_after))
            else:
                window.count += 1

            self._allowed += 1
            return Ok(Admitted(key, window.count, applied.max_requests, window.reset_at - now))

    async def reset(self, actor: str, operation: str) -> bool:
        return await self._drop(limit_key(actor, operation))

    async def reset_all(self) -> None:
        """Drop every window, waiting for each key's current holder."""
        for key in list(self._windows.keys() | self._locks.keys()):
            await self._drop(key)

    async def _drop(self, key: str) -> bool:
        lock = self._locks[key]
        async with lock:
            existed = self._windows.pop(key, None) is not None
        if self._locks.get(key) is lock and not lock.locked():
            del self._locks[key]
        return existed

    async def sweep(self) -> int:
        """Delete closed windows. Keys currently held by a caller are skipped."""
        now = self._clock()
        removed = 0
        for key, window in list(self._windows.items()):
            lock = self._locks.get(key)
            if now < window.reset_at or (lock is not None and lock.locked()):
                continue
            del self._windows[key]
            self._locks.pop(key, None)
            removed += 1
        return removed

    def metrics(self) -> LimiterMetrics:
        return LimiterMetrics(
            total=self._total,
            allowed=self._allowed,
            blocked=sum(self._blocked.values()),
            blocked_by_tier=dict(self._blocked),
            tracked_keys=len(self._windows),
        )

    # ═══════════════════════════════════════════════════════════════════════
    # Background Sweep
    # ═══════════════════════════════════════════════════════════════════════

    def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    async def __aenter__(self) -> RateLimiter:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()


__all__ = ("RateLimiter", "limit_key")
