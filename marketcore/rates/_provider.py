"""
Exchange Rate Provider — cache-aside, retry with backoff, last-known-good.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from typing import Any

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from marketcore._errors import UpstreamUnavailable
from marketcore._types import WallClock, utcnow
from marketcore.cache import cache as make_cache, CacheExecutor
from marketcore.rates._book import RateBook, pair_key
from marketcore.rates._policy import RatePolicy
from marketcore.rates._source import HttpRateSource, RateSource
from marketcore.rates._types import (
    Pair,
    Origin,
    Quote,
    RateSourceError,
    FetchState,
    Fetching,
    Retrying,
    Fetched,
    Fallback,
    Failed,
)

log = structlog.get_logger(__name__)

type Sleep = Callable[[float], Awaitable[None]]


class RateProvider:
    """
    Resolve ``from → to`` rates.

    Order of resolution:
      1. same currency → 1.0, no I/O
      2. fresh cached quote
      3. live fetch, retried with backoff
      4. last-known-good quote (logged)
      5. ``UpstreamUnavailable``

    Fallback quotes are never written to the fresh tier, so the next call
    after TTL expiry tries the source again. Concurrent callers on one
    pair await a single lookup and share its outcome, fallback or failure
    alike.

    Example:
        provider = RateProvider(HttpRateSource(), RateBook())
        match await provider.get_rate("USD", "EUR"):
            case Ok(quote):
                print(quote.rate, quote.origin)
            case Error(e):
                print(e)
    """

    def __init__(
        self,
        source: RateSource,
        book: RateBook,
        policy: RatePolicy = RatePolicy(),
        *,
        sleep: Sleep = asyncio.sleep,
        now: WallClock = utcnow,
    ) -> None:
        self._source = source
        self._book = book
        self._policy = policy
        self._sleep = sleep
        self._now = now
        self._quotes: CacheExecutor[Pair, Quote, UpstreamUnavailable] = (
            make_cache(pair_key, self._fetch)
            .tier(book.fresh)
            .when(lambda q: q.origin is Origin.LIVE)
            .build()
        )

    @classmethod
    def from_policy(
        cls,
        policy: RatePolicy = RatePolicy(),
        *,
        book: RateBook | None = None,
        now: WallClock = utcnow,
    ) -> RateProvider:
        """HTTP source at ``policy.source_url`` with a book that keeps quotes for ``policy.ttl``."""
        source = HttpRateSource(policy.source_url, timeout=policy.attempt_timeout.total_seconds())
        return cls(source, book or RateBook(policy.ttl), policy, now=now)

    @property
    def policy(self) -> RatePolicy:
        return self._policy

    async def get_rate(self, from_currency: str, to_currency: str) -> Result[Quote, UpstreamUnavailable]:
        pair = (from_currency.upper(), to_currency.upper())
        if pair[0] == pair[1]:
            return Ok(Quote(pair[0], pair[1], 1.0, self._now(), Origin.IDENTITY))

        if self._policy.single_flight:
            flight = self._book.join(pair, lambda: self._lookup(pair))
            return await asyncio.shield(flight)
        return await self._lookup(pair)

    async def _lookup(self, pair: Pair) -> Result[Quote, UpstreamUnavailable]:
        match await self._quotes.get(pair):
            case Ok(found):
                quote = found.value
                return Ok(replace(quote, origin=Origin.CACHE) if found.hit else quote)
            case Error(e):
                return Error(e)

    def _fetch(self, pair: Pair) -> LazyCoroResult[Quote, UpstreamUnavailable]:
        async def resolve() -> Result[Quote, UpstreamUnavailable]:
            return await self._resolve(pair)

        return LazyCoroResult(resolve)

    # ═══════════════════════════════════════════════════════════════════════
    # Fetch State Machine
    # ═══════════════════════════════════════════════════════════════════════

    async def _resolve(self, pair: Pair) -> Result[Quote, UpstreamUnavailable]:
        retry = self._policy.retry
        state: FetchState = Fetching(attempt=0)

        while True:
            match state:
                case Fetching(attempt):
                    state = await self._attempt(pair, attempt)

                case Retrying(attempt, delay, _):
                    await self._sleep(delay)
                    state = Fetching(attempt + 1)

                case Fetched(quote):
                    await self._book.remember(quote)
                    return Ok(quote)

                case Fallback(quote, error):
                    log.warning(
                        "rates.fallback",
                        pair=f"{pair[0]}_{pair[1]}",
                        rate=quote.rate,
                        fetched_at=quote.fetched_at.isoformat(),
                        attempts=retry.times,
                        error=error,
                    )
                    return Ok(quote)

                case Failed(error):
                    log.error(
                        "rates.unavailable",
                        pair=f"{pair[0]}_{pair[1]}",
                        attempts=error.attempts,
                        error=error.cause,
                    )
                    return Error(error)

    async def _attempt(self, pair: Pair, attempt: int) -> FetchState:
        retry = self._policy.retry
        try:
            async with asyncio.timeout(self._policy.attempt_timeout.total_seconds()):
                table = await self._source.fetch(pair[0])
            rate = _pick_rate(table, pair)
        except Exception as exc:
            reason = str(exc) or type(exc).__name__
            log.warning(
                "rates.attempt_failed",
                pair=f"{pair[0]}_{pair[1]}",
                attempt=attempt + 1,
                of=retry.times,
                error=reason,
            )
            if attempt + 1 < retry.times:
                return Retrying(attempt, retry.delay(attempt), reason)
            return self._exhausted(pair, reason)

        return Fetched(Quote(pair[0], pair[1], rate, self._now(), Origin.LIVE))

    def _exhausted(self, pair: Pair, reason: str) -> FetchState:
        lkg = self._book.last_known_good(pair)
        if lkg is not None:
            return Fallback(replace(lkg, origin=Origin.FALLBACK), reason)
        return Failed(UpstreamUnavailable(pair[0], pair[1], self._policy.retry.times, reason))


def _pick_rate(table: Mapping[str, Any], pair: Pair) -> float:
    raw = table.get(pair[1].lower())
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        raise RateSourceError(f"no numeric rate for {pair[1]} in {pair[0]} table")
    rate = float(raw)
    if not math.isfinite(rate) or rate <= 0:
        raise RateSourceError(f"rate for {pair[0]}_{pair[1]} is not positive: {raw}")
    return rate


__all__ = ("RateProvider",)
