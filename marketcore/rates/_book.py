"""
RateBook — the process-owned exchange-rate state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from datetime import timedelta
from typing import Any

from kungfu import Result

from marketcore._errors import UpstreamUnavailable
from marketcore._types import Clock, monotonic
from marketcore.cache import LocalTier
from marketcore.rates._types import Pair, Quote


class RateBook:
    """
    Fresh quotes (TTL) plus last-known-good quotes (no expiry).

    Construct one per process and hand it to every ``RateProvider``; tests
    build their own for isolation.

    Example:
        book = RateBook(ttl=timedelta(hours=1))
        provider = RateProvider(source, book)
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=1),
        *,
        max_size: int = 1000,
        clock: Clock = monotonic,
    ) -> None:
        self.fresh: LocalTier[Quote] = LocalTier(max_size=max_size, ttl=ttl, clock=clock)
        self._last_known_good: dict[Pair, Quote] = {}
        self._lkg_lock = asyncio.Lock()
        self._flights: dict[Pair, asyncio.Task[Result[Quote, UpstreamUnavailable]]] = {}

    def join(
        self,
        pair: Pair,
        start: Callable[[], Coroutine[Any, Any, Result[Quote, UpstreamUnavailable]]],
    ) -> asyncio.Task[Result[Quote, UpstreamUnavailable]]:
        """
        The in-flight lookup for ``pair``, started with ``start`` if none is running.

        Every caller that joins while the task runs gets its outcome, a
        fallback or a failure included. The entry is dropped on completion.
        """
        task = self._flights.get(pair)
        if task is None:
            task = asyncio.create_task(start())
            self._flights[pair] = task
            task.add_done_callback(lambda done: self._land(pair, done))
        return task

    def in_flight(self, pair: Pair) -> bool:
        return pair in self._flights

    def _land(self, pair: Pair, task: asyncio.Task[Any]) -> None:
        if self._flights.get(pair) is task:
            del self._flights[pair]

    async def remember(self, quote: Quote) -> bool:
        """
        Record a successful fetch as last-known-good.

        Older quotes never overwrite newer ones. Returns True if stored.
        """
        async with self._lkg_lock:
            current = self._last_known_good.get(quote.pair)
            if current is not None and current.fetched_at > quote.fetched_at:
                return False
            self._last_known_good[quote.pair] = quote
            return True

    def last_known_good(self, pair: Pair) -> Quote | None:
        return self._last_known_good.get(pair)


def pair_key(pair: Pair) -> str:
    return f"rate:{pair[0]}_{pair[1]}"


__all__ = ("RateBook", "pair_key")
