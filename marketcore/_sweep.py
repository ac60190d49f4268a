"""
Periodic background sweep for shared in-memory state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger(__name__)


class Sweeper:
    """
    Runs ``fn`` every ``interval`` seconds on its own task.

    Failures are logged and the loop keeps going; the task never shares a
    lock with request handling beyond what ``fn`` itself takes.

    Example:
        sweeper = Sweeper(60.0, tier.purge_expired, name="rates")
        sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(
        self,
        interval: float,
        fn: Callable[[], Awaitable[int]],
        *,
        name: str = "sweep",
    ) -> None:
        self._interval = interval
        self._fn = fn
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"sweeper:{self._name}")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                removed = await self._fn()
            except Exception:
                log.exception("sweep.failed", sweeper=self._name)
                continue
            log.debug("sweep.done", sweeper=self._name, removed=removed)


__all__ = ("Sweeper",)
