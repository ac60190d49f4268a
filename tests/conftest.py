"""
Shared fakes: manual clocks, a scripted rate source, an in-memory world.
"""

from __future__ import annotations

import itertools
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest
from kungfu import Error, Ok, Result

from marketcore import cache as C
from marketcore import events as E
from marketcore import rates as R
from marketcore import store as St
from marketcore import workflows as W
from marketcore.config import Settings

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


class ManualClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedSource:
    """
    Rate source that replays ``steps`` in order.

    A step is a rate table to return or an exception to raise; the last
    step repeats forever.
    """

    def __init__(self, *steps: Mapping[str, Any] | Exception) -> None:
        self.steps = list(steps)
        self.calls: list[str] = []

    async def fetch(self, base: str) -> Mapping[str, Any]:
        self.calls.append(base)
        step = self.steps.pop(0) if len(self.steps) > 1 else self.steps[0]
        if isinstance(step, Exception):
            raise step
        return step


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def fixed_now() -> datetime:
    return NOW


@dataclass
class World:
    store: St.MemoryStore
    cache: C.LocalTier[Any]
    publisher: E.MemoryPublisher
    source: ScriptedSource
    services: W.Services


@pytest.fixture
def world() -> World:
    store = St.MemoryStore()
    tier: C.LocalTier[Any] = C.LocalTier()
    publisher = E.MemoryPublisher()
    source = ScriptedSource({"eur": 0.5})
    provider = R.RateProvider(source, R.RateBook(), sleep=RecordingSleep(), now=fixed_now)
    counter = itertools.count(1)
    services = W.Services.build(
        store,
        tier,
        publisher,
        provider,
        Settings(),
        now=fixed_now,
        ids=lambda: f"id-{next(counter)}",
    )
    return World(store, tier, publisher, source, services)


async def awaited[T](value: Awaitable[T]) -> T:
    """Adapt a lazy awaitable for ``asyncio.run``, which wants a coroutine."""
    return await value


def ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            raise AssertionError(f"expected Ok, got {e!r}")
