"""
Exchange-rate fetch policy.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import timedelta

DEFAULT_SOURCE_URL = (
    "https://cdn.jsdelivr.net/npm/@fawazahmed0/currency-api@latest/v1/currencies/{base}.json"
)


@dataclass(frozen=True, slots=True)
class Retry:
    """
    Attempt budget and exponential backoff.

    ``delay(n)`` is the pause after failed attempt ``n`` (0-based):
    ``backoff_initial * backoff_factor ** n``, capped at ``backoff_max``.
    """

    times: int = 3
    backoff_initial: float = 1.0
    backoff_factor: float = 2.0
    backoff_max: float = 30.0
    jitter: bool = False

    def __post_init__(self) -> None:
        if self.times < 1:
            raise ValueError("Retry.times must be at least 1")

    def delay(self, attempt: int) -> float:
        base = min(self.backoff_initial * self.backoff_factor**attempt, self.backoff_max)
        if self.jitter:
            return random.uniform(base / 2, base)
        return base


@dataclass(frozen=True, slots=True)
class RatePolicy:
    """
    Exchange-rate provider configuration.

    Fluent builder pattern — each method returns a new policy.

    Example:
        policy = (
            RatePolicy()
            .with_ttl(minutes=30)
            .with_retry(Retry(times=5, backoff_initial=0.5))
            .with_attempt_timeout(seconds=3)
        )
    """

    ttl: timedelta = timedelta(hours=1)
    retry: Retry = Retry()
    attempt_timeout: timedelta = timedelta(seconds=10)
    single_flight: bool = True
    source_url: str = DEFAULT_SOURCE_URL

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        delta: timedelta | None = None,
    ) -> RatePolicy:
        """Freshness window of cached quotes. Does not affect last-known-good."""
        if delta is None:
            delta = timedelta(seconds=(seconds or 0) + (minutes or 0) * 60)
        return replace(self, ttl=delta)

    def with_retry(self, retry: Retry) -> RatePolicy:
        return replace(self, retry=retry)

    def with_attempt_timeout(
        self,
        *,
        seconds: float | None = None,
        delta: timedelta | None = None,
    ) -> RatePolicy:
        """Upper bound for a single fetch attempt."""
        if delta is None:
            if seconds is None:
                raise ValueError("Must provide seconds or delta")
            delta = timedelta(seconds=seconds)
        return replace(self, attempt_timeout=delta)

    def with_single_flight(self, enabled: bool = True) -> RatePolicy:
        """Share one in-flight fetch between concurrent misses on the same pair."""
        return replace(self, single_flight=enabled)

    def with_source_url(self, url_template: str) -> RatePolicy:
        return replace(self, source_url=url_template)


__all__ = ("DEFAULT_SOURCE_URL", "Retry", "RatePolicy")
