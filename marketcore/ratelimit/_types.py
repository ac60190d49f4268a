"""
Rate-limit types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum


class LimitTier(StrEnum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    PREMIUM = "premium"


@dataclass(frozen=True, slots=True)
class Limit:
    """At most ``max_requests`` per ``window`` seconds."""

    max_requests: int
    window: float

    def __post_init__(self) -> None:
        if self.max_requests < 1 or self.window <= 0:
            raise ValueError("Limit needs max_requests >= 1 and a positive window")


def _default_tiers() -> dict[LimitTier, Limit]:
    return {
        LimitTier.ANONYMOUS: Limit(30, 60.0),
        LimitTier.AUTHENTICATED: Limit(100, 60.0),
        LimitTier.PREMIUM: Limit(1000, 60.0),
    }


@dataclass(frozen=True, slots=True)
class LimitPolicy:
    """
    Per-tier limits plus sweep cadence.

    Example:
        policy = LimitPolicy().with_tier(LimitTier.ANONYMOUS, Limit(10, 60))
    """

    tiers: dict[LimitTier, Limit] = field(default_factory=_default_tiers)
    sweep_interval: float = 60.0

    def limit_for(self, tier: LimitTier) -> Limit:
        return self.tiers[tier]

    def with_tier(self, tier: LimitTier, limit: Limit) -> LimitPolicy:
        return replace(self, tiers={**self.tiers, tier: limit})

    def with_sweep_interval(self, seconds: float) -> LimitPolicy:
        return replace(self, sweep_interval=seconds)


@dataclass(slots=True)
class Window:
    """Mutable counter for one (actor, operation) key."""

    count: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class Admitted:
    """A call that passed the guard."""

    key: str
    count: int
    limit: int
    reset_in: float

    @property
    def remaining(self) -> int:
        return self.limit - self.count


@dataclass(frozen=True, slots=True)
class LimiterMetrics:
    total: int
    allowed: int
    blocked: int
    blocked_by_tier: dict[str, int]
    tracked_keys: int

    @property
    def block_rate(self) -> float:
        return self.blocked / self.total if self.total else 0.0


__all__ = (
    "LimitTier",
    "Limit",
    "LimitPolicy",
    "Window",
    "Admitted",
    "LimiterMetrics",
)
