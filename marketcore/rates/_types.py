"""
Exchange-rate types: quotes and the fetch state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from marketcore._errors import UpstreamUnavailable

type Pair = tuple[str, str]


class Origin(Enum):
    """Where a quote came from."""

    LIVE = "live"
    CACHE = "cache"
    FALLBACK = "fallback"
    IDENTITY = "identity"


@dataclass(frozen=True, slots=True)
class Quote:
    from_currency: str
    to_currency: str
    rate: float
    fetched_at: datetime
    origin: Origin

    @property
    def pair(self) -> Pair:
        return (self.from_currency, self.to_currency)


class RateSourceError(Exception):
    """The external source answered with something unusable."""


# ═══════════════════════════════════════════════════════════════════════════════
# Fetch State Machine
#
#   Fetching(n) ──ok──────────────▶ Fetched
#       │ fail, n+1 < times
#       ▼
#   Retrying(n) ──sleep──▶ Fetching(n+1)
#       │ fail, attempts exhausted
#       ▼
#   Fallback (LKG present) | Failed (no LKG)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Fetching:
    attempt: int


@dataclass(frozen=True, slots=True)
class Retrying:
    attempt: int
    delay: float
    error: str


@dataclass(frozen=True, slots=True)
class Fetched:
    quote: Quote


@dataclass(frozen=True, slots=True)
class Fallback:
    quote: Quote
    error: str


@dataclass(frozen=True, slots=True)
class Failed:
    error: UpstreamUnavailable


type FetchState = Fetching | Retrying | Fetched | Fallback | Failed


__all__ = (
    "Pair",
    "Origin",
    "Quote",
    "RateSourceError",
    "Fetching",
    "Retrying",
    "Fetched",
    "Fallback",
    "Failed",
    "FetchState",
)
