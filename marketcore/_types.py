"""
Clock types shared across marketcore.

Every component that reads time takes one of these as a constructor
argument, so tests can drive TTLs, windows and expiry by hand.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import datetime, UTC

from marketcore._errors import ValidationError

type Clock = Callable[[], float]
"""Monotonic seconds. Used for TTLs and rate-limit windows."""

type WallClock = Callable[[], datetime]
"""Timezone-aware wall-clock time. Used for record timestamps and expiry."""


def monotonic() -> float:
    return time.monotonic()


def utcnow() -> datetime:
    return datetime.now(UTC)


def require_aware(value: datetime | None, field: str) -> datetime | None:
    """Reject naive datetimes; they cannot be ordered against a ``WallClock``."""
    if value is not None and (value.tzinfo is None or value.utcoffset() is None):
        raise ValidationError("must be timezone-aware", field)
    return value


__all__ = ("Clock", "WallClock", "monotonic", "utcnow", "require_aware")
