"""
Rate limit — per-actor, per-operation call windows.

    from marketcore import ratelimit as RL

    limiter = RL.RateLimiter(RL.LimitPolicy())
    result = await limiter.hit(user_id, "placeWholesaleOrder", RL.LimitTier.PREMIUM)
"""

from __future__ import annotations

from marketcore.ratelimit._types import (
    LimitTier,
    Limit,
    LimitPolicy,
    Window,
    Admitted,
    LimiterMetrics,
)
from marketcore.ratelimit._limiter import RateLimiter, limit_key

__all__ = (
    "LimitTier",
    "Limit",
    "LimitPolicy",
    "Window",
    "Admitted",
    "LimiterMetrics",
    "RateLimiter",
    "limit_key",
)
