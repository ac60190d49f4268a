"""
Collaborators shared by every workflow.
"""

from __future__ import annotations

import secrets
import string
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from marketcore._types import WallClock, utcnow
from marketcore.cache import Tier
from marketcore.commit import Runtime
from marketcore.config import Settings
from marketcore.events import Publisher
from marketcore.pricing import PricingService
from marketcore.ratelimit import RateLimiter
from marketcore.rates import RateProvider
from marketcore.store import Store

_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


def new_id() -> str:
    return str(uuid.uuid4())


def document_number(prefix: str, at: datetime) -> str:
    """``ORD-1718000000000-K3F9Q2A``: prefix, epoch millis, seven random characters."""
    suffix = "".join(secrets.choice(_NUMBER_ALPHABET) for _ in range(7))
    return f"{prefix}-{int(at.timestamp() * 1000)}-{suffix}"


@dataclass(frozen=True, slots=True)
class Services:
    runtime: Runtime
    pricing: PricingService
    settings: Settings = Settings()
    now: WallClock = utcnow
    new_id: Callable[[], str] = new_id
    limiter: RateLimiter = field(default_factory=RateLimiter)

    @classmethod
    def build(
        cls,
        store: Store,
        cache: Tier,
        publisher: Publisher,
        rates: RateProvider | None = None,
        settings: Settings = Settings(),
        *,
        now: WallClock = utcnow,
        ids: Callable[[], str] = new_id,
    ) -> Services:
        """
        Wire the collaborators from ``settings``.

        Without ``rates`` an HTTP provider is built from ``settings.rates``.
        The limiter always follows ``settings.limits``; the caller starts
        and stops its sweeper.
        """
        provider = rates if rates is not None else RateProvider.from_policy(settings.rates, now=now)
        pricing = PricingService(store, provider, cart_tax_rate=settings.cart_tax_rate, now=now)
        limiter = RateLimiter(settings.limits)
        return cls(Runtime(store, cache, publisher), pricing, settings, now, ids, limiter)

    @property
    def store(self) -> Store:
        return self.runtime.store


__all__ = ("new_id", "document_number", "Services")
