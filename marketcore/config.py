"""
Settings — one frozen value, loaded from the environment or built fluently.

    settings = Settings.from_env()
    settings = Settings().with_cart_tax_rate("0.07").with_default_currency("EUR")

Environment values come from ``.env`` (python-dotenv) and ``os.environ``;
missing or unparsable values keep the defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

from marketcore._errors import ValidationError
from marketcore.money import Numeric, as_decimal
from marketcore.ratelimit import Limit, LimitPolicy, LimitTier
from marketcore.rates import RatePolicy

# ═══════════════════════════════════════════════════════════════════════════════
# Environment Accessors
# ═══════════════════════════════════════════════════════════════════════════════


def get_optional(key: str, default: str = "") -> str:
    """Get optional env var; return default if missing or empty."""
    val = os.getenv(key, "").strip()
    return val if val else default


def get_optional_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_optional_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_optional_decimal(key: str, default: Decimal) -> Decimal:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return as_decimal(raw, key)
    except ValidationError:
        return default


# ═══════════════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Settings:
    rates: RatePolicy = RatePolicy()
    limits: LimitPolicy = field(default_factory=LimitPolicy)
    cart_tax_rate: Decimal = Decimal("0.08")
    default_currency: str = "USD"

    def with_rates(self, policy: RatePolicy) -> Settings:
        return replace(self, rates=policy)

    def with_limits(self, policy: LimitPolicy) -> Settings:
        return replace(self, limits=policy)

    def with_cart_tax_rate(self, rate: Numeric) -> Settings:
        return replace(self, cart_tax_rate=as_decimal(rate, "cart_tax_rate"))

    def with_default_currency(self, code: str) -> Settings:
        return replace(self, default_currency=code.upper())

    @classmethod
    def from_env(cls, path: str | Path | None = None) -> Settings:
        """
        Build settings from ``MARKETCORE_*`` and ``RATE_LIMIT_*`` variables.

        ``path`` points at a specific ``.env`` file; otherwise python-dotenv
        searches for one. Variables already set in the process win.
        """
        load_dotenv(path)
        base = cls()

        retry = base.rates.retry
        retry = replace(
            retry,
            times=max(get_optional_int("MARKETCORE_RATE_MAX_RETRIES", retry.times), 1),
            backoff_initial=get_optional_float("MARKETCORE_RATE_BACKOFF_SECONDS", retry.backoff_initial),
        )
        rates = (
            base.rates
            .with_ttl(seconds=get_optional_float(
                "MARKETCORE_RATE_TTL_SECONDS", base.rates.ttl.total_seconds()
            ))
            .with_attempt_timeout(seconds=get_optional_float(
                "MARKETCORE_RATE_ATTEMPT_TIMEOUT", base.rates.attempt_timeout.total_seconds()
            ))
            .with_retry(retry)
            .with_source_url(get_optional("MARKETCORE_RATE_SOURCE_URL", base.rates.source_url))
        )

        limits = base.limits
        for tier in LimitTier:
            prefix = f"RATE_LIMIT_{tier.name}"
            current = limits.limit_for(tier)
            max_requests = get_optional_int(f"{prefix}_MAX", current.max_requests)
            window = get_optional_float(f"{prefix}_WINDOW", current.window)
            if max_requests >= 1 and window > 0:
                limits = limits.with_tier(tier, Limit(max_requests, window))

        tax = get_optional_decimal("MARKETCORE_CART_TAX_RATE", base.cart_tax_rate)
        if tax < 0:
            tax = base.cart_tax_rate
        currency = get_optional("MARKETCORE_DEFAULT_CURRENCY", base.default_currency)
        if len(currency) != 3 or not currency.isalpha():
            currency = base.default_currency

        return cls(
            rates=rates,
            limits=limits,
            cart_tax_rate=tax,
            default_currency=currency.upper(),
        )


__all__ = (
    "get_optional",
    "get_optional_int",
    "get_optional_float",
    "get_optional_decimal",
    "Settings",
)
