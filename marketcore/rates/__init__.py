"""
Rates — exchange-rate provider with TTL cache and last-known-good fallback.

    from marketcore import rates as R

    provider = R.RateProvider(R.HttpRateSource(), R.RateBook())
    result = await provider.get_rate("USD", "EUR")
"""

from __future__ import annotations

from marketcore.rates._policy import DEFAULT_SOURCE_URL, Retry, RatePolicy
from marketcore.rates._types import (
    Pair,
    Origin,
    Quote,
    RateSourceError,
    Fetching,
    Retrying,
    Fetched,
    Fallback,
    Failed,
    FetchState,
)
from marketcore.rates._source import RateSource, HttpRateSource
from marketcore.rates._book import RateBook, pair_key
from marketcore.rates._provider import RateProvider

__all__ = (
    "DEFAULT_SOURCE_URL",
    "Retry",
    "RatePolicy",
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
    "RateSource",
    "HttpRateSource",
    "RateBook",
    "pair_key",
    "RateProvider",
)
