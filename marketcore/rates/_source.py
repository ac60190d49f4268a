"""
Rate sources.

A source returns the full rate table for one base currency, keyed by
lower-case currency code. Sources are untrusted: they may be slow, down, or
answer with garbage.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

import requests
import structlog

from marketcore.rates._policy import DEFAULT_SOURCE_URL
from marketcore.rates._types import RateSourceError

log = structlog.get_logger(__name__)


class RateSource(Protocol):
    async def fetch(self, base: str) -> Mapping[str, Any]:
        """Rate table for ``base``: ``{"eur": 0.92, "gbp": 0.79, ...}``."""
        ...


class HttpRateSource:
    """
    JSON-over-HTTP source (fawazahmed0 currency-api layout).

    The payload is ``{"date": "...", "<base>": {"<code>": <rate>, ...}}``.
    ``requests`` is blocking, so each call runs on a worker thread.
    """

    def __init__(self, url_template: str = DEFAULT_SOURCE_URL, timeout: float = 10.0) -> None:
        self._url_template = url_template
        self._timeout = timeout

    async def fetch(self, base: str) -> Mapping[str, Any]:
        code = base.lower()
        url = self._url_template.format(base=code)
        payload = await asyncio.to_thread(self._get, url)
        table = payload.get(code) if isinstance(payload, dict) else None
        if not isinstance(table, dict):
            raise RateSourceError(f"response has no rate table for {code!r}")
        return table

    def _get(self, url: str) -> Any:
        try:
            response = requests.get(
                url,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise RateSourceError(f"request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise RateSourceError(f"invalid JSON from {url}: {exc}") from exc


__all__ = ("RateSource", "HttpRateSource")
