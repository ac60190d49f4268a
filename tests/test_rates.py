"""
Tests for the exchange-rate provider: cache, retries, last-known-good.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
import requests
from kungfu import Error, Ok
from structlog.testing import capture_logs

from marketcore import rates as R
from marketcore._errors import ErrorKind, UpstreamUnavailable

from conftest import ManualClock, RecordingSleep, ScriptedSource, fixed_now, ok


def _provider(
    source: ScriptedSource,
    clock: ManualClock | None = None,
    policy: R.RatePolicy = R.RatePolicy(),
) -> tuple[R.RateProvider, RecordingSleep]:
    sleep = RecordingSleep()
    book = R.RateBook(policy.ttl, clock=clock or ManualClock())
    return R.RateProvider(source, book, policy, sleep=sleep, now=fixed_now), sleep


def test_same_currency_never_touches_source() -> None:
    source = ScriptedSource(RuntimeError("must not be called"))
    provider, _ = _provider(source)

    match asyncio.run(provider.get_rate("usd", "USD")):
        case Ok(quote):
            assert quote.rate == 1.0
            assert quote.origin is R.Origin.IDENTITY
        case Error(e):
            raise AssertionError(e)
    assert source.calls == []


def test_fresh_quote_is_served_from_cache() -> None:
    source = ScriptedSource({"eur": 0.92})
    provider, _ = _provider(source)

    async def scenario() -> tuple[R.Quote, R.Quote]:
        first = ok(await provider.get_rate("USD", "EUR"))
        second = ok(await provider.get_rate("USD", "EUR"))
        return first, second

    first, second = asyncio.run(scenario())
    assert (first.rate, first.origin) == (0.92, R.Origin.LIVE)
    assert (second.rate, second.origin) == (0.92, R.Origin.CACHE)
    assert source.calls == ["USD"]


def test_transient_failure_is_retried_with_backoff() -> None:
    source = ScriptedSource(R.RateSourceError("502"), {"eur": 0.9})
    provider, sleep = _provider(source)

    match asyncio.run(provider.get_rate("USD", "EUR")):
        case Ok(quote):
            assert quote.origin is R.Origin.LIVE
        case Error(e):
            raise AssertionError(e)
    assert sleep.delays == [1.0]
    assert len(source.calls) == 2


def test_expired_ttl_refetches_then_falls_back_to_last_known_good() -> None:
    clock = ManualClock()
    source = ScriptedSource({"eur": 0.92}, R.RateSourceError("down"))
    provider, sleep = _provider(source, clock)

    async def scenario() -> R.Quote:
        await provider.get_rate("USD", "EUR")
        clock.advance(timedelta(hours=1).total_seconds())
        with capture_logs() as logs:
            quote = ok(await provider.get_rate("USD", "EUR"))
        assert any(entry["event"] == "rates.fallback" for entry in logs)
        return quote

    quote = asyncio.run(scenario())
    assert quote.rate == 0.92
    assert quote.origin is R.Origin.FALLBACK
    # one success, then a full retry budget after expiry
    assert len(source.calls) == 1 + 3
    assert sleep.delays == [1.0, 2.0]


def test_fallback_quote_is_not_cached_as_fresh() -> None:
    clock = ManualClock()
    source = ScriptedSource({"eur": 0.92}, R.RateSourceError("down"), R.RateSourceError("down"),
                            R.RateSourceError("down"), {"eur": 0.95})
    provider, _ = _provider(source, clock)

    async def scenario() -> R.Quote:
        await provider.get_rate("USD", "EUR")
        clock.advance(3600)
        await provider.get_rate("USD", "EUR")
        return ok(await provider.get_rate("USD", "EUR"))

    quote = asyncio.run(scenario())
    assert (quote.rate, quote.origin) == (0.95, R.Origin.LIVE)


def test_exhaustion_without_history_is_upstream_unavailable() -> None:
    source = ScriptedSource(R.RateSourceError("down"))
    provider, sleep = _provider(source)

    with capture_logs() as logs:
        result = asyncio.run(provider.get_rate("USD", "GBP"))

    match result:
        case Error(e):
            assert isinstance(e, UpstreamUnavailable)
            assert e.kind is ErrorKind.UPSTREAM_UNAVAILABLE
            assert e.attempts == 3
            assert "USD to GBP" in e.message
        case Ok(q):
            raise AssertionError(q)
    assert [entry["event"] for entry in logs].count("rates.attempt_failed") == 3
    assert any(entry["event"] == "rates.unavailable" and entry["log_level"] == "error" for entry in logs)


@pytest.mark.parametrize("table", [{}, {"eur": "abc"}, {"eur": -1.0}, {"eur": 0}, {"eur": True}])
def test_malformed_tables_count_as_failures(table: dict[str, object]) -> None:
    source = ScriptedSource(table)
    provider, _ = _provider(source, policy=R.RatePolicy().with_retry(R.Retry(times=1)))

    match asyncio.run(provider.get_rate("USD", "EUR")):
        case Error(e):
            assert isinstance(e, UpstreamUnavailable)
        case Ok(q):
            raise AssertionError(q)


class SlowSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, base: str) -> dict[str, float]:
        self.calls += 1
        await asyncio.sleep(1.0)
        return {"eur": 0.9}


def test_attempt_timeout_bounds_each_fetch() -> None:
    source = SlowSource()
    policy = R.RatePolicy().with_retry(R.Retry(times=2)).with_attempt_timeout(seconds=0.01)
    provider = R.RateProvider(source, R.RateBook(), policy, sleep=RecordingSleep(), now=fixed_now)

    match asyncio.run(provider.get_rate("USD", "EUR")):
        case Error(e):
            assert e.attempts == 2
        case Ok(q):
            raise AssertionError(q)
    assert source.calls == 2


class CountingSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, base: str) -> dict[str, float]:
        self.calls += 1
        await asyncio.sleep(0.01)
        return {"eur": 0.9}


def test_concurrent_misses_share_one_fetch() -> None:
    source = CountingSource()
    provider = R.RateProvider(source, R.RateBook(), sleep=RecordingSleep(), now=fixed_now)

    async def scenario() -> list[R.Origin]:
        results = await asyncio.gather(*(provider.get_rate("USD", "EUR") for _ in range(5)))
        return [ok(r).origin for r in results]

    origins = asyncio.run(scenario())
    assert source.calls == 1
    assert origins == [R.Origin.LIVE] * 5


class FailingSource:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch(self, base: str) -> dict[str, float]:
        self.calls += 1
        await asyncio.sleep(0.01)
        raise requests.ConnectionError("upstream down")


def test_concurrent_failures_share_one_retry_budget() -> None:
    source = FailingSource()
    book = R.RateBook()
    provider = R.RateProvider(source, book, sleep=RecordingSleep(), now=fixed_now)

    async def scenario() -> list[object]:
        return await asyncio.gather(*(provider.get_rate("USD", "EUR") for _ in range(5)))

    with capture_logs() as logs:
        results = asyncio.run(scenario())

    assert source.calls == R.RatePolicy().retry.times
    assert all(isinstance(r, Error) for r in results)
    assert [e["event"] for e in logs].count("rates.unavailable") == 1
    assert not book.in_flight(("USD", "EUR"))


def test_concurrent_fallbacks_share_one_retry_budget() -> None:
    source = FailingSource()
    book = R.RateBook()
    lkg = R.Quote("USD", "EUR", 0.8, fixed_now() - timedelta(days=1), R.Origin.LIVE)
    asyncio.run(book.remember(lkg))
    provider = R.RateProvider(source, book, sleep=RecordingSleep(), now=fixed_now)

    async def scenario() -> list[R.Origin]:
        results = await asyncio.gather(*(provider.get_rate("USD", "EUR") for _ in range(5)))
        return [ok(r).origin for r in results]

    assert asyncio.run(scenario()) == [R.Origin.FALLBACK] * 5
    assert source.calls == 3


def test_next_call_after_shared_failure_fetches_again() -> None:
    source = FailingSource()
    policy = R.RatePolicy().with_retry(R.Retry(times=1))
    provider = R.RateProvider(source, R.RateBook(), policy, sleep=RecordingSleep(), now=fixed_now)

    asyncio.run(provider.get_rate("USD", "EUR"))
    asyncio.run(provider.get_rate("USD", "EUR"))
    assert source.calls == 2


def test_book_keeps_newest_quote() -> None:
    book = R.RateBook()
    newer = R.Quote("USD", "EUR", 0.9, fixed_now(), R.Origin.LIVE)
    older = R.Quote("USD", "EUR", 0.8, fixed_now() - timedelta(minutes=5), R.Origin.LIVE)

    async def scenario() -> bool:
        await book.remember(newer)
        return await book.remember(older)

    assert asyncio.run(scenario()) is False
    assert book.last_known_good(("USD", "EUR")) == newer


def test_retry_delay_is_capped() -> None:
    retry = R.Retry(times=10, backoff_initial=1.0, backoff_factor=2.0, backoff_max=30.0)
    assert [retry.delay(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]


def _response(payload: object) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status = MagicMock()
    return response


def test_http_source_reads_base_table() -> None:
    source = R.HttpRateSource("https://rates.test/{base}.json", timeout=2.0)
    response = _response({"date": "2025-01-15", "usd": {"eur": 0.92, "gbp": 0.79}})

    with patch("marketcore.rates._source.requests.get", return_value=response) as mock_get:
        table = asyncio.run(source.fetch("USD"))

    assert table["eur"] == 0.92
    mock_get.assert_called_once()
    assert mock_get.call_args.args[0] == "https://rates.test/usd.json"
    assert mock_get.call_args.kwargs["timeout"] == 2.0


def test_http_source_wraps_transport_errors() -> None:
    source = R.HttpRateSource("https://rates.test/{base}.json")

    with patch("marketcore.rates._source.requests.get", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(R.RateSourceError):
            asyncio.run(source.fetch("USD"))


def test_http_source_rejects_unexpected_payload() -> None:
    source = R.HttpRateSource("https://rates.test/{base}.json")

    with patch("marketcore.rates._source.requests.get", return_value=_response({"date": "x"})):
        with pytest.raises(R.RateSourceError):
            asyncio.run(source.fetch("USD"))


def test_provider_from_policy_uses_policy_source() -> None:
    policy = R.RatePolicy().with_source_url("https://rates.test/{base}.json").with_attempt_timeout(seconds=3)
    provider = R.RateProvider.from_policy(policy, now=fixed_now)
    response = _response({"usd": {"eur": 0.9}})

    with patch("marketcore.rates._source.requests.get", return_value=response) as mock_get:
        quote = ok(asyncio.run(provider.get_rate("USD", "EUR")))
        cached = ok(asyncio.run(provider.get_rate("USD", "EUR")))

    assert (quote.rate, quote.origin) == (0.9, R.Origin.LIVE)
    assert cached.origin is R.Origin.CACHE
    mock_get.assert_called_once()
    assert mock_get.call_args.args[0] == "https://rates.test/usd.json"
    assert mock_get.call_args.kwargs["timeout"] == 3.0


def test_without_single_flight_each_miss_fetches() -> None:
    source = CountingSource()
    policy = R.RatePolicy().with_single_flight(False)
    provider = R.RateProvider(source, R.RateBook(), policy, sleep=RecordingSleep(), now=fixed_now)

    async def scenario() -> None:
        await asyncio.gather(*(provider.get_rate("USD", "EUR") for _ in range(3)))

    asyncio.run(scenario())
    assert source.calls == 3
