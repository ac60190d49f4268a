"""
Tests for the structlog setup.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from marketcore import logging as mlog


@pytest.fixture(autouse=True)
def _restore_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


def test_json_renderer(capsys: pytest.CaptureFixture[str]) -> None:
    mlog.configure(logging.INFO, json=True)
    structlog.get_logger("marketcore.test").info("rates.fallback", pair="USD_EUR")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    entry = json.loads(line)
    assert entry["event"] == "rates.fallback"
    assert entry["pair"] == "USD_EUR"
    assert entry["level"] == "info"
    assert "timestamp" in entry


def test_level_filters_lower_events(capsys: pytest.CaptureFixture[str]) -> None:
    mlog.configure(logging.WARNING, json=True)
    log = structlog.get_logger("marketcore.test")
    log.info("ratelimit.blocked", key="u1:checkout")
    log.warning("commit.publish_failed", workflow="order.create")

    lines = capsys.readouterr().out.strip().splitlines()
    assert [json.loads(line)["event"] for line in lines] == ["commit.publish_failed"]
