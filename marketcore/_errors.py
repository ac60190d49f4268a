"""
Error taxonomy.

Every surfaced error carries a machine-readable ``kind`` and a human-readable
message. Pure money code raises these; async workflows return them inside
``Error(...)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    COMMIT_FAILED = "COMMIT_FAILED"
    RATE_LIMITED = "RATE_LIMITED"


class MarketError(Exception):
    """Base for all expected failures."""

    kind: ErrorKind

    @property
    def message(self) -> str:
        return str(self)


# ═══════════════════════════════════════════════════════════════════════════════
# Caller Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(eq=False)
class ValidationError(MarketError):
    """Malformed or out-of-range input. Never retried."""

    reason: str
    field: str | None = None

    kind = ErrorKind.VALIDATION

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.reason}"
        return self.reason


@dataclass(eq=False)
class NotFoundError(MarketError):
    """
    Entity does not exist, or the caller may not see it.

    Note: ownership mismatches are reported with this error too, so callers
    cannot discover records owned by someone else.
    """

    entity: str
    id: str

    kind = ErrorKind.NOT_FOUND

    def __str__(self) -> str:
        return f"{self.entity}:{self.id} not found"


@dataclass(eq=False)
class ForbiddenError(MarketError):
    reason: str

    kind = ErrorKind.FORBIDDEN

    def __str__(self) -> str:
        return self.reason


# ═══════════════════════════════════════════════════════════════════════════════
# Infrastructure Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(eq=False)
class UpstreamUnavailable(MarketError):
    """Exchange-rate source exhausted and no last-known-good rate exists."""

    from_currency: str
    to_currency: str
    attempts: int
    cause: str | None = None

    kind = ErrorKind.UPSTREAM_UNAVAILABLE

    def __str__(self) -> str:
        return (
            f"Failed to fetch exchange rate from {self.from_currency} "
            f"to {self.to_currency} after {self.attempts} attempts"
        )


@dataclass(eq=False)
class CommitFailed(MarketError):
    """Atomic write phase failed and was rolled back."""

    workflow: str
    cause: str

    kind = ErrorKind.COMMIT_FAILED

    def __str__(self) -> str:
        return f"{self.workflow}: commit failed: {self.cause}"


class StaleRecord(CommitFailed):
    """Optimistic version check failed during an update."""

    def __init__(self, entity: str, id: str, expected_version: int) -> None:
        super().__init__(
            workflow=entity,
            cause=f"{entity}:{id} changed since version {expected_version}",
        )
        self.entity = entity
        self.id = id
        self.expected_version = expected_version


@dataclass(eq=False)
class RateLimited(MarketError):
    key: str
    retry_after: float

    kind = ErrorKind.RATE_LIMITED

    def __str__(self) -> str:
        return f"Too many requests for {self.key}, retry in {self.retry_after:.0f}s"


__all__ = (
    "ErrorKind",
    "MarketError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "UpstreamUnavailable",
    "CommitFailed",
    "StaleRecord",
    "RateLimited",
)
