"""
Commit types — effects, per-invocation context, results.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from marketcore.cache import Tier
from marketcore.events import Publisher
from marketcore.store import Store

# ═══════════════════════════════════════════════════════════════════════════════
# Post-Commit Effects
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Invalidate:
    """Drop every cache key matching a glob pattern."""

    pattern: str


@dataclass(frozen=True, slots=True)
class Publish:
    """Send ``event`` to ``target`` (a room such as ``user:42``)."""

    target: str
    event: str
    payload: Mapping[str, Any]


type Effect = Invalidate | Publish

# ═══════════════════════════════════════════════════════════════════════════════
# Runtime — Collaborators
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Runtime:
    store: Store
    cache: Tier[Any]
    publisher: Publisher


# ═══════════════════════════════════════════════════════════════════════════════
# Workflow Context — One Per Invocation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class WorkflowContext:
    """
    Scratch state for one workflow run.

    Created by ``run``, handed to ``prepare``, discarded afterwards.
    """

    name: str
    checks: list[str] = field(default_factory=list)
    writes: list[str] = field(default_factory=list)

    def check(self, label: str) -> None:
        """Record a precondition that held."""
        self.checks.append(label)


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Committed[T]:
    """
    Successful workflow result.

    ``effects`` lists every post-commit effect that was attempted;
    ``effects_failed`` counts the ones that raised and were swallowed.
    """

    value: T
    writes: tuple[str, ...]
    effects: tuple[Effect, ...]
    effects_run: int
    effects_failed: int


__all__ = (
    "Invalidate",
    "Publish",
    "Effect",
    "Runtime",
    "WorkflowContext",
    "Committed",
)
