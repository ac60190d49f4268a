"""
Workflow builder — three explicit phases.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from marketcore.commit._types import Effect, WorkflowContext
from marketcore.store import Transaction

type PrepareFn[P] = Callable[[WorkflowContext], Awaitable[P]]
type ExecuteFn[P, T] = Callable[[Transaction, P], Awaitable[T]]
type FinalizeFn[T] = Callable[[T], Iterable[Effect]]


def _no_effects(_: object) -> Iterable[Effect]:
    return ()


@dataclass(frozen=True, slots=True)
class Workflow[P, T]:
    """
    Prepare outside the transaction, execute inside it, finalize after it.

    - ``prepare(ctx)`` loads records, checks ownership and state, computes
      totals. Raises a ``MarketError`` to abort before anything is written.
    - ``execute(tx, prepared)`` performs every write through ``tx``.
    - ``finalize(value)`` names the cache invalidations and events to emit
      once the transaction has committed.

    Example:
        wf = (
            T.workflow("quotation.send")
            .prepare(load_draft)
            .execute(mark_sent)
            .finalize(lambda q: [T.Invalidate(f"quotation:{q.id}")])
        )
        result = await T.run(wf, runtime)
    """

    name: str
    prepare_fn: PrepareFn[P]
    execute_fn: ExecuteFn[P, T]
    finalize_fn: FinalizeFn[T] = _no_effects

    def prepare[P2](self, fn: PrepareFn[P2]) -> Workflow[P2, T]:
        return Workflow(self.name, fn, self.execute_fn, self.finalize_fn)  # type: ignore[arg-type]

    def execute[T2](self, fn: ExecuteFn[P, T2]) -> Workflow[P, T2]:
        return Workflow(self.name, self.prepare_fn, fn, _no_effects)

    def finalize(self, fn: FinalizeFn[T]) -> Workflow[P, T]:
        return Workflow(self.name, self.prepare_fn, self.execute_fn, fn)


async def _unprepared(ctx: WorkflowContext) -> None:
    raise NotImplementedError(f"workflow {ctx.name!r} has no prepare phase")


async def _unexecuted(tx: Transaction, prepared: object) -> None:
    raise NotImplementedError("workflow has no execute phase")


def workflow(name: str) -> Workflow[None, None]:
    """Start a workflow definition."""
    return Workflow(name, _unprepared, _unexecuted)


__all__ = ("PrepareFn", "ExecuteFn", "FinalizeFn", "Workflow", "workflow")
