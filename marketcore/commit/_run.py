"""
Workflow execution: precondition → write → post-commit.

No effect leaves the process before the store reports a commit, and a
failed write phase emits nothing.
"""

from __future__ import annotations

from typing import Any

import structlog
from kungfu import Result, Ok, Error

from marketcore._errors import MarketError, CommitFailed, NotFoundError
from marketcore.cache import invalidate_pattern
from marketcore.commit._builder import Workflow
from marketcore.commit._types import (
    Committed,
    Effect,
    Invalidate,
    Publish,
    Runtime,
    WorkflowContext,
)
from marketcore.store import Record, Transaction

log = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Recording Transaction
# ═══════════════════════════════════════════════════════════════════════════════


class _RecordingTransaction:
    """Passes through to the store's transaction, noting each write."""

    def __init__(self, tx: Transaction, ctx: WorkflowContext) -> None:
        self._tx = tx
        self._ctx = ctx

    async def find_one[R: Record](self, entity: type[R], id: str) -> Result[R, NotFoundError]:
        return await self._tx.find_one(entity, id)

    async def find_many[R: Record](self, entity: type[R], **where: Any) -> list[R]:
        return await self._tx.find_many(entity, **where)

    async def insert[R: Record](self, record: R) -> R:
        stored = await self._tx.insert(record)
        self._ctx.writes.append(f"insert {type(record).__name__}:{record.id}")
        return stored

    async def update[R: Record](self, record: R) -> R:
        stored = await self._tx.update(record)
        self._ctx.writes.append(f"update {type(record).__name__}:{record.id}")
        return stored

    async def delete_many(self, entity: type[Record], **where: Any) -> int:
        count = await self._tx.delete_many(entity, **where)
        self._ctx.writes.append(f"delete {entity.__name__}x{count}")
        return count


# ═══════════════════════════════════════════════════════════════════════════════
# run_effects() — Best-Effort Post-Commit
# ═══════════════════════════════════════════════════════════════════════════════


async def run_effects(
    effects: tuple[Effect, ...],
    runtime: Runtime,
    workflow: str,
) -> tuple[int, int]:
    """Run effects in order. Returns (run, failed); never raises."""
    run = 0
    failed = 0

    for effect in effects:
        match effect:
            case Invalidate(pattern):
                match await invalidate_pattern(runtime.cache, pattern):
                    case Ok(_):
                        run += 1
                    case Error(e):
                        failed += 1
                        log.warning(
                            "commit.invalidate_failed",
                            workflow=workflow,
                            pattern=pattern,
                            error=e.message,
                        )
            case Publish(target, event, payload):
                try:
                    await runtime.publisher.publish(target, event, payload)
                    run += 1
                except Exception as exc:
                    failed += 1
                    log.warning(
                        "commit.publish_failed",
                        workflow=workflow,
                        target=target,
                        event_name=event,
                        error=str(exc),
                    )

    return run, failed


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Workflow
# ═══════════════════════════════════════════════════════════════════════════════


async def run[P, T](
    workflow: Workflow[P, T],
    runtime: Runtime,
) -> Result[Committed[T], MarketError]:
    """
    Execute a workflow.

    On success: returns Committed with the written value and effect counts.
    On failure: returns the error; nothing was written and no effect ran.

    Example:
        from marketcore import commit as T

        match await T.run(create_order_wf, runtime):
            case Ok(done):
                print(done.value.order_number)
            case Error(e):
                print(e.kind, e)
    """
    ctx = WorkflowContext(workflow.name)

    # Precondition + compute
    try:
        prepared = await workflow.prepare_fn(ctx)
    except MarketError as e:
        log.info("commit.rejected", workflow=workflow.name, kind=e.kind.value, reason=str(e))
        return Error(e)

    # Atomic write
    async def write(tx: Transaction) -> T:
        return await workflow.execute_fn(_RecordingTransaction(tx, ctx), prepared)

    try:
        value = await runtime.store.run_atomic(write)
    except MarketError as e:
        log.warning("commit.aborted", workflow=workflow.name, kind=e.kind.value, reason=str(e))
        return Error(e)
    except Exception as exc:
        log.error("commit.failed", workflow=workflow.name, error=str(exc), exc_info=True)
        return Error(CommitFailed(workflow.name, str(exc) or type(exc).__name__))

    # Post-commit, best effort
    try:
        effects = tuple(workflow.finalize_fn(value))
    except Exception:
        log.exception("commit.finalize_failed", workflow=workflow.name)
        effects = ()
    effects_run, effects_failed = await run_effects(effects, runtime, workflow.name)

    log.info(
        "commit.done",
        workflow=workflow.name,
        writes=len(ctx.writes),
        effects=len(effects),
        effects_failed=effects_failed,
    )
    return Ok(Committed(
        value=value,
        writes=tuple(ctx.writes),
        effects=effects,
        effects_run=effects_run,
        effects_failed=effects_failed,
    ))


__all__ = ("run", "run_effects")
