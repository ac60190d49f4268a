"""
Tests for the commit orchestrator: phase ordering, atomicity, best-effort effects.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from kungfu import Error, Ok
from structlog.testing import capture_logs

from marketcore import commit as T
from marketcore import events as E
from marketcore import cache as C
from marketcore import store as St
from marketcore._errors import CommitFailed, ErrorKind, NotFoundError, ValidationError

from conftest import ok


@dataclass(frozen=True, slots=True)
class Note:
    id: str
    body: str
    version: int = 0


def _runtime() -> tuple[T.Runtime, St.MemoryStore, C.LocalTier[Any], E.MemoryPublisher]:
    store = St.MemoryStore()
    tier: C.LocalTier[Any] = C.LocalTier()
    publisher = E.MemoryPublisher()
    return T.Runtime(store, tier, publisher), store, tier, publisher


def _effects(note: Note) -> list[T.Effect]:
    return [
        T.Invalidate("notes:*"),
        T.Publish("user:1", "note:created", {"id": note.id}),
    ]


async def _nothing(ctx: T.WorkflowContext) -> None:
    ctx.check("always")


def test_commit_runs_effects_after_writes() -> None:
    runtime, store, tier, publisher = _runtime()

    async def write(tx: St.Transaction, _: None) -> Note:
        await tx.insert(Note("n1", "hello"))
        return await tx.insert(Note("n2", "world"))

    wf = T.workflow("notes.create").prepare(_nothing).execute(write).finalize(_effects)

    async def scenario() -> T.Committed[Note]:
        await tier.set("notes:all", ["stale"])
        return ok(await T.run(wf, runtime))

    done = asyncio.run(scenario())
    assert done.value == Note("n2", "world")
    assert done.writes == ("insert Note:n1", "insert Note:n2")
    assert (done.effects_run, done.effects_failed) == (2, 0)
    assert publisher.events("user:1") == ["note:created"]
    assert tier.stats().size == 0


def test_failed_last_write_leaves_no_trace() -> None:
    runtime, store, tier, publisher = _runtime()

    async def write(tx: St.Transaction, _: None) -> Note:
        await tx.insert(Note("n1", "first"))
        await tx.insert(Note("n2", "second"))
        raise OSError("disk full")

    wf = T.workflow("notes.create").prepare(_nothing).execute(write).finalize(_effects)

    async def scenario() -> None:
        await tier.set("notes:all", ["cached"])
        with capture_logs() as logs:
            result = await T.run(wf, runtime)
        match result:
            case Error(e):
                assert isinstance(e, CommitFailed)
                assert e.kind is ErrorKind.COMMIT_FAILED
                assert "disk full" in e.message
            case Ok(done):
                raise AssertionError(done)
        assert any(entry["event"] == "commit.failed" for entry in logs)
        assert await store.find_many(Note) == []
        assert await tier.get("notes:all") == ["cached"]

    asyncio.run(scenario())
    assert publisher.sent == []


def test_market_errors_from_writes_pass_through() -> None:
    runtime, _, _, publisher = _runtime()

    async def write(tx: St.Transaction, _: None) -> Note:
        await tx.insert(Note("n1", "first"))
        raise ValidationError("over the limit", "body")

    wf = T.workflow("notes.create").prepare(_nothing).execute(write).finalize(_effects)

    match asyncio.run(T.run(wf, runtime)):
        case Error(e):
            assert isinstance(e, ValidationError)
        case Ok(done):
            raise AssertionError(done)
    assert publisher.sent == []


def test_rejected_precondition_writes_nothing() -> None:
    runtime, store, _, publisher = _runtime()
    calls: list[str] = []

    async def prepare(ctx: T.WorkflowContext) -> None:
        raise NotFoundError("Note", "n9")

    async def write(tx: St.Transaction, _: None) -> None:
        calls.append("execute")

    wf = T.workflow("notes.edit").prepare(prepare).execute(write)

    match asyncio.run(T.run(wf, runtime)):
        case Error(e):
            assert e.kind is ErrorKind.NOT_FOUND
        case Ok(done):
            raise AssertionError(done)
    assert calls == []
    assert publisher.sent == []


def test_stale_update_is_commit_failed() -> None:
    runtime, store, _, _ = _runtime()

    async def prepare(ctx: T.WorkflowContext) -> Note:
        return ok(await store.find_one(Note, "n1"))

    async def write(tx: St.Transaction, note: Note) -> Note:
        return await tx.update(Note(note.id, "edited", note.version))

    wf = T.workflow("notes.edit").prepare(prepare).execute(write)

    async def scenario() -> None:
        await store.seed(Note("n1", "v0"))
        first = ok(await T.run(wf, runtime))
        assert first.value.version == 1

        async def racing(ctx: T.WorkflowContext) -> Note:
            return Note("n1", "v0", 0)

        match await T.run(wf.prepare(racing), runtime):
            case Error(e):
                assert e.kind is ErrorKind.COMMIT_FAILED
            case Ok(done):
                raise AssertionError(done)

    asyncio.run(scenario())


def test_effect_failures_do_not_fail_the_commit() -> None:
    runtime, store, _, publisher = _runtime()
    publisher.fail_with = ConnectionError("socket closed")

    async def write(tx: St.Transaction, _: None) -> Note:
        return await tx.insert(Note("n1", "hello"))

    wf = T.workflow("notes.create").prepare(_nothing).execute(write).finalize(_effects)

    with capture_logs() as logs:
        done = ok(asyncio.run(T.run(wf, runtime)))

    assert (done.effects_run, done.effects_failed) == (1, 1)
    assert any(entry["event"] == "commit.publish_failed" for entry in logs)
    assert ok(asyncio.run(store.find_one(Note, "n1"))).body == "hello"


def test_finalize_errors_are_swallowed() -> None:
    runtime, _, _, _ = _runtime()

    async def write(tx: St.Transaction, _: None) -> Note:
        return await tx.insert(Note("n1", "hello"))

    def broken(note: Note) -> list[T.Effect]:
        raise KeyError("payload")

    wf = T.workflow("notes.create").prepare(_nothing).execute(write).finalize(broken)

    done = ok(asyncio.run(T.run(wf, runtime)))
    assert done.effects == ()
