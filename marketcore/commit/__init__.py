"""
Commit — transactional workflows with post-commit effects.

    from marketcore import commit as T

    wf = T.workflow("order.create").prepare(check).execute(write).finalize(effects)
    result = await T.run(wf, runtime)
"""

from __future__ import annotations

from marketcore.commit._types import (
    Invalidate,
    Publish,
    Effect,
    Runtime,
    WorkflowContext,
    Committed,
)
from marketcore.commit._builder import Workflow, workflow
from marketcore.commit._run import run, run_effects

__all__ = (
    "Invalidate",
    "Publish",
    "Effect",
    "Runtime",
    "WorkflowContext",
    "Committed",
    "Workflow",
    "workflow",
    "run",
    "run_effects",
)
