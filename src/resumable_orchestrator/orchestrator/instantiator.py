"""Bind a workflow to a uniquely named run instance.

Every run, fresh or resumed, gets a new `M-<uuid4>` name. A resumed run never
reuses the name of the run that suspended, so the interpreter cannot confuse
the two.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from resumable_orchestrator.orchestrator.continuation.store import SuspendSnapshot
from resumable_orchestrator.orchestrator.errors import ValidationError
from resumable_orchestrator.orchestrator.workflow.definition import WorkflowDefinition

RUN_NAME_PREFIX = "M-"


def new_run_name() -> str:
    return f"{RUN_NAME_PREFIX}{uuid.uuid4()}"


@dataclass(frozen=True, slots=True)
class RunInstance:
    run_name: str
    definition: WorkflowDefinition
    # Name the workflow was created under (template name, or the suspended run's name).
    source_name: str
    values: dict[str, Any] = field(default_factory=dict)


def fresh(
    template: WorkflowDefinition,
    initial_values: dict[str, Any],
    *,
    source_name: str = "workflow",
) -> RunInstance:
    return RunInstance(
        run_name=new_run_name(),
        definition=template,
        source_name=source_name,
        values=dict(initial_values),
    )


def resumed(snapshot: SuspendSnapshot) -> tuple[RunInstance, dict[str, Any]]:
    """Instance and event values for restarting a suspended run.

    The stored definition already starts at the restart state; it is used as is.
    """

    raw = snapshot.data.get("values")
    if not isinstance(raw, dict):
        # A Suspend state with a narrowed InputPath stores only part of the payload.
        raise ValidationError(
            f"Continuation for {snapshot.workflow_name} holds no run values to resume from"
        )
    values = dict(raw)
    instance = RunInstance(
        run_name=new_run_name(),
        definition=snapshot.definition,
        source_name=snapshot.workflow_name,
        values=values,
    )
    return instance, values
