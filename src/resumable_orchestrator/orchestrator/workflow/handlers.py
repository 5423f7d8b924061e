"""Task handlers bound to resource identifiers.

Three variants exist:

- `Suspend`: checkpoint the run and stop it; the caller gets a continuation token
- `Respond`: finish the run and hand the payload to the caller
- `RemoteAction`: call a deployed action on the task platform

`Suspend` and `Respond` end the run by resolving the caller's completion signal
directly and never report task success, so the interpreter does not advance
past them. `RemoteAction` reports through the interpreter, success or failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from resumable_orchestrator.orchestrator.continuation.store import (
    ContinuationStore,
    SuspendSnapshot,
)
from resumable_orchestrator.orchestrator.errors import RemoteActionError
from resumable_orchestrator.orchestrator.whisk.client import WhiskClient, WhiskError

from .completion import CompletionSignal
from .interpreter import TaskContext

logger = logging.getLogger(__name__)

CONTINUATION_KEY = "CONTINUATION"
ELAPSED_KEY = "elapsedMsec"

# Remote actions answer `{"value": ...}`; that field is the task result.
RESULT_FIELD = "value"

RunStatus = Literal["completed", "suspended"]


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Terminal outcome of one run, delivered through its completion signal."""

    status: RunStatus
    payload: dict[str, Any]
    continuation: str | None = None


@dataclass(frozen=True, slots=True)
class RunScope:
    """Per-invocation resources a handler may use, passed via the task context."""

    completion: CompletionSignal[RunOutcome]
    store: ContinuationStore
    ttl_seconds: int
    started_at: float = field(default_factory=time.monotonic)


def _scope(context: TaskContext) -> RunScope:
    scope = context.scope
    if not isinstance(scope, RunScope):
        raise RuntimeError(f"Run {context.run_name} was started without a run scope")
    return scope


def build_suspend_snapshot(event: dict[str, Any], context: TaskContext) -> SuspendSnapshot:
    """Snapshot the run so that it restarts at the state after the current one."""

    restart_at = context.state.next
    if restart_at is None:
        raise ValueError(f"State {context.state_name!r} cannot suspend: it declares no Next")
    return SuspendSnapshot(
        data=event,
        restart_at=restart_at,
        state_machine={context.run_name: context.definition.with_start_at(restart_at)},
    )


@dataclass(frozen=True, slots=True)
class Suspend:
    def run(self, event: Any, context: TaskContext) -> None:
        scope = _scope(context)
        if not isinstance(event, dict):
            raise ValueError("Suspend requires an object payload")

        snapshot = build_suspend_snapshot(event, context)
        token = scope.store.put(snapshot, scope.ttl_seconds)

        suspended = dict(event)
        suspended[CONTINUATION_KEY] = token
        logger.info(
            "Suspending run",
            extra={
                "run_name": context.run_name,
                "state": context.state_name,
                "restart_at": snapshot.restart_at,
                "continuation": token,
            },
        )
        # Deliberately no context.send_task_success(): the run stops here.
        scope.completion.resolve(
            RunOutcome(status="suspended", payload=suspended, continuation=token)
        )


@dataclass(frozen=True, slots=True)
class Respond:
    def run(self, event: Any, context: TaskContext) -> None:
        scope = _scope(context)
        payload = dict(event) if isinstance(event, dict) else {"value": event}
        payload[ELAPSED_KEY] = int((time.monotonic() - scope.started_at) * 1000)
        logger.info("Sending response", extra={"run_name": context.run_name})
        scope.completion.resolve(RunOutcome(status="completed", payload=payload))


@dataclass(frozen=True, slots=True)
class RemoteAction:
    name: str
    client: WhiskClient = field(repr=False, compare=False)

    def run(self, event: Any, context: TaskContext) -> None:
        params = event if isinstance(event, dict) else {RESULT_FIELD: event}
        try:
            output = self.client.invoke(self.name, params)
        except WhiskError as e:
            logger.warning(
                "Remote action failed",
                extra={"run_name": context.run_name, "action": self.name, "error": str(e)},
            )
            context.send_task_failure(RemoteActionError(self.name, str(e)))
            return

        logger.info(
            "Remote action returned",
            extra={"run_name": context.run_name, "action": self.name, "output": output},
        )
        context.send_task_success(output.get(RESULT_FIELD, output))


HandlerVariant = Suspend | Respond | RemoteAction
