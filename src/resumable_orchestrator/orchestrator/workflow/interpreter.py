"""A narrow in-process interpreter for workflow definitions.

The orchestrator talks to it through three calls:

- `register_handlers(map)`: bind resource identifiers to task handlers
- `register_workflow(run_name, definition)`: make a definition runnable under a name
- `start_execution(input, run_name, options)`: run it on a worker thread

Registration is cumulative and lock-protected so that concurrent runs can share
one interpreter; runs are told apart only by their run names.

Task handlers advance the run by calling `context.send_task_success(value)` or
`context.send_task_failure(error)`. A handler that returns without calling
either halts the execution at its state. Suspension relies on exactly that.
"""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from resumable_orchestrator.orchestrator.errors import (
    InterpreterStartError,
    UnknownResourceError,
)

from .definition import SUPPORTED_STATE_TYPES, StateDefinition, WorkflowDefinition
from .paths import merge, select

logger = logging.getLogger(__name__)

RESOURCE_PREFIX = "module:"


def resource_name(resource: str) -> str:
    """Strip the `module:` prefix from a resource identifier."""

    if resource.startswith(RESOURCE_PREFIX):
        return resource[len(RESOURCE_PREFIX) :]
    return resource


class TaskHandler(Protocol):
    """The executable bound to a state's resource identifier."""

    def run(self, event: Any, context: TaskContext) -> None: ...


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    HALTED = "halted"


class StateFailure(Exception):
    """Raised by a `Fail` state."""

    def __init__(self, error: str | None, cause: str | None) -> None:
        super().__init__(f"{error or 'States.Failed'}: {cause or ''}".rstrip(": "))
        self.error = error
        self.cause = cause


@dataclass(frozen=True, slots=True)
class ExecutionOptions:
    """Per-execution options.

    `scope` is passed through untouched to every task context; the interpreter
    never looks inside it. `on_finish` is called exactly once, whatever the
    outcome, after the execution stops.
    """

    scope: Any = None
    on_finish: Callable[[Execution], None] | None = None


@dataclass
class Execution:
    execution_name: str
    run_name: str
    input: Any
    status: ExecutionStatus = ExecutionStatus.RUNNING
    current_state: str | None = None
    output: Any = None
    error: BaseException | None = None
    _finished: threading.Event = field(default_factory=threading.Event, repr=False)

    def join(self, timeout: float | None = None) -> bool:
        return self._finished.wait(timeout)


@dataclass(frozen=True, slots=True)
class _Outcome:
    ok: bool
    value: Any = None
    error: BaseException | None = None


class TaskContext:
    """What a task handler sees of the run it is executing in."""

    def __init__(
        self,
        *,
        execution: Execution,
        definition: WorkflowDefinition,
        state_name: str,
        scope: Any,
    ) -> None:
        self.execution = execution
        self.definition = definition
        self.state_name = state_name
        self.scope = scope
        self._outcome: _Outcome | None = None
        self._lock = threading.Lock()

    @property
    def run_name(self) -> str:
        return self.execution.run_name

    @property
    def state(self) -> StateDefinition:
        return self.definition.state(self.state_name)

    def send_task_success(self, value: Any) -> None:
        self._set(_Outcome(ok=True, value=value))

    def send_task_failure(self, error: BaseException) -> None:
        self._set(_Outcome(ok=False, error=error))

    def _set(self, outcome: _Outcome) -> None:
        with self._lock:
            if self._outcome is not None:
                raise RuntimeError(
                    f"Task {self.state_name!r} of run {self.run_name} already reported an outcome"
                )
            self._outcome = outcome

    @property
    def outcome(self) -> _Outcome | None:
        return self._outcome


class Interpreter:
    """Process-scoped interpreter runtime shared by all invocations."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[str, TaskHandler] = {}
        self._workflows: dict[str, WorkflowDefinition] = {}

    def register_handlers(self, handlers: Mapping[str, TaskHandler]) -> None:
        with self._lock:
            self._handlers.update(handlers)

    def resolve(self, resource: str) -> TaskHandler:
        name = resource_name(resource)
        with self._lock:
            handler = self._handlers.get(name)
        if handler is None:
            raise UnknownResourceError(resource)
        return handler

    def register_workflow(self, run_name: str, definition: WorkflowDefinition) -> None:
        for name, state in definition.states.items():
            if state.type not in SUPPORTED_STATE_TYPES:
                raise InterpreterStartError(f"State {name!r} has unsupported Type {state.type!r}")
        for resource in sorted(definition.resources()):
            self.resolve(resource)

        with self._lock:
            if run_name in self._workflows:
                raise InterpreterStartError(f"Workflow {run_name} is already registered")
            self._workflows[run_name] = definition
        logger.debug("Registered workflow", extra={"run_name": run_name})

    def unregister_workflow(self, run_name: str) -> None:
        with self._lock:
            self._workflows.pop(run_name, None)

    def is_registered(self, run_name: str) -> bool:
        with self._lock:
            return run_name in self._workflows

    def start_execution(
        self,
        input: Any,
        run_name: str,
        options: ExecutionOptions | None = None,
    ) -> Execution:
        with self._lock:
            definition = self._workflows.get(run_name)
        if definition is None:
            raise InterpreterStartError(f"Workflow {run_name} is not registered")

        opts = options or ExecutionOptions()
        execution = Execution(
            execution_name=uuid.uuid4().hex,
            run_name=run_name,
            input=input,
        )
        thread = threading.Thread(
            target=self._run,
            name=f"execution-{run_name}",
            daemon=True,
            kwargs={"execution": execution, "definition": definition, "options": opts},
        )
        try:
            thread.start()
        except RuntimeError as e:
            raise InterpreterStartError(f"Could not start execution of {run_name}: {e}") from e
        return execution

    def _run(
        self,
        *,
        execution: Execution,
        definition: WorkflowDefinition,
        options: ExecutionOptions,
    ) -> None:
        document = execution.input
        state_name = definition.start_at
        try:
            while True:
                execution.current_state = state_name
                state = definition.state(state_name)
                logger.debug(
                    "Entering state",
                    extra={"run_name": execution.run_name, "state": state_name},
                )

                if state.type == "Succeed":
                    execution.status = ExecutionStatus.SUCCEEDED
                    break
                if state.type == "Fail":
                    raise StateFailure(state.error, state.cause)

                effective = select(document, state.input_path)
                if state.type == "Pass":
                    result = state.result if "result" in state.model_fields_set else effective
                else:
                    context = TaskContext(
                        execution=execution,
                        definition=definition,
                        state_name=state_name,
                        scope=options.scope,
                    )
                    handler = self.resolve(state.resource or "")
                    handler.run(copy.deepcopy(effective), context)
                    outcome = context.outcome
                    if outcome is None:
                        execution.status = ExecutionStatus.HALTED
                        break
                    if not outcome.ok:
                        raise outcome.error or RuntimeError("Task failed")
                    result = outcome.value

                document = merge(document, state.result_path, result)
                if state.end:
                    execution.status = ExecutionStatus.SUCCEEDED
                    break
                state_name = state.next or ""
        except Exception as e:
            execution.status = ExecutionStatus.FAILED
            execution.error = e
            logger.warning(
                "Execution failed",
                extra={
                    "run_name": execution.run_name,
                    "state": execution.current_state,
                    "error": str(e),
                },
            )
        finally:
            execution.output = document
            if options.on_finish is not None:
                try:
                    options.on_finish(execution)
                except Exception:
                    logger.exception(
                        "on_finish callback failed", extra={"run_name": execution.run_name}
                    )
            execution._finished.set()
