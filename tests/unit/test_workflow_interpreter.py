"""Unit tests for the in-process interpreter."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

import pytest

from resumable_orchestrator.orchestrator.errors import (
    InterpreterStartError,
    UnknownResourceError,
)
from resumable_orchestrator.orchestrator.workflow.definition import WorkflowDefinition
from resumable_orchestrator.orchestrator.workflow.interpreter import (
    Execution,
    ExecutionOptions,
    ExecutionStatus,
    Interpreter,
    TaskContext,
)


@dataclass
class AddOne:
    seen: list[Any] = field(default_factory=list)

    def run(self, event: Any, context: TaskContext) -> None:
        self.seen.append(event)
        context.send_task_success(event["value"] + 1)


class Halt:
    def run(self, event: Any, context: TaskContext) -> None:
        return None


class Explode:
    def run(self, event: Any, context: TaskContext) -> None:
        raise RuntimeError("kaboom")


def _definition(states: dict[str, Any], start_at: str = "A") -> WorkflowDefinition:
    return WorkflowDefinition.model_validate({"StartAt": start_at, "States": states})


def _run(interpreter: Interpreter, definition: WorkflowDefinition, event: Any) -> Execution:
    finished: list[Execution] = []
    interpreter.register_workflow("M-run", definition)
    execution = interpreter.start_execution(
        event, "M-run", ExecutionOptions(on_finish=finished.append)
    )
    assert execution.join(timeout=5)
    assert finished == [execution]
    return execution


def test_task_states_thread_data_paths() -> None:
    interpreter = Interpreter()
    add_one = AddOne()
    interpreter.register_handlers({"addOne": add_one})
    definition = _definition(
        {
            "A": {
                "Type": "Task",
                "Resource": "module:addOne",
                "InputPath": "$.values",
                "ResultPath": "$.values.value",
                "Next": "B",
            },
            "B": {
                "Type": "Task",
                "Resource": "addOne",
                "InputPath": "$.values",
                "ResultPath": "$.values.value",
                "End": True,
            },
        }
    )

    execution = _run(interpreter, definition, {"values": {"value": 1}, "constants": {}})

    assert execution.status is ExecutionStatus.SUCCEEDED
    assert execution.output == {"values": {"value": 3}, "constants": {}}
    assert add_one.seen == [{"value": 1}, {"value": 2}]


def test_handler_without_outcome_halts_execution() -> None:
    interpreter = Interpreter()
    add_one = AddOne()
    interpreter.register_handlers({"halt": Halt(), "addOne": add_one})
    definition = _definition(
        {
            "A": {"Type": "Task", "Resource": "module:halt", "Next": "B"},
            "B": {"Type": "Task", "Resource": "module:addOne", "End": True},
        }
    )

    execution = _run(interpreter, definition, {"value": 1})

    assert execution.status is ExecutionStatus.HALTED
    assert execution.current_state == "A"
    assert add_one.seen == []


def test_handler_exception_fails_execution() -> None:
    interpreter = Interpreter()
    interpreter.register_handlers({"explode": Explode()})
    definition = _definition({"A": {"Type": "Task", "Resource": "explode", "End": True}})

    execution = _run(interpreter, definition, {})

    assert execution.status is ExecutionStatus.FAILED
    assert isinstance(execution.error, RuntimeError)


def test_pass_succeed_and_fail_states() -> None:
    interpreter = Interpreter()
    definition = _definition(
        {
            "A": {"Type": "Pass", "Result": {"ok": True}, "ResultPath": "$.flag", "Next": "B"},
            "B": {"Type": "Succeed"},
        }
    )
    execution = _run(interpreter, definition, {"x": 1})
    assert execution.status is ExecutionStatus.SUCCEEDED
    assert execution.output == {"x": 1, "flag": {"ok": True}}

    failing = Interpreter()
    execution = _run(
        failing,
        _definition({"A": {"Type": "Fail", "Error": "Bad", "Cause": "because"}}),
        {},
    )
    assert execution.status is ExecutionStatus.FAILED
    assert "Bad" in str(execution.error)


def test_register_workflow_rejects_unknown_resources_and_types() -> None:
    interpreter = Interpreter()

    with pytest.raises(UnknownResourceError):
        interpreter.register_workflow(
            "M-1", _definition({"A": {"Type": "Task", "Resource": "module:nope", "End": True}})
        )
    with pytest.raises(InterpreterStartError, match="unsupported Type"):
        interpreter.register_workflow("M-2", _definition({"A": {"Type": "Map", "End": True}}))
    assert not interpreter.is_registered("M-1")


def test_register_workflow_rejects_duplicate_run_names() -> None:
    interpreter = Interpreter()
    definition = _definition({"A": {"Type": "Succeed"}})
    interpreter.register_workflow("M-1", definition)

    with pytest.raises(InterpreterStartError, match="already registered"):
        interpreter.register_workflow("M-1", definition)

    interpreter.unregister_workflow("M-1")
    assert not interpreter.is_registered("M-1")


def test_start_execution_requires_registration() -> None:
    with pytest.raises(InterpreterStartError, match="not registered"):
        Interpreter().start_execution({}, "M-missing")


def test_concurrent_executions_do_not_share_documents() -> None:
    interpreter = Interpreter()
    interpreter.register_handlers({"addOne": AddOne()})
    definition = _definition(
        {"A": {"Type": "Task", "Resource": "addOne", "ResultPath": "$.value", "End": True}}
    )

    results: dict[str, Any] = {}
    lock = threading.Lock()

    def record(execution: Execution) -> None:
        with lock:
            results[execution.run_name] = execution.output

    executions = []
    for i in range(20):
        name = f"M-{i}"
        interpreter.register_workflow(name, definition)
        executions.append(
            interpreter.start_execution({"value": i}, name, ExecutionOptions(on_finish=record))
        )
    for execution in executions:
        assert execution.join(timeout=5)

    assert results == {f"M-{i}": {"value": i + 1} for i in range(20)}
