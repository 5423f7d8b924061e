"""Test configuration and fixtures."""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock

import pytest

from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import (
    MemoryContinuationStore,
    MemoryKeyspace,
    StoreEndpoint,
)
from resumable_orchestrator.orchestrator.runner import ExecutionOrchestrator
from resumable_orchestrator.orchestrator.whisk.client import (
    ActionDeclaration,
    WhiskClient,
    WhiskError,
)
from resumable_orchestrator.orchestrator.workflow.definition import parse_named_definition
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter

STRAIGHT_THROUGH_WORKFLOW: dict[str, Any] = {
    "incsquare-nosuspend": {
        "StartAt": "A",
        "States": {
            "A": {
                "Type": "Task",
                "InputPath": "$.values",
                "ResultPath": "$.values.value",
                "Resource": "module:increment",
                "Next": "B",
            },
            "B": {
                "Type": "Task",
                "InputPath": "$.values",
                "ResultPath": "$.values.value",
                "Resource": "module:square",
                "Next": "C",
            },
            "C": {
                "Type": "Task",
                "InputPath": "$.values",
                "ResultPath": "$.values.value",
                "Resource": "module:increment",
                "Next": "SendResponse",
            },
            "SendResponse": {
                "Type": "Task",
                "Resource": "module:sendResponse",
                "End": True,
            },
        },
    }
}


def fake_invoke(name: str, params: dict[str, Any]) -> dict[str, Any]:
    """Stand-in for the deployed demo actions."""

    if name == "increment":
        return {"value": params.get("value", 0) + params.get("increment", 1)}
    if name == "square":
        value = params.get("value", 0)
        return {"value": value * value}
    raise WhiskError(f"The requested resource does not exist: {name}", status_code=404)


class RecordingStoreFactory:
    """Opens in-memory store connections and remembers each one."""

    def __init__(self, keyspace: MemoryKeyspace) -> None:
        self.keyspace = keyspace
        self.opened: list[tuple[StoreEndpoint, MemoryContinuationStore]] = []

    def __call__(self, endpoint: StoreEndpoint) -> MemoryContinuationStore:
        store = MemoryContinuationStore(self.keyspace)
        self.opened.append((endpoint, store))
        return store


@pytest.fixture
def straight_through_workflow() -> dict[str, Any]:
    return STRAIGHT_THROUGH_WORKFLOW


@pytest.fixture
def straight_through_definition():
    return parse_named_definition(STRAIGHT_THROUGH_WORKFLOW)[1]


@pytest.fixture
def settings() -> OrchestratorSettings:
    """Provide test settings that do not depend on the local `.env`."""
    return OrchestratorSettings(
        _env_file=None,
        store_backend="memory",
        store_host="store.test",
        store_port=6380,
        continuation_ttl_seconds=300,
        expected_method="post",
    )


@pytest.fixture
def whisk() -> Mock:
    """Provide a task platform client with `increment` and `square` deployed."""
    client = Mock(spec=WhiskClient)
    client.list_actions.return_value = [
        ActionDeclaration(name="increment", namespace="guest"),
        ActionDeclaration(name="square", namespace="guest"),
    ]
    client.invoke.side_effect = fake_invoke
    return client


@pytest.fixture
def keyspace() -> MemoryKeyspace:
    return MemoryKeyspace()


@pytest.fixture
def store_factory(keyspace: MemoryKeyspace) -> RecordingStoreFactory:
    return RecordingStoreFactory(keyspace)


@pytest.fixture
def interpreter() -> Interpreter:
    return Interpreter()


@pytest.fixture
def orchestrator(
    settings: OrchestratorSettings,
    interpreter: Interpreter,
    whisk: Mock,
    store_factory: RecordingStoreFactory,
) -> ExecutionOrchestrator:
    return ExecutionOrchestrator(
        settings=settings,
        interpreter=interpreter,
        whisk=whisk,
        store_factory=store_factory,
    )
