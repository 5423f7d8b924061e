"""Unit tests for resource discovery."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from resumable_orchestrator.orchestrator.errors import (
    RegistryDiscoveryError,
    UnknownResourceError,
)
from resumable_orchestrator.orchestrator.registry import ResourceRegistry, discover
from resumable_orchestrator.orchestrator.whisk.client import ActionDeclaration, WhiskError
from resumable_orchestrator.orchestrator.workflow.handlers import RemoteAction, Respond, Suspend
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter


def test_discover_registers_builtins_and_every_deployed_action(whisk: Mock) -> None:
    registry = discover(whisk)

    assert isinstance(registry["suspend"], Suspend)
    assert isinstance(registry["sendResponse"], Respond)
    assert isinstance(registry["respond"], Respond)

    increment = registry["increment"]
    assert isinstance(increment, RemoteAction)
    assert increment.name == "increment"
    assert registry.remote_actions() == ["increment", "square"]


def test_registered_resources_resolve_with_or_without_prefix(whisk: Mock) -> None:
    interpreter = Interpreter()
    interpreter.register_handlers(discover(whisk))

    assert isinstance(interpreter.resolve("module:suspend"), Suspend)
    assert interpreter.resolve("module:square") is interpreter.resolve("square")


def test_unknown_resource_is_a_lookup_failure(whisk: Mock) -> None:
    interpreter = Interpreter()
    interpreter.register_handlers(discover(whisk))

    with pytest.raises(UnknownResourceError) as excinfo:
        interpreter.resolve("module:cube")
    assert excinfo.value.resource == "module:cube"
    assert isinstance(excinfo.value, KeyError)


def test_deployed_action_cannot_shadow_builtin(whisk: Mock) -> None:
    whisk.list_actions.return_value = [ActionDeclaration(name="suspend", namespace="guest")]

    registry = discover(whisk)

    assert isinstance(registry["suspend"], Suspend)


def test_discovery_failure_is_propagated(whisk: Mock) -> None:
    whisk.list_actions.side_effect = WhiskError("connection refused")

    with pytest.raises(RegistryDiscoveryError, match="connection refused"):
        discover(whisk)


def test_registry_is_read_only() -> None:
    registry = ResourceRegistry({"suspend": Suspend()})

    with pytest.raises(TypeError):
        registry["suspend"] = Respond()  # type: ignore[index]
    assert len(registry) == 1
    assert list(registry) == ["suspend"]
