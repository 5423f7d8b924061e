"""Unit tests for workflow definitions and data paths."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from resumable_orchestrator.orchestrator.workflow.definition import (
    WorkflowDefinition,
    default_workflow,
    parse_named_definition,
)
from resumable_orchestrator.orchestrator.workflow.paths import PathError, merge, select


def test_default_workflow_shape() -> None:
    name, definition = default_workflow()

    assert name == "incsquare"
    assert definition.start_at == "A"
    assert definition.state("B").next == "Suspend"
    assert definition.state("Suspend").next == "C"
    assert definition.state("SendResponse").end is True
    assert definition.resources() == {
        "module:increment",
        "module:square",
        "module:suspend",
        "module:sendResponse",
    }


def test_with_start_at_returns_rewritten_copy() -> None:
    _, definition = default_workflow()
    rewritten = definition.with_start_at("C")

    assert rewritten.start_at == "C"
    assert definition.start_at == "A"
    assert rewritten.states == definition.states


def test_with_start_at_rejects_unknown_state() -> None:
    _, definition = default_workflow()
    with pytest.raises(KeyError):
        definition.with_start_at("Nope")


def test_definition_rejects_dangling_next() -> None:
    with pytest.raises(ValidationError):
        WorkflowDefinition.model_validate(
            {"StartAt": "A", "States": {"A": {"Type": "Pass", "Next": "B"}}}
        )


def test_state_requires_next_xor_end() -> None:
    with pytest.raises(ValidationError):
        WorkflowDefinition.model_validate(
            {"StartAt": "A", "States": {"A": {"Type": "Pass", "Next": "A", "End": True}}}
        )
    with pytest.raises(ValidationError):
        WorkflowDefinition.model_validate({"StartAt": "A", "States": {"A": {"Type": "Pass"}}})


def test_to_json_keeps_explicit_null_result_path() -> None:
    _, definition = parse_named_definition(
        {
            "w": {
                "StartAt": "A",
                "States": {"A": {"Type": "Pass", "ResultPath": None, "End": True}},
            }
        }
    )
    dumped = definition.to_json()

    assert dumped["States"]["A"]["ResultPath"] is None
    reloaded = WorkflowDefinition.model_validate(dumped)
    assert reloaded.state("A").result_path is None


def test_parse_named_definition_requires_single_workflow() -> None:
    with pytest.raises(ValueError):
        parse_named_definition({"a": {}, "b": {}})


def test_select_and_merge_paths() -> None:
    doc = {"values": {"value": 5}, "constants": {"version": "x"}}

    assert select(doc, "$") is doc
    assert select(doc, "$.values") == {"value": 5}
    assert select(doc, None) == {}

    merged = merge(doc, "$.values.value", 6)
    assert merged["values"]["value"] == 6
    assert doc["values"]["value"] == 5

    assert merge(doc, None, 99) is doc
    assert merge(doc, "$", {"x": 1}) == {"x": 1}
    assert merge({}, "$.a.b", 1) == {"a": {"b": 1}}


def test_select_rejects_missing_or_unsupported_paths() -> None:
    with pytest.raises(PathError):
        select({"values": {}}, "$.missing")
    with pytest.raises(PathError):
        select({}, "values")
