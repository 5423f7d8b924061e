"""Declarative workflow definitions.

A definition is a named graph of states in the Amazon States Language shape:

    {
        "incsquare": {
            "StartAt": "A",
            "States": {
                "A": {"Type": "Task", "Resource": "module:increment", "Next": "B"},
                ...
            },
        }
    }

Definitions are immutable. Resuming a run never edits the stored definition in
place; `WorkflowDefinition.with_start_at` produces a rewritten copy.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

SUPPORTED_STATE_TYPES = frozenset({"Task", "Pass", "Succeed", "Fail"})
TERMINAL_STATE_TYPES = frozenset({"Succeed", "Fail"})


class StateDefinition(BaseModel):
    """One state of a workflow graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    type: str = Field(alias="Type")
    comment: str | None = Field(default=None, alias="Comment")
    input_path: str | None = Field(default="$", alias="InputPath")
    result_path: str | None = Field(default="$", alias="ResultPath")
    resource: str | None = Field(default=None, alias="Resource")
    result: Any = Field(default=None, alias="Result")
    next: str | None = Field(default=None, alias="Next")
    end: bool = Field(default=False, alias="End")

    # Fail state fields.
    error: str | None = Field(default=None, alias="Error")
    cause: str | None = Field(default=None, alias="Cause")

    @model_validator(mode="after")
    def _check_transition(self) -> StateDefinition:
        if self.type in TERMINAL_STATE_TYPES:
            if self.next is not None:
                raise ValueError(f"{self.type} states cannot declare Next")
            return self
        if (self.next is None) == (not self.end):
            raise ValueError("A state must declare exactly one of Next or End")
        if self.type == "Task" and not self.resource:
            raise ValueError("Task states require a Resource")
        return self


class WorkflowDefinition(BaseModel):
    """An immutable workflow graph with its entry state."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    comment: str | None = Field(default=None, alias="Comment")
    start_at: str = Field(alias="StartAt")
    states: dict[str, StateDefinition] = Field(alias="States")

    @model_validator(mode="after")
    def _check_graph(self) -> WorkflowDefinition:
        if self.start_at not in self.states:
            raise ValueError(f"StartAt refers to unknown state {self.start_at!r}")
        for name, state in self.states.items():
            if state.next is not None and state.next not in self.states:
                raise ValueError(f"State {name!r} has unknown Next {state.next!r}")
        return self

    def state(self, name: str) -> StateDefinition:
        try:
            return self.states[name]
        except KeyError:
            raise KeyError(f"Unknown state {name!r}") from None

    def resources(self) -> set[str]:
        """Resource identifiers referenced by Task states."""

        return {s.resource for s in self.states.values() if s.resource}

    def with_start_at(self, state_name: str) -> WorkflowDefinition:
        """Return a copy whose entry state is `state_name`."""

        if state_name not in self.states:
            raise KeyError(f"Unknown state {state_name!r}")
        return self.model_copy(update={"start_at": state_name})

    def to_json(self) -> dict[str, Any]:
        # exclude_unset keeps explicit nulls (e.g. `"ResultPath": null`) intact.
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def parse_named_definition(raw: Mapping[str, Any]) -> tuple[str, WorkflowDefinition]:
    """Parse a `{name: definition}` mapping holding exactly one workflow.

    A bare definition (a mapping with `StartAt` at the top) is accepted too and
    named "workflow".
    """

    if "StartAt" in raw:
        return "workflow", WorkflowDefinition.model_validate(raw)
    if len(raw) != 1:
        raise ValueError("Expected exactly one named workflow definition")
    ((name, body),) = raw.items()
    if not isinstance(body, Mapping):
        raise ValueError(f"Workflow {name!r} must be a mapping")
    return str(name), WorkflowDefinition.model_validate(body)


def default_workflow() -> tuple[str, WorkflowDefinition]:
    """The built-in demo: increment, square, suspend, increment, respond."""

    return parse_named_definition(
        {
            "incsquare": {
                "Comment": "Increment and square a value",
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
                        "Next": "Suspend",
                    },
                    "Suspend": {
                        "Type": "Task",
                        "Resource": "module:suspend",
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
    )
