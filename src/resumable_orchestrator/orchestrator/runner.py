"""Execution orchestrator: the single entry point of one invocation.

One invocation runs these steps in order:

1. validate the invocation-method marker (no store connection on mismatch)
2. open the continuation store connection
3. discover the resource registry and register it with the interpreter
4. fresh run from a template, or resumed run from a continuation token
5. register the run's definition and start it with a completion signal
6. wait for `Respond` or `Suspend` to complete the run
7. close the store connection, on every path

The interpreter and the task platform client are process-scoped and shared by
concurrent invocations. The store connection belongs to one invocation only.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from resumable_orchestrator import __version__
from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import (
    ContinuationStore,
    StoreEndpoint,
)
from resumable_orchestrator.orchestrator.errors import (
    ContinuationNotFound,
    ExecutionFailed,
    InterpreterStartError,
    MethodNotAllowed,
    OrchestratorError,
    StoreConnectivityError,
    ValidationError,
)
from resumable_orchestrator.orchestrator.instantiator import RunInstance, fresh, resumed
from resumable_orchestrator.orchestrator.registry import discover
from resumable_orchestrator.orchestrator.whisk.client import WhiskClient
from resumable_orchestrator.orchestrator.workflow.completion import CompletionSignal
from resumable_orchestrator.orchestrator.workflow.definition import (
    WorkflowDefinition,
    default_workflow,
    parse_named_definition,
)
from resumable_orchestrator.orchestrator.workflow.handlers import (
    CONTINUATION_KEY,
    ELAPSED_KEY,
    RunOutcome,
    RunScope,
)
from resumable_orchestrator.orchestrator.workflow.interpreter import (
    Execution,
    ExecutionOptions,
    ExecutionStatus,
    Interpreter,
)

logger = logging.getLogger(__name__)

StoreFactory = Callable[[StoreEndpoint], ContinuationStore]


@dataclass(frozen=True, slots=True)
class _InvocationStart:
    """When an invocation arrived, on both clocks."""

    monotonic: float
    epoch_msec: int

    @classmethod
    def now(cls) -> _InvocationStart:
        return cls(monotonic=time.monotonic(), epoch_msec=int(time.time() * 1000))


class InvocationParams(BaseModel):
    """Recognized invocation parameters; anything else is ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    input: int = 1
    continuation: str | None = None
    workflow: dict[str, Any] | None = None
    host: str | None = None
    port: int | None = Field(default=None, gt=0, le=65535)
    method: str | None = Field(default=None, alias="__ow_method")

    @field_validator("continuation", "host", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("workflow", mode="before")
    @classmethod
    def _parse_workflow(cls, value: object) -> object:
        if isinstance(value, str):
            if not value.strip():
                return None
            value = json.loads(value)
        if isinstance(value, Mapping):
            parse_named_definition(value)
        return value

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> InvocationParams:
        try:
            return cls.model_validate(dict(raw))
        except (PydanticValidationError, ValueError) as e:
            raise ValidationError(f"Invalid invocation parameters: {e}") from e

    def selected_workflow(self) -> tuple[str, WorkflowDefinition]:
        if self.workflow is None:
            return default_workflow()
        return parse_named_definition(self.workflow)


class InvocationResult(BaseModel):
    status: Literal["completed", "suspended"]
    run_name: str
    values: dict[str, Any] = Field(default_factory=dict)
    continuation: str | None = None
    restarted_from: str | None = None
    elapsed_msec: int | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        """Response body: the final payload plus run metadata."""

        body = dict(self.payload)
        body["status"] = self.status
        body["runName"] = self.run_name
        return body

    def to_response(self) -> dict[str, Any]:
        return {"statusCode": 200, "body": self.to_body()}


class ExecutionOrchestrator:
    def __init__(
        self,
        *,
        settings: OrchestratorSettings,
        interpreter: Interpreter,
        whisk: WhiskClient,
        store_factory: StoreFactory,
    ) -> None:
        self.settings = settings
        self.interpreter = interpreter
        self.whisk = whisk
        self._store_factory = store_factory

    def invoke(self, params: InvocationParams | Mapping[str, Any]) -> InvocationResult:
        started = _InvocationStart.now()
        if not isinstance(params, InvocationParams):
            params = InvocationParams.parse(params)

        self._check_method(params.method)

        endpoint = StoreEndpoint(
            host=params.host or self.settings.store_host,
            port=params.port or self.settings.store_port,
        )
        store = self._store_factory(endpoint)
        try:
            return self._run(params, store, endpoint, started)
        except OrchestratorError as e:
            logger.warning(
                "Invocation rejected",
                extra={"error": e.kind, "status_code": e.status_code, "detail": e.message},
            )
            raise
        finally:
            self._close_store(store, endpoint)

    @staticmethod
    def _close_store(store: ContinuationStore, endpoint: StoreEndpoint) -> None:
        # A failing close must not replace the invocation's own result or error.
        logger.info(
            "Closing continuation store", extra={"host": endpoint.host, "port": endpoint.port}
        )
        try:
            store.close()
        except StoreConnectivityError as e:
            logger.warning(
                "Closing continuation store failed",
                extra={"host": endpoint.host, "port": endpoint.port, "error": str(e)},
            )

    def _check_method(self, method: str | None) -> None:
        expected = self.settings.expected_method.strip().lower()
        if (method or "").strip().lower() != expected:
            raise MethodNotAllowed(method, expected)

    def _run(
        self,
        params: InvocationParams,
        store: ContinuationStore,
        endpoint: StoreEndpoint,
        started: _InvocationStart,
    ) -> InvocationResult:
        registry = discover(self.whisk)
        self.interpreter.register_handlers(registry)
        logger.info(
            "Registered resources",
            extra={"remote_actions": registry.remote_actions(), "total": len(registry)},
        )

        if params.continuation:
            logger.info(
                "Restarting from continuation", extra={"continuation": params.continuation}
            )
            snapshot = store.get(params.continuation)
            if snapshot is None:
                raise ContinuationNotFound(params.continuation)
            instance, values = resumed(snapshot)
        else:
            source_name, template = params.selected_workflow()
            instance = fresh(template, {"value": params.input}, source_name=source_name)
            values = instance.values

        constants: dict[str, Any] = {
            "version": __version__,
            "start": values.get("value"),
            "startTime": started.epoch_msec,
            "host": endpoint.host,
            "port": endpoint.port,
        }
        if params.continuation:
            constants["restartedFrom"] = params.continuation

        outcome = self._execute(
            instance, {"constants": constants, "values": values}, store, started
        )
        return InvocationResult(
            status=outcome.status,
            run_name=instance.run_name,
            values=dict(outcome.payload.get("values") or {}),
            continuation=outcome.continuation,
            restarted_from=params.continuation,
            elapsed_msec=outcome.payload.get(ELAPSED_KEY),
            payload=outcome.payload,
        )

    def _execute(
        self,
        instance: RunInstance,
        event: dict[str, Any],
        store: ContinuationStore,
        started: _InvocationStart,
    ) -> RunOutcome:
        completion: CompletionSignal[RunOutcome] = CompletionSignal(instance.run_name)
        scope = RunScope(
            completion=completion,
            store=store,
            ttl_seconds=self.settings.continuation_ttl_seconds,
            started_at=started.monotonic,
        )

        logger.info(
            "Creating run",
            extra={
                "run_name": instance.run_name,
                "source": instance.source_name,
                "start_at": instance.definition.start_at,
            },
        )
        try:
            self.interpreter.register_workflow(instance.run_name, instance.definition)
        except InterpreterStartError:
            raise
        except Exception as e:
            raise InterpreterStartError(f"Could not register {instance.run_name}: {e}") from e

        try:
            self.interpreter.start_execution(
                event,
                instance.run_name,
                ExecutionOptions(
                    scope=scope,
                    on_finish=lambda execution: _settle(completion, execution),
                ),
            )
            outcome = completion.wait()
        finally:
            self.interpreter.unregister_workflow(instance.run_name)

        if outcome.status == "suspended":
            logger.info(
                "Run suspended",
                extra={"run_name": instance.run_name, "continuation": outcome.continuation},
            )
        else:
            logger.info("Run completed", extra={"run_name": instance.run_name})
        return outcome


def _settle(completion: CompletionSignal[RunOutcome], execution: Execution) -> None:
    """Complete the run's signal if no handler did before the execution stopped."""

    if completion.done():
        return
    if execution.status is ExecutionStatus.FAILED:
        error = execution.error
        if isinstance(error, OrchestratorError):
            completion.fail(error)
        else:
            completion.fail(
                ExecutionFailed(
                    f"Run {execution.run_name} failed in state "
                    f"{execution.current_state!r}: {error}"
                )
            )
    elif execution.status is ExecutionStatus.SUCCEEDED:
        # The workflow ended without a Respond state: answer with its output.
        output = execution.output
        payload = dict(output) if isinstance(output, dict) else {"value": output}
        payload.pop(CONTINUATION_KEY, None)
        completion.resolve(RunOutcome(status="completed", payload=payload))
    else:
        completion.fail(
            ExecutionFailed(
                f"Run {execution.run_name} halted in state {execution.current_state!r} "
                "without a response"
            )
        )
