"""Error taxonomy for orchestrated invocations.

Every error carries a status code so that callers can tell a bad request from
an expired continuation from a failing dependency without parsing messages.
"""

from __future__ import annotations

from typing import Any


class OrchestratorError(Exception):
    """Base class for errors that reject an invocation."""

    status_code: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_rejection(self) -> dict[str, Any]:
        """Structured rejection in the `{statusCode, body}` web-action shape."""

        return {
            "statusCode": self.status_code,
            "body": {"error": self.kind, "message": self.message},
        }


class ValidationError(OrchestratorError):
    """The invocation itself is malformed."""

    status_code = 400
    kind = "bad_request"


class MethodNotAllowed(ValidationError):
    """The invocation-method marker does not match the expected trigger verb."""

    status_code = 405
    kind = "method_not_allowed"

    def __init__(self, method: str | None, expected: str) -> None:
        super().__init__(f"Invocation method {method!r} not allowed, expected {expected!r}")
        self.method = method
        self.expected = expected


class ContinuationNotFound(OrchestratorError):
    """No live snapshot exists for the continuation token (unknown or expired)."""

    status_code = 404
    kind = "continuation_not_found"

    def __init__(self, token: str) -> None:
        super().__init__(f"Continuation not found or expired: {token}")
        self.token = token


class StoreConnectivityError(OrchestratorError):
    status_code = 503
    kind = "store_unavailable"


class RegistryDiscoveryError(OrchestratorError):
    status_code = 502
    kind = "registry_discovery_failed"


class InterpreterStartError(OrchestratorError):
    status_code = 500
    kind = "interpreter_start_failed"


class UnknownResourceError(InterpreterStartError, KeyError):
    """A state references a resource identifier that no handler is bound to."""

    kind = "unknown_resource"

    def __init__(self, resource: str) -> None:
        super().__init__(f"No task handler registered for resource {resource!r}")
        self.resource = resource

    def __str__(self) -> str:
        return self.message


class RemoteActionError(OrchestratorError):
    """A dispatched remote action failed."""

    status_code = 502
    kind = "remote_action_failed"

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"Remote action {action!r} failed: {message}")
        self.action = action


class ExecutionFailed(OrchestratorError):
    """The run stopped without a response (a `Fail` state, a bad data path, ...)."""

    status_code = 500
    kind = "execution_failed"
