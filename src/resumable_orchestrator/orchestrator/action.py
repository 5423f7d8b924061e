"""Task-platform action entry point.

Deployed as a web action, the platform calls `main(params)` with the request
parameters plus `__ow_method`, and expects `{"statusCode": ..., "body": ...}`
back.

The interpreter runtime and the in-memory keyspace live as long as the action
container; warm invocations share them, each with its own store connection.
"""

from __future__ import annotations

import logging
from typing import Any

from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import MemoryKeyspace
from resumable_orchestrator.orchestrator.errors import OrchestratorError
from resumable_orchestrator.orchestrator.factory import build_orchestrator
from resumable_orchestrator.orchestrator.logging import configure_logging
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter

logger = logging.getLogger(__name__)

_INTERPRETER = Interpreter()
_KEYSPACE = MemoryKeyspace()


def main(params: dict[str, Any] | None = None) -> dict[str, Any]:
    settings = OrchestratorSettings()
    configure_logging(settings.log_level)

    orchestrator = build_orchestrator(settings, interpreter=_INTERPRETER, keyspace=_KEYSPACE)
    try:
        return orchestrator.invoke(params or {}).to_response()
    except OrchestratorError as e:
        return e.to_rejection()
    finally:
        orchestrator.whisk.close()
