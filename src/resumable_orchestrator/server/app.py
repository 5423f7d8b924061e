"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the execution orchestrator.
The HTTP verb of a run request is its invocation-method marker, so a request
with the wrong verb is rejected by the orchestrator itself (405) before any
store connection is opened.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resumable_orchestrator import __version__
from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import MemoryKeyspace
from resumable_orchestrator.orchestrator.errors import OrchestratorError
from resumable_orchestrator.orchestrator.factory import build_orchestrator
from resumable_orchestrator.orchestrator.runner import ExecutionOrchestrator
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter
from resumable_orchestrator.server.config import ServerSettings
from resumable_orchestrator.server.models import HealthResponse, RunRequest

logger = logging.getLogger(__name__)

RUN_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
RUN_PARAMETERS = frozenset(RunRequest.model_fields)
METHOD_MARKER = "__ow_method"


def create_app(
    *,
    settings: OrchestratorSettings | None = None,
    orchestrator: ExecutionOrchestrator | None = None,
) -> FastAPI:
    server_settings = ServerSettings()
    settings = settings or OrchestratorSettings()
    if orchestrator is None:
        orchestrator = build_orchestrator(
            settings, interpreter=Interpreter(), keyspace=MemoryKeyspace()
        )

    app = FastAPI(
        title="Resumable Orchestrator",
        version=__version__,
        description="Start, suspend and resume workflow runs over HTTP.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose orchestrator for request handlers and tests.
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OrchestratorError)
    def orchestrator_error(_request: Request, exc: OrchestratorError) -> JSONResponse:
        rejection = exc.to_rejection()
        return JSONResponse(status_code=rejection["statusCode"], content=rejection["body"])

    @app.get("/api/v1/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(version=__version__, store_backend=settings.store_backend)

    @app.api_route("/api/v1/run", methods=RUN_METHODS)
    def run(request: Request, body: RunRequest | None = Body(default=None)) -> dict[str, Any]:
        # Only recognized parameters pass; the method marker comes from the verb alone.
        params: dict[str, Any] = {
            key: value for key, value in request.query_params.items() if key in RUN_PARAMETERS
        }
        if body is not None:
            params.update(body.model_dump(exclude_none=True))
        params[METHOD_MARKER] = request.method

        result = orchestrator.invoke(params)
        return result.to_body()

    return app
