"""Wiring of an `ExecutionOrchestrator` from settings."""

from __future__ import annotations

import logging

from resumable_orchestrator.orchestrator.config import OrchestratorSettings
from resumable_orchestrator.orchestrator.continuation.store import (
    ContinuationStore,
    MemoryContinuationStore,
    MemoryKeyspace,
    RedisContinuationStore,
    StoreEndpoint,
)
from resumable_orchestrator.orchestrator.runner import ExecutionOrchestrator, StoreFactory
from resumable_orchestrator.orchestrator.whisk.client import WhiskClient
from resumable_orchestrator.orchestrator.workflow.interpreter import Interpreter

logger = logging.getLogger(__name__)


def create_store_factory(
    settings: OrchestratorSettings,
    *,
    keyspace: MemoryKeyspace | None = None,
) -> StoreFactory:
    """Return a callable opening one store connection per invocation.

    The memory backend needs a keyspace that outlives invocations; pass the
    process-wide one, or a new keyspace is created for this factory.
    """

    logger.info("Creating continuation store factory", extra={"backend": settings.store_backend})

    if settings.store_backend == "memory":
        shared = keyspace if keyspace is not None else MemoryKeyspace()

        def open_memory(_endpoint: StoreEndpoint) -> ContinuationStore:
            return MemoryContinuationStore(shared)

        return open_memory

    if settings.store_backend == "redis":
        return RedisContinuationStore
    raise ValueError(f"Unsupported continuation store backend: {settings.store_backend}")


def create_whisk_client(settings: OrchestratorSettings) -> WhiskClient:
    return WhiskClient(
        api_host=settings.whisk_api_host,
        auth=settings.whisk_auth,
        namespace=settings.whisk_namespace,
        timeout_seconds=settings.whisk_timeout_seconds,
    )


def build_orchestrator(
    settings: OrchestratorSettings,
    *,
    interpreter: Interpreter,
    whisk: WhiskClient | None = None,
    keyspace: MemoryKeyspace | None = None,
) -> ExecutionOrchestrator:
    return ExecutionOrchestrator(
        settings=settings,
        interpreter=interpreter,
        whisk=whisk or create_whisk_client(settings),
        store_factory=create_store_factory(settings, keyspace=keyspace),
    )
