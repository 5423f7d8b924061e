from resumable_orchestrator.orchestrator.continuation.store import (
    ContinuationStore,
    MemoryContinuationStore,
    MemoryKeyspace,
    RedisContinuationStore,
    StoreEndpoint,
    SuspendSnapshot,
)

__all__ = [
    "ContinuationStore",
    "MemoryContinuationStore",
    "MemoryKeyspace",
    "RedisContinuationStore",
    "StoreEndpoint",
    "SuspendSnapshot",
]
