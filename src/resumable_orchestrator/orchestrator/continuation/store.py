"""Durable, expiring storage of suspend snapshots addressed by continuation tokens.

Two backends implement the same `ContinuationStore` protocol:

- `RedisContinuationStore`: one Redis connection per invocation, TTL enforced
  by Redis itself (`SET ... EX ttl NX`).
- `MemoryContinuationStore`: a view over a process-wide `MemoryKeyspace`,
  for local development and tests.

`get()` returns `None` for a missing or expired token; that is an ordinary
outcome, not an error. Connectivity failures raise `StoreConnectivityError`
and are not retried.
"""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

import redis
from pydantic import BaseModel, ConfigDict, Field

from resumable_orchestrator.orchestrator.errors import StoreConnectivityError
from resumable_orchestrator.orchestrator.workflow.definition import WorkflowDefinition

logger = logging.getLogger(__name__)

KEY_PREFIX = "continuation:"
_MAX_KEY_ATTEMPTS = 3


class SuspendSnapshot(BaseModel):
    """Everything needed to restart a suspended run.

    `restart_at` is the `Next` of the suspending state and always equals the
    `StartAt` of the stored definition, so resuming never re-runs the state
    that suspended.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data: dict[str, Any] = Field(alias="data")
    restart_at: str = Field(alias="restartAt")
    state_machine: dict[str, WorkflowDefinition] = Field(alias="stateMachine")

    @property
    def workflow_name(self) -> str:
        return next(iter(self.state_machine))

    @property
    def definition(self) -> WorkflowDefinition:
        return self.state_machine[self.workflow_name]

    def to_json(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "restartAt": self.restart_at,
            "stateMachine": {name: d.to_json() for name, d in self.state_machine.items()},
        }


@dataclass(frozen=True, slots=True)
class StoreEndpoint:
    host: str
    port: int


class ContinuationStore(Protocol):
    def put(self, snapshot: SuspendSnapshot, ttl_seconds: int) -> str: ...

    def get(self, token: str) -> SuspendSnapshot | None: ...

    def close(self) -> None: ...


def new_token() -> str:
    return uuid.uuid4().hex


class RedisContinuationStore:
    """Continuation store backed by a Redis connection owned by one invocation."""

    def __init__(
        self,
        endpoint: StoreEndpoint,
        *,
        client: redis.Redis | None = None,
        key_prefix: str = KEY_PREFIX,
    ) -> None:
        self.endpoint = endpoint
        self._prefix = key_prefix
        self._client = client or redis.Redis(
            host=endpoint.host, port=endpoint.port, decode_responses=True
        )
        self._closed = False

    def _key(self, token: str) -> str:
        return f"{self._prefix}{token}"

    def put(self, snapshot: SuspendSnapshot, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        payload = json.dumps(snapshot.to_json(), ensure_ascii=False)
        try:
            for _ in range(_MAX_KEY_ATTEMPTS):
                token = new_token()
                # NX: never overwrite a live snapshot on a (vanishingly unlikely) token clash.
                if self._client.set(self._key(token), payload, ex=ttl_seconds, nx=True):
                    logger.debug(
                        "Stored continuation", extra={"token": token, "ttl_seconds": ttl_seconds}
                    )
                    return token
        except redis.RedisError as e:
            raise StoreConnectivityError(
                f"Continuation store at {self.endpoint.host}:{self.endpoint.port} "
                f"failed on put: {e}"
            ) from e
        raise StoreConnectivityError("Could not allocate a unique continuation token")

    def get(self, token: str) -> SuspendSnapshot | None:
        try:
            raw = self._client.get(self._key(token))
        except redis.RedisError as e:
            raise StoreConnectivityError(
                f"Continuation store at {self.endpoint.host}:{self.endpoint.port} "
                f"failed on get: {e}"
            ) from e
        if raw is None:
            return None
        return SuspendSnapshot.model_validate(json.loads(raw))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
        except redis.RedisError as e:
            raise StoreConnectivityError(f"Failed to close continuation store: {e}") from e


class MemoryKeyspace:
    """Process-wide expiring key/value space shared by `MemoryContinuationStore` views."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, str]] = {}

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            self._evict_unlocked(now)
            if key in self._entries:
                return False
            self._entries[key] = (now + ttl_seconds, value)
            return True

    def get(self, key: str) -> str | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return value

    def _evict_unlocked(self, now: float) -> None:
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            self._evict_unlocked(self._clock())
            return len(self._entries)


class MemoryContinuationStore:
    """Continuation store over an in-process keyspace.

    Snapshots are serialized exactly as for Redis so that both backends hand
    back equal snapshots.
    """

    def __init__(self, keyspace: MemoryKeyspace, *, key_prefix: str = KEY_PREFIX) -> None:
        self._keyspace = keyspace
        self._prefix = key_prefix
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise StoreConnectivityError("Continuation store connection is closed")

    def put(self, snapshot: SuspendSnapshot, ttl_seconds: int) -> str:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._check_open()
        payload = json.dumps(snapshot.to_json(), ensure_ascii=False)
        for _ in range(_MAX_KEY_ATTEMPTS):
            token = new_token()
            if self._keyspace.set_if_absent(self._prefix + token, payload, ttl_seconds):
                return token
        raise StoreConnectivityError("Could not allocate a unique continuation token")

    def get(self, token: str) -> SuspendSnapshot | None:
        self._check_open()
        raw = self._keyspace.get(self._prefix + token)
        if raw is None:
            return None
        return SuspendSnapshot.model_validate(json.loads(raw))

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed
