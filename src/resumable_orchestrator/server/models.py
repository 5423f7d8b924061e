"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    input: int | None = None
    continuation: str | None = None
    workflow: dict[str, Any] | None = None
    host: str | None = None
    port: int | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    store_backend: str = Field(serialization_alias="storeBackend")
