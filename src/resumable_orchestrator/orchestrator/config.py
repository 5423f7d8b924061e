"""Configuration for the orchestrator.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

The task platform credentials use the same variable names the platform injects
into deployed actions (`__OW_API_HOST`, `__OW_API_KEY`, `__OW_NAMESPACE`), so
the orchestrator picks them up unchanged when it runs as an action itself.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONTINUATION_TTL_SECONDS = 300


class OrchestratorSettings(BaseSettings):
    """Settings for one orchestrator process.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `OrchestratorSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    store_backend: Literal["redis", "memory"] = Field(
        default="redis",
        validation_alias="ORCHESTRATOR_STORE_BACKEND",
        description=(
            "Continuation store backend. 'memory' keeps snapshots in this process only "
            "and is meant for local development and tests."
        ),
    )
    store_host: str = Field(
        default="localhost",
        validation_alias="REDIS_HOST",
        description="Default continuation store host (overridable per invocation)",
    )
    store_port: int = Field(
        default=6379,
        validation_alias="REDIS_PORT",
        description="Default continuation store port (overridable per invocation)",
        gt=0,
        le=65535,
    )
    continuation_ttl_seconds: int = Field(
        default=DEFAULT_CONTINUATION_TTL_SECONDS,
        validation_alias="ORCHESTRATOR_CONTINUATION_TTL_SECONDS",
        description="Lifetime of a continuation token before its snapshot expires",
        gt=0,
    )

    expected_method: str = Field(
        default="post",
        validation_alias="ORCHESTRATOR_EXPECTED_METHOD",
        description="Invocation method marker every request must carry",
    )

    whisk_api_host: str = Field(
        default="http://localhost:3233",
        validation_alias="__OW_API_HOST",
        description="Task platform API host",
    )
    whisk_auth: str = Field(
        default="",
        validation_alias="__OW_API_KEY",
        description="Task platform credentials in the form 'uuid:key'",
    )
    whisk_namespace: str = Field(
        default="_",
        validation_alias="__OW_NAMESPACE",
        description="Task platform namespace ('_' is the caller's default namespace)",
    )
    whisk_timeout_seconds: float = Field(
        default=60.0,
        validation_alias="ORCHESTRATOR_WHISK_TIMEOUT_SECONDS",
        description="HTTP timeout for task platform calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )
