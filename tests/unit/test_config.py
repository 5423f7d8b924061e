"""Unit tests for configuration."""

from resumable_orchestrator.orchestrator.config import (
    DEFAULT_CONTINUATION_TTL_SECONDS,
    OrchestratorSettings,
)


def test_orchestrator_settings_defaults(monkeypatch) -> None:
    """Test orchestrator settings default values."""
    for name in ("REDIS_HOST", "REDIS_PORT", "__OW_API_HOST", "__OW_API_KEY", "__OW_NAMESPACE"):
        monkeypatch.delenv(name, raising=False)

    config = OrchestratorSettings(_env_file=None)

    assert config.store_backend == "redis"
    assert config.store_host == "localhost"
    assert config.store_port == 6379
    assert config.continuation_ttl_seconds == DEFAULT_CONTINUATION_TTL_SECONDS == 300
    assert config.expected_method == "post"
    assert config.whisk_namespace == "_"


def test_orchestrator_settings_from_platform_environment(monkeypatch) -> None:
    """Test that the platform's injected variables are picked up."""
    monkeypatch.setenv("__OW_API_HOST", "https://whisk.test")
    monkeypatch.setenv("__OW_API_KEY", "user:secret")
    monkeypatch.setenv("REDIS_HOST", "redis.test")
    monkeypatch.setenv("REDIS_PORT", "6380")
    monkeypatch.setenv("ORCHESTRATOR_CONTINUATION_TTL_SECONDS", "60")

    config = OrchestratorSettings(_env_file=None)

    assert config.whisk_api_host == "https://whisk.test"
    assert config.whisk_auth == "user:secret"
    assert config.store_host == "redis.test"
    assert config.store_port == 6380
    assert config.continuation_ttl_seconds == 60
