from __future__ import annotations

import allure
import pytest

from agent_swarm.config import EchoSettings, Settings, SwarmSettings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]

_ENV_NAMES = (
    "AGENT_SWARM_MAX_CONCURRENT_TASKS",
    "AGENT_SWARM_TASK_TIMEOUT_SECONDS",
    "AGENT_SWARM_RETRY_ATTEMPTS",
    "AGENT_SWARM_LOAD_BALANCING",
    "AGENT_SWARM_FAILOVER_ENABLED",
    "AGENT_SWARM_TICK_INTERVAL_SECONDS",
    "AGENT_SWARM_SHUTDOWN_GRACE_SECONDS",
    "AGENT_SWARM_LOG_LEVEL",
    "AGENT_SWARM_ECHO_DELAY_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.swarm == SwarmSettings()
    assert settings.echo == EchoSettings()
    assert settings.log_level == "WARNING"
    settings.validate()


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_SWARM_MAX_CONCURRENT_TASKS", "4")
    monkeypatch.setenv("AGENT_SWARM_TASK_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("AGENT_SWARM_RETRY_ATTEMPTS", "0")
    monkeypatch.setenv("AGENT_SWARM_LOAD_BALANCING", "off")
    monkeypatch.setenv("AGENT_SWARM_LOG_LEVEL", "debug")

    config = Settings.from_env().to_orchestration_config()

    assert config.max_concurrent_tasks == 4
    assert config.task_timeout_seconds == 12.5
    assert config.retry_attempts == 0
    assert config.load_balancing is False
    assert config.failover_enabled is True
    assert Settings.from_env().log_level == "DEBUG"


def test_from_env_rejects_bad_boolean(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_SWARM_FAILOVER_ENABLED", "maybe")

    with pytest.raises(ValueError, match="AGENT_SWARM_FAILOVER_ENABLED"):
        Settings.from_env()


def test_from_env_rejects_bad_number(monkeypatch) -> None:
    monkeypatch.setenv("AGENT_SWARM_MAX_CONCURRENT_TASKS", "lots")

    with pytest.raises(ValueError, match="AGENT_SWARM_MAX_CONCURRENT_TASKS"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("settings", "variable"),
    [
        (Settings(swarm=SwarmSettings(max_concurrent_tasks=0)), "MAX_CONCURRENT_TASKS"),
        (Settings(swarm=SwarmSettings(task_timeout_seconds=0)), "TASK_TIMEOUT_SECONDS"),
        (Settings(swarm=SwarmSettings(retry_attempts=-1)), "RETRY_ATTEMPTS"),
        (Settings(swarm=SwarmSettings(tick_interval_seconds=0)), "TICK_INTERVAL_SECONDS"),
        (Settings(echo=EchoSettings(delay_seconds=-1)), "ECHO_DELAY_SECONDS"),
        (Settings(log_level="LOUD"), "LOG_LEVEL"),
    ],
)
def test_validate_names_offending_variable(settings: Settings, variable: str) -> None:
    with pytest.raises(ValueError, match=variable):
        settings.validate()
