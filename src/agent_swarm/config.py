"""Runtime configuration for the swarm and its CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from agent_swarm.orchestration.models import OrchestrationConfig

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class SwarmSettings:
    """Scheduler limits and policies."""

    max_concurrent_tasks: int = 10
    task_timeout_seconds: float = 300.0
    retry_attempts: int = 3
    load_balancing: bool = True
    failover_enabled: bool = True
    tick_interval_seconds: float = 0.1
    shutdown_grace_seconds: float = 30.0


@dataclass(slots=True)
class EchoSettings:
    """Local deterministic turn runner used instead of a language model."""

    delay_seconds: float = 0.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    swarm: SwarmSettings = field(default_factory=SwarmSettings)
    echo: EchoSettings = field(default_factory=EchoSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from ``AGENT_SWARM_*`` environment variables."""

        return cls(
            swarm=SwarmSettings(
                max_concurrent_tasks=_env_int("AGENT_SWARM_MAX_CONCURRENT_TASKS", 10),
                task_timeout_seconds=_env_float("AGENT_SWARM_TASK_TIMEOUT_SECONDS", 300.0),
                retry_attempts=_env_int("AGENT_SWARM_RETRY_ATTEMPTS", 3),
                load_balancing=_env_bool("AGENT_SWARM_LOAD_BALANCING", default=True),
                failover_enabled=_env_bool("AGENT_SWARM_FAILOVER_ENABLED", default=True),
                tick_interval_seconds=_env_float("AGENT_SWARM_TICK_INTERVAL_SECONDS", 0.1),
                shutdown_grace_seconds=_env_float("AGENT_SWARM_SHUTDOWN_GRACE_SECONDS", 30.0),
            ),
            echo=EchoSettings(
                delay_seconds=_env_float("AGENT_SWARM_ECHO_DELAY_SECONDS", 0.0),
            ),
            log_level=os.getenv("AGENT_SWARM_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error naming the offending variable."""

        if self.swarm.max_concurrent_tasks <= 0:
            raise ValueError("AGENT_SWARM_MAX_CONCURRENT_TASKS must be > 0.")
        if self.swarm.task_timeout_seconds <= 0:
            raise ValueError("AGENT_SWARM_TASK_TIMEOUT_SECONDS must be > 0.")
        if self.swarm.retry_attempts < 0:
            raise ValueError("AGENT_SWARM_RETRY_ATTEMPTS must be >= 0.")
        if self.swarm.tick_interval_seconds <= 0:
            raise ValueError("AGENT_SWARM_TICK_INTERVAL_SECONDS must be > 0.")
        if self.swarm.shutdown_grace_seconds < 0:
            raise ValueError("AGENT_SWARM_SHUTDOWN_GRACE_SECONDS must be >= 0.")
        if self.echo.delay_seconds < 0:
            raise ValueError("AGENT_SWARM_ECHO_DELAY_SECONDS must be >= 0.")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid AGENT_SWARM_LOG_LEVEL: {self.log_level!r}. "
                f"Use one of {', '.join(LOG_LEVELS)}.",
            )

    def to_orchestration_config(self) -> OrchestrationConfig:
        self.validate()
        return OrchestrationConfig(
            max_concurrent_tasks=self.swarm.max_concurrent_tasks,
            task_timeout_seconds=self.swarm.task_timeout_seconds,
            retry_attempts=self.swarm.retry_attempts,
            load_balancing=self.swarm.load_balancing,
            failover_enabled=self.swarm.failover_enabled,
            tick_interval_seconds=self.swarm.tick_interval_seconds,
            shutdown_grace_seconds=self.swarm.shutdown_grace_seconds,
        )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
