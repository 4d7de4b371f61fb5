"""Shared test fixtures."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from agent_swarm.orchestration.models import (
    Capability,
    OrchestrationConfig,
    Task,
    TaskResult,
    WorkerProfile,
    WorkerSpecialization,
)
from agent_swarm.orchestration.swarm import Swarm
from agent_swarm.orchestration.worker import AgentWorker

GATE_TIMEOUT_SECONDS = 5.0


@dataclass
class FakeBehavior:
    """Scriptable worker kind: gates block bodies keyed by task description."""

    profile: WorkerProfile
    accept: Callable[[Task], bool] = lambda _task: True
    outcome: Callable[[Task], TaskResult] | None = None
    gates: dict[str, threading.Event] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)

    def can_handle(self, task: Task) -> bool:
        return self.accept(task)

    def execute_task(self, task: Task) -> TaskResult:
        self.calls.append(task.description)
        gate = self.gates.get(task.description)
        if gate is not None:
            gate.wait(GATE_TIMEOUT_SECONDS)
        if self.outcome is not None:
            return self.outcome(task)
        return TaskResult(success=True, output=f"done: {task.description}")


def make_profile(
    worker_id: str = "worker-1",
    capabilities: dict[str, float] | None = None,
    *,
    max_concurrent_tasks: int = 1,
    specialization: WorkerSpecialization = WorkerSpecialization.GENERAL,
) -> WorkerProfile:
    weights = capabilities if capabilities is not None else {"alpha": 10}
    return WorkerProfile(
        id=worker_id,
        name=worker_id.title(),
        capabilities=tuple(Capability(name, weight) for name, weight in weights.items()),
        max_concurrent_tasks=max_concurrent_tasks,
        specialization=specialization,
    )


def wait_until(predicate: Callable[[], bool], timeout: float = GATE_TIMEOUT_SECONDS) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture()
def fast_config() -> OrchestrationConfig:
    return OrchestrationConfig(
        max_concurrent_tasks=10,
        task_timeout_seconds=30.0,
        retry_attempts=0,
        tick_interval_seconds=0.01,
        shutdown_grace_seconds=1.0,
    )


@pytest.fixture()
def swarms():
    """Collect swarms created by a test and shut them down afterwards."""

    created: list[Swarm] = []

    def _make(config: OrchestrationConfig, *workers: AgentWorker) -> Swarm:
        swarm = Swarm(config, workers=workers)
        created.append(swarm)
        return swarm

    yield _make
    for swarm in created:
        swarm.shutdown(grace_seconds=0.0)


@pytest.fixture()
def make_worker() -> Callable[..., tuple[AgentWorker, FakeBehavior]]:
    def _make(
        worker_id: str = "worker-1",
        capabilities: dict[str, float] | None = None,
        **kwargs,
    ) -> tuple[AgentWorker, FakeBehavior]:
        profile_kwargs = {
            key: kwargs.pop(key)
            for key in ("max_concurrent_tasks", "specialization")
            if key in kwargs
        }
        behavior = FakeBehavior(make_profile(worker_id, capabilities, **profile_kwargs), **kwargs)
        return AgentWorker(behavior), behavior

    return _make


@pytest.fixture()
def eventually() -> Callable[..., bool]:
    """Poll a predicate until it holds or the gate timeout expires."""

    return wait_until
