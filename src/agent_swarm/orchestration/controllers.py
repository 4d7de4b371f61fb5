"""Controllers for swarm CLI commands."""

from __future__ import annotations

import signal
import threading
import time
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from agent_swarm.config import Settings
from agent_swarm.orchestration.agents import build_default_swarm, build_default_workers
from agent_swarm.orchestration.capabilities import infer_capabilities, normalize_capabilities
from agent_swarm.orchestration.models import SwarmEvent, Task, TaskPriority, TaskStatus
from agent_swarm.orchestration.swarm import Swarm
from agent_swarm.orchestration.turns import TOOL_CALLS_CONTEXT_KEY, EchoTurnRunner

WAIT_SLICE_SECONDS = 0.2


@dataclass(slots=True)
class SwarmRunCommand:
    """CLI input for running tasks through the default swarm."""

    descriptions: tuple[str, ...]
    priority: str = "medium"
    capabilities: tuple[str, ...] = ()
    tool_calls: tuple[str, ...] = ()
    timeout_seconds: float | None = None
    retry_attempts: int | None = None
    wait_seconds: float = 60.0


@dataclass(slots=True)
class SwarmRunResult:
    """Run report to render in CLI."""

    lines: list[str]
    success: bool


class SwarmCliController:
    """Builds a swarm from settings and drives it for one CLI invocation."""

    def run(self, command: SwarmRunCommand) -> SwarmRunResult:
        settings = Settings.from_env()
        if command.timeout_seconds is not None:
            settings.swarm.task_timeout_seconds = command.timeout_seconds
        if command.retry_attempts is not None:
            settings.swarm.retry_attempts = command.retry_attempts
        config = settings.to_orchestration_config()
        priority = TaskPriority.parse(command.priority)

        swarm = build_default_swarm(
            EchoTurnRunner(delay_seconds=settings.echo.delay_seconds),
            config,
        )
        event_counts: Counter[str] = Counter()

        def _count(event: SwarmEvent) -> None:
            event_counts[event.type.value] += 1

        swarm.subscribe(_count)
        stop = threading.Event()
        task_ids: list[str] = []
        try:
            with _signal_handlers(stop):
                explicit = normalize_capabilities(command.capabilities)
                for description in command.descriptions:
                    context: dict[str, object] = {}
                    if command.tool_calls:
                        context[TOOL_CALLS_CONTEXT_KEY] = list(command.tool_calls)
                    task_ids.append(
                        swarm.submit_task(
                            description,
                            explicit or infer_capabilities(description),
                            priority,
                            context,
                        ),
                    )
                _wait_all(swarm, task_ids, command.wait_seconds, stop)
                status = swarm.get_status()
        finally:
            swarm.shutdown(grace_seconds=0.0)

        lines: list[str] = []
        tasks = [task for task in (swarm.get_task(task_id) for task_id in task_ids) if task]
        for task in tasks:
            lines.extend(_task_lines(task))
        lines.append(
            "Swarm status: "
            f"completed={status.completed_tasks} active={status.active_tasks} "
            f"pending={status.pending_tasks} workers={status.registered_workers}",
        )
        if event_counts:
            counts = " ".join(f"{name}={count}" for name, count in sorted(event_counts.items()))
            lines.append(f"Events: {counts}")
        if stop.is_set():
            lines.append("Interrupted: remaining tasks were cancelled.")
        success = bool(tasks) and all(task.status == TaskStatus.COMPLETED for task in tasks)
        return SwarmRunResult(lines=lines, success=success)

    def agents(self) -> list[str]:
        lines: list[str] = []
        for worker in build_default_workers(EchoTurnRunner()):
            profile = worker.profile
            lines.append(
                f"{profile.id}: {profile.name} "
                f"specialization={profile.specialization.value} "
                f"max_concurrent_tasks={profile.max_concurrent_tasks}",
            )
            for capability in profile.capabilities:
                tools = f" tools={','.join(capability.tools)}" if capability.tools else ""
                lines.append(
                    f"  - {capability.name} weight={capability.priority:g}{tools}",
                )
        return lines


def _wait_all(
    swarm: Swarm,
    task_ids: list[str],
    wait_seconds: float,
    stop: threading.Event,
) -> None:
    deadline = time.monotonic() + wait_seconds
    for task_id in task_ids:
        while not stop.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            task = swarm.wait_for_task(task_id, min(WAIT_SLICE_SECONDS, remaining))
            if task is None or task in swarm.get_completed_tasks():
                break


def _task_lines(task: Task) -> list[str]:
    result = task.result
    elapsed = f" time={result.execution_time_ms}ms" if result else ""
    lines = [
        f"Task {task.id}: status={task.status.value} priority={task.priority.name.lower()} "
        f"worker={task.assigned_worker_id or '-'} retries={task.retry_count}{elapsed}",
        f"  description: {task.description}",
        f"  capabilities: {', '.join(task.required_capabilities) or '-'}",
    ]
    if result is not None and result.output:
        lines.extend(f"  | {line}" for line in str(result.output).splitlines())
    if result is not None and result.error:
        lines.append(f"  error: {result.error}")
    return lines


@contextmanager
def _signal_handlers(stop: threading.Event) -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        # Signal handlers can only be installed in main thread.
        yield
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum: int, _: object | None) -> None:
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
