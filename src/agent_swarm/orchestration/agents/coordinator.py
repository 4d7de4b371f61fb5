"""Coordinator worker: decomposes complex tasks and delegates to sub-workers."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from agent_swarm.orchestration.capabilities import infer_capabilities
from agent_swarm.orchestration.models import (
    Capability,
    Task,
    TaskResult,
    WorkerEvent,
    WorkerEventType,
    WorkerProfile,
    WorkerSpecialization,
)
from agent_swarm.orchestration.routing import find_best_worker
from agent_swarm.orchestration.worker import AgentWorker

logger = logging.getLogger(__name__)

DECOMPOSITION_KEYWORDS: tuple[str, ...] = (
    "analyze and implement",
    "create and test",
    "research and develop",
    "multiple files",
    "full project",
    "end-to-end",
    "comprehensive",
)
DECOMPOSITION_CAPABILITY_COUNT = 2
DECOMPOSITION_DESCRIPTION_CHARS = 200
CANCEL_POLL_SECONDS = 0.05

NO_WORKER_ERROR = "No suitable agent found for this task"
ASSIGN_FAILED_ERROR = "Failed to assign task to agent"

COORDINATOR_PROFILE = WorkerProfile(
    id="coordinator-001",
    name="Coordinator Agent",
    description="Splits complex tasks into subtasks and coordinates specialised workers.",
    specialization=WorkerSpecialization.COORDINATOR,
    max_concurrent_tasks=5,
    capabilities=(
        Capability(
            "task_decomposition",
            10,
            "Break complex tasks into manageable subtasks",
            ("create_todo_list", "update_todo_list"),
        ),
        Capability("agent_coordination", 10, "Coordinate work across specialised workers"),
        Capability("workflow_management", 9, "Manage task dependencies and execution order"),
    ),
)


@dataclass(frozen=True, slots=True)
class SubtaskSpec:
    """Description and capabilities of one planned subtask."""

    description: str
    required_capabilities: tuple[str, ...]


Decomposer = Callable[[Task], Sequence[SubtaskSpec]]


def default_decomposer(task: Task) -> list[SubtaskSpec]:
    """Two-step split: analyse the requirements, then do the work."""

    capabilities = task.required_capabilities or infer_capabilities(task.description)
    return [
        SubtaskSpec(f"Analyze requirements for: {task.description}", ("data_analysis",)),
        SubtaskSpec(f"Execute main work for: {task.description}", tuple(capabilities)),
    ]


def needs_decomposition(task: Task) -> bool:
    description = task.description.lower()
    return (
        len(task.required_capabilities) > DECOMPOSITION_CAPABILITY_COUNT
        or any(keyword in description for keyword in DECOMPOSITION_KEYWORDS)
        or len(task.description) > DECOMPOSITION_DESCRIPTION_CHARS
    )


class _SubtaskTracker:
    """Collects terminal results of delegated subtasks from sub-worker events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._done: dict[str, threading.Event] = {}
        self._results: dict[str, TaskResult] = {}

    def expect(self, task_id: str) -> None:
        with self._lock:
            self._done[task_id] = threading.Event()

    def resolve(self, task_id: str, result: TaskResult) -> None:
        with self._lock:
            done = self._done.get(task_id)
            if done is None or done.is_set():
                return
            self._results[task_id] = result
        done.set()

    def on_event(self, event: WorkerEvent) -> None:
        if event.type not in {WorkerEventType.TASK_COMPLETED, WorkerEventType.TASK_FAILED}:
            return
        result = event.task.result or event.result
        if result is not None:
            self.resolve(event.task.id, result)

    def wait(self, task_id: str, parent: Task) -> TaskResult | None:
        """Block until the subtask finishes; None if the parent was cancelled first."""

        with self._lock:
            done = self._done[task_id]
        while not done.wait(CANCEL_POLL_SECONDS):
            if parent.cancel_token.cancelled:
                return None
        with self._lock:
            return self._results[task_id]


class CoordinatorWorker:
    """Accepts every task and fans it out to the sub-workers it coordinates."""

    def __init__(
        self,
        sub_workers: Sequence[AgentWorker],
        *,
        decomposer: Decomposer = default_decomposer,
        profile: WorkerProfile = COORDINATOR_PROFILE,
    ) -> None:
        self.profile = profile
        self.sub_workers = list(sub_workers)
        self.decomposer = decomposer

    def can_handle(self, task: Task) -> bool:
        return True

    def execute_task(self, task: Task) -> TaskResult:
        decompose = needs_decomposition(task)
        if decompose:
            specs = list(self.decomposer(task))
            logger.info("Coordinator split task %s into %d subtasks", task.id, len(specs))
        else:
            specs = [SubtaskSpec(task.description, task.required_capabilities)]

        subtasks = [
            Task(
                id=f"{task.id}-sub-{index}",
                description=spec.description,
                priority=task.priority,
                required_capabilities=spec.required_capabilities,
                context={"parent_context": dict(task.context)},
                parent_task_id=task.id,
            )
            for index, spec in enumerate(specs, start=1)
        ]
        results = self._run_subtasks(task, subtasks)
        if results is None:
            for subtask in subtasks:
                subtask.cancel_token.cancel(task.cancel_token.reason or "cancelled")
            return TaskResult.failure(
                f"Cancelled while waiting for subtasks: {task.cancel_token.reason}",
            )
        if not decompose:
            only = results[subtasks[0].id]
            only.metadata = {**only.metadata, "delegated_task_id": subtasks[0].id}
            return only
        return aggregate_results(results)

    def _run_subtasks(self, parent: Task, subtasks: list[Task]) -> dict[str, TaskResult] | None:
        tracker = _SubtaskTracker()
        unsubscribers = [worker.subscribe(tracker.on_event) for worker in self.sub_workers]
        try:
            for subtask in subtasks:
                tracker.expect(subtask.id)
                worker = find_best_worker(subtask, self.sub_workers, load_balancing=False)
                if worker is None:
                    tracker.resolve(subtask.id, TaskResult.failure(NO_WORKER_ERROR))
                elif not worker.assign_task(subtask):
                    tracker.resolve(subtask.id, TaskResult.failure(ASSIGN_FAILED_ERROR))
                else:
                    logger.debug(
                        "Coordinator delegated %s to %s",
                        subtask.id,
                        worker.id,
                    )

            results: dict[str, TaskResult] = {}
            for subtask in subtasks:
                result = tracker.wait(subtask.id, parent)
                if result is None:
                    return None
                results[subtask.id] = result
            return results
        finally:
            for unsubscribe in unsubscribers:
                unsubscribe()


def aggregate_results(results: dict[str, TaskResult]) -> TaskResult:
    """Combine subtask results: all ok, a majority ok, or failed."""

    successful = [result for result in results.values() if result.success]
    failed = [result for result in results.values() if not result.success]
    total = len(results)
    metadata: dict[str, Any] = {
        "subtask_results": {
            task_id: {"success": result.success, "output": result.output, "error": result.error}
            for task_id, result in results.items()
        },
        "total_subtasks": total,
        "successful_subtasks": len(successful),
        "failed_subtasks": len(failed),
    }
    if not failed:
        return TaskResult(
            success=True,
            output=f"Task completed successfully. {len(successful)} subtasks completed.",
            metadata=metadata,
        )
    if len(successful) > len(failed):
        return TaskResult(
            success=True,
            output=f"Task partially completed. {len(successful)}/{total} subtasks successful.",
            error="Some subtasks failed: " + ", ".join(str(result.error) for result in failed),
            metadata=metadata,
        )
    return TaskResult(
        success=False,
        error=f"Task failed. {len(failed)}/{total} subtasks failed.",
        metadata=metadata,
    )
