"""Worker runtime: admission control, task execution and performance tracking."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Protocol

from agent_swarm.orchestration.events import EventBus
from agent_swarm.orchestration.models import (
    QUALITY_SPEED_WINDOW_MS,
    Performance,
    Task,
    TaskResult,
    WorkerEvent,
    WorkerEventType,
    WorkerProfile,
    WorkerState,
    WorkerStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class WorkerBehavior(Protocol):
    """What a worker kind must provide; the runtime handles everything else."""

    profile: WorkerProfile

    def can_handle(self, task: Task) -> bool:
        """Return True if this worker kind accepts the task."""

    def execute_task(self, task: Task) -> TaskResult:
        """Run the task body and return its outcome. May block."""


class AgentWorker:
    """Runs tasks of one worker kind on background threads."""

    def __init__(self, behavior: WorkerBehavior) -> None:
        self.behavior = behavior
        self.profile = behavior.profile
        self.events: EventBus[WorkerEvent] = EventBus(f"worker:{self.profile.id}")
        self._lock = threading.Lock()
        self._current: dict[str, Task] = {}
        self._status = WorkerStatus.IDLE
        self._completed = 0
        self._failed = 0
        self._last_activity = utc_now()
        self._performance = Performance()

    @property
    def id(self) -> str:
        return self.profile.id

    def subscribe(self, listener: Callable[[WorkerEvent], None]) -> Callable[[], None]:
        return self.events.subscribe(listener)

    def can_handle(self, task: Task) -> bool:
        return self.behavior.can_handle(task)

    def assign_task(self, task: Task) -> bool:
        """Accept the task and start it in the background; False leaves no trace."""

        if not self.can_handle(task):
            return False

        with self._lock:
            if self._status == WorkerStatus.OFFLINE:
                return False
            if len(self._current) >= self.profile.max_concurrent_tasks:
                return False
            self._current[task.id] = task
            self._recompute_status_locked()
            self._last_activity = utc_now()
            task.mark_assigned(self.profile.id)

        logger.debug("Worker %s accepted task %s", self.profile.id, task.id)
        self.events.emit(
            WorkerEvent(type=WorkerEventType.TASK_ASSIGNED, worker_id=self.profile.id, task=task),
        )
        thread = threading.Thread(
            target=self._process_task,
            args=(task,),
            daemon=True,
            name=f"{self.profile.id}:{task.id}",
        )
        thread.start()
        return True

    def is_available(self) -> bool:
        with self._lock:
            if self._status == WorkerStatus.IDLE:
                return True
            return (
                self._status == WorkerStatus.BUSY
                and len(self._current) < self.profile.max_concurrent_tasks
            )

    def get_capability_score(self, required_capabilities: tuple[str, ...] | list[str]) -> float:
        """Mean weight of the required capabilities this worker has; 0 if none match."""

        total = 0.0
        matched = 0
        for name in required_capabilities:
            capability = self.profile.capability(name)
            if capability is None:
                continue
            total += capability.priority
            matched += 1
        return total / matched if matched else 0.0

    def current_load(self) -> float:
        with self._lock:
            return len(self._current) / self.profile.max_concurrent_tasks

    def get_current_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._current.values())

    def get_performance(self) -> Performance:
        with self._lock:
            return replace(self._performance)

    def get_state(self) -> WorkerState:
        with self._lock:
            return WorkerState(
                id=self.profile.id,
                status=self._status,
                current_tasks=list(self._current.values()),
                completed_tasks=self._completed,
                failed_tasks=self._failed,
                last_activity=self._last_activity,
                performance=replace(self._performance),
            )

    def mark_offline(self) -> None:
        """Refuse further assignments; running bodies are left to finish."""

        with self._lock:
            self._status = WorkerStatus.OFFLINE
            self._last_activity = utc_now()

    def _process_task(self, task: Task) -> None:
        started = time.monotonic()
        if not task.mark_in_progress():
            # Cancelled or timed out before the thread got to run.
            with self._lock:
                self._current.pop(task.id, None)
                self._recompute_status_locked()
            return

        self.events.emit(
            WorkerEvent(type=WorkerEventType.TASK_STARTED, worker_id=self.profile.id, task=task),
        )
        try:
            result = self.behavior.execute_task(task)
        except Exception as error:  # noqa: BLE001
            logger.exception("Worker %s failed on task %s", self.profile.id, task.id)
            result = TaskResult(success=False, error=str(error) or type(error).__name__)

        execution_time_ms = int((time.monotonic() - started) * 1000)
        result.execution_time_ms = execution_time_ms
        recorded = task.finish(result)
        if not recorded:
            logger.info(
                "Task %s finished on %s after it was already %s; result discarded",
                task.id,
                self.profile.id,
                task.status.value,
            )
        # A discarded result counts as a failure, matching the task's terminal record.
        succeeded = recorded and result.success

        with self._lock:
            self._current.pop(task.id, None)
            if succeeded:
                self._completed += 1
            else:
                self._failed += 1
            self._update_performance_locked(execution_time_ms)
            self._recompute_status_locked()
            self._last_activity = utc_now()

        event_type = (
            WorkerEventType.TASK_COMPLETED if succeeded else WorkerEventType.TASK_FAILED
        )
        self.events.emit(
            WorkerEvent(type=event_type, worker_id=self.profile.id, task=task, result=result),
        )

    def _update_performance_locked(self, execution_time_ms: int) -> None:
        total = self._completed + self._failed
        perf = self._performance
        perf.average_execution_time_ms = (
            perf.average_execution_time_ms * (total - 1) + execution_time_ms
        ) / total
        perf.success_rate = self._completed / total
        perf.task_completion_rate = self._completed / total
        speed_score = max(0.0, 1 - execution_time_ms / QUALITY_SPEED_WINDOW_MS)
        perf.quality_score = perf.success_rate * 0.7 + speed_score * 0.3

    def _recompute_status_locked(self) -> None:
        if self._status == WorkerStatus.OFFLINE:
            return
        running = len(self._current)
        if running == 0:
            self._status = WorkerStatus.IDLE
        elif running >= self.profile.max_concurrent_tasks:
            self._status = WorkerStatus.OVERLOADED
        else:
            self._status = WorkerStatus.BUSY
