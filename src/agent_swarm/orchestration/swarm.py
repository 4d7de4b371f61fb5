"""In-process task scheduler that routes tasks to registered workers.

The pending queue, active set and completed set are guarded by one re-entrant
lock. A scheduler thread exists only while there is work: it is started by
``submit_task`` and exits, after emitting ``swarm_idle`` once, as soon as both
the pending queue and the active set are empty.

Timeouts are not preemptive. A timed-out task is recorded as FAILED, its slot
is freed and its cancel token is signalled, but the task body keeps running
until it returns; its late result is discarded.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from agent_swarm.orchestration.events import EventBus
from agent_swarm.orchestration.models import (
    OrchestrationConfig,
    SwarmEvent,
    SwarmEventType,
    SwarmStatus,
    Task,
    TaskPriority,
    TaskResult,
    TaskStatus,
    WorkerEvent,
    WorkerEventType,
    WorkerSpecialization,
    WorkerState,
    utc_now,
)
from agent_swarm.orchestration.routing import find_best_worker, is_complex
from agent_swarm.orchestration.worker import AgentWorker

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Task timed out"
SHUTDOWN_ERROR = "Task cancelled during shutdown"


class Swarm:
    """Priority queue plus admission loop over a pool of workers."""

    def __init__(
        self,
        config: OrchestrationConfig | None = None,
        *,
        workers: Iterable[AgentWorker] = (),
    ) -> None:
        self.config = config or OrchestrationConfig()
        self.events: EventBus[SwarmEvent] = EventBus("swarm")
        self._lock = threading.RLock()
        self._wakeup = threading.Condition(self._lock)
        self._workers: dict[str, AgentWorker] = {}
        self._subscriptions: dict[AgentWorker, Callable[[], None]] = {}
        self._coordinator_id: str | None = None
        self._tasks: dict[str, Task] = {}
        self._pending: list[Task] = []
        self._active: dict[str, Task] = {}
        self._completed: dict[str, Task] = {}
        self._ids = itertools.count(1)
        self._running = False
        self._accepting = True
        self._thread: threading.Thread | None = None
        for worker in workers:
            self.register_worker(worker)

    # Workers

    def register_worker(self, worker: AgentWorker) -> None:
        with self._lock:
            if worker.id in self._workers:
                raise ValueError(f"Worker already registered: {worker.id}")
            self._workers[worker.id] = worker
            if worker not in self._subscriptions:
                self._subscriptions[worker] = worker.subscribe(self._on_worker_event)
            if (
                self._coordinator_id is None
                and worker.profile.specialization == WorkerSpecialization.COORDINATOR
            ):
                self._coordinator_id = worker.id
            logger.info("Registered worker %s (%s)", worker.id, worker.profile.name)
            self._emit(
                SwarmEventType.WORKER_REGISTERED,
                worker_id=worker.id,
                data={
                    "name": worker.profile.name,
                    "specialization": worker.profile.specialization.value,
                },
            )

    def deregister_worker(self, worker_id: str) -> bool:
        """Remove a worker and mark it offline; its running tasks still report back."""

        with self._lock:
            worker = self._workers.pop(worker_id, None)
            if worker is None:
                return False
            worker.mark_offline()
            if not worker.get_current_tasks():
                unsubscribe = self._subscriptions.pop(worker, None)
                if unsubscribe is not None:
                    unsubscribe()
            if self._coordinator_id == worker_id:
                self._coordinator_id = next(
                    (
                        candidate.id
                        for candidate in self._workers.values()
                        if candidate.profile.specialization == WorkerSpecialization.COORDINATOR
                    ),
                    None,
                )
            logger.info("Deregistered worker %s", worker_id)
            self._emit(SwarmEventType.WORKER_DEREGISTERED, worker_id=worker_id)
            return True

    @property
    def coordinator(self) -> AgentWorker | None:
        with self._lock:
            if self._coordinator_id is None:
                return None
            return self._workers.get(self._coordinator_id)

    # Submission and queries

    def submit_task(
        self,
        description: str,
        required_capabilities: Iterable[str] = (),
        priority: TaskPriority | int = TaskPriority.MEDIUM,
        context: Mapping[str, Any] | None = None,
    ) -> str:
        """Enqueue a task and start the scheduler if it is dormant."""

        with self._lock:
            task = Task(
                id=f"task-{next(self._ids)}",
                description=description,
                priority=TaskPriority(priority),
                required_capabilities=tuple(dict.fromkeys(required_capabilities)),
                context=dict(context or {}),
            )
            self._tasks[task.id] = task
            self._pending.append(task)
            self._emit(
                SwarmEventType.TASK_CREATED,
                task_id=task.id,
                data={
                    "priority": task.priority.name.lower(),
                    "required_capabilities": list(task.required_capabilities),
                },
            )
            if not self._accepting:
                logger.warning("Swarm is shut down; task %s stays pending", task.id)
                return task.id
            self._ensure_running_locked()
            self._wakeup.notify_all()
            return task.id

    def get_task(self, task_id: str) -> Task | None:
        with self._lock:
            return self._tasks.get(task_id)

    def get_active_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._active.values())

    def get_pending_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._pending)

    def get_completed_tasks(self) -> list[Task]:
        with self._lock:
            return list(self._completed.values())

    def get_workers(self) -> list[AgentWorker]:
        with self._lock:
            return list(self._workers.values())

    def get_worker_states(self) -> list[WorkerState]:
        return [worker.get_state() for worker in self.get_workers()]

    def get_status(self) -> SwarmStatus:
        with self._lock:
            return SwarmStatus(
                is_running=self._running,
                active_tasks=len(self._active),
                pending_tasks=len(self._pending),
                completed_tasks=len(self._completed),
                registered_workers=len(self._workers),
            )

    def subscribe(self, listener: Callable[[SwarmEvent], None]) -> Callable[[], None]:
        """Listen to swarm events.

        Listeners are called with the swarm lock held, in emission order. They
        may query the swarm but should return quickly.
        """

        return self.events.subscribe(listener)

    def wait_for_task(self, task_id: str, timeout: float | None = None) -> Task | None:
        """Block until the task has settled in the completed set; None if unknown.

        A failed attempt that is about to be retried does not count as settled.
        """

        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            self._wakeup.wait_for(lambda: task.id in self._completed, timeout)
            return task

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        with self._lock:
            return self._wakeup.wait_for(lambda: not self._running, timeout)

    # Shutdown

    def shutdown(self, grace_seconds: float | None = None) -> None:
        """Stop admitting, let active tasks finish, then cancel the rest."""

        grace = self.config.shutdown_grace_seconds if grace_seconds is None else grace_seconds
        deadline = time.monotonic() + grace
        with self._lock:
            self._accepting = False
            while self._active:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._wakeup.wait(remaining)

            for task in list(self._active.values()):
                self._cancel_active_locked(task)
            if self._pending:
                logger.warning(
                    "Dropping %d pending task(s) on shutdown: %s",
                    len(self._pending),
                    ", ".join(task.id for task in self._pending),
                )
                self._pending.clear()
            worker_ids = list(self._workers)
            thread = self._thread
            self._wakeup.notify_all()

        for worker_id in worker_ids:
            self.deregister_worker(worker_id)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.tick_interval_seconds * 10)
        logger.info("Swarm shut down")

    # Scheduler loop

    def _ensure_running_locked(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run_loop, name="swarm-scheduler", daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        with self._lock:
            while True:
                if not self._pending and not self._active:
                    self._running = False
                    self._thread = None
                    logger.debug("Swarm idle")
                    self._emit(SwarmEventType.SWARM_IDLE)
                    self._wakeup.notify_all()
                    return
                if self._accepting:
                    self._admit_locked()
                self._signal_overload_locked()
                self._sweep_timeouts_locked()
                self._wakeup.wait(self.config.tick_interval_seconds)

    def _admit_locked(self) -> None:
        # list.sort is stable, so equal priorities keep submission order.
        self._pending.sort(key=lambda task: task.priority, reverse=True)
        while self._pending and len(self._active) < self.config.max_concurrent_tasks:
            task = self._pending.pop(0)
            worker = self._route_locked(task)
            if worker is None:
                # Head-of-line blocking: nothing may overtake an unroutable task.
                self._pending.insert(0, task)
                logger.debug("No worker available for task %s; waiting", task.id)
                return
            self._active[task.id] = task
            self._emit(SwarmEventType.TASK_ASSIGNED, worker_id=worker.id, task_id=task.id)

    def _route_locked(self, task: Task) -> AgentWorker | None:
        coordinator = self.coordinator
        if coordinator is not None and is_complex(task) and coordinator.assign_task(task):
            return coordinator
        worker = find_best_worker(
            task,
            self._workers.values(),
            load_balancing=self.config.load_balancing,
            exclude=coordinator,
        )
        if worker is not None and worker.assign_task(task):
            return worker
        return None

    def _signal_overload_locked(self) -> None:
        if self._pending and len(self._active) >= self.config.max_concurrent_tasks:
            self._emit(
                SwarmEventType.SWARM_OVERLOADED,
                data={"pending_tasks": len(self._pending), "active_tasks": len(self._active)},
            )

    def _sweep_timeouts_locked(self) -> None:
        now = utc_now()
        for task in list(self._active.values()):
            elapsed = (now - task.updated_at).total_seconds()
            if elapsed <= self.config.task_timeout_seconds:
                continue
            result = TaskResult(
                success=False,
                error=TIMEOUT_ERROR,
                execution_time_ms=int(elapsed * 1000),
                metadata={"reason": "timeout"},
            )
            if not task.finish(result, TaskStatus.FAILED):
                # Already finished; its completion event is on the way.
                continue
            task.cancel_token.cancel("timeout")
            del self._active[task.id]
            self._completed[task.id] = task
            logger.warning(
                "Task %s timed out after %.1fs on %s",
                task.id,
                elapsed,
                task.assigned_worker_id,
            )
            self._emit(
                SwarmEventType.TASK_FAILED,
                worker_id=task.assigned_worker_id,
                task_id=task.id,
                data={"reason": "timeout", "error": TIMEOUT_ERROR},
            )
            self._wakeup.notify_all()

    def _cancel_active_locked(self, task: Task) -> None:
        cancelled = task.finish(
            TaskResult(success=False, error=SHUTDOWN_ERROR, metadata={"reason": "shutdown"}),
            TaskStatus.CANCELLED,
        )
        del self._active[task.id]
        self._completed[task.id] = task
        if not cancelled:
            # Finished as the grace period ran out; its worker event is still queued.
            self._emit_outcome_locked(task, task.assigned_worker_id)
            return
        task.cancel_token.cancel("shutdown")
        logger.warning("Task %s cancelled by shutdown (status %s)", task.id, task.status.value)
        self._emit(
            SwarmEventType.TASK_FAILED,
            worker_id=task.assigned_worker_id,
            task_id=task.id,
            data={"reason": "shutdown", "error": task.result.error if task.result else None},
        )

    # Worker events

    def _on_worker_event(self, event: WorkerEvent) -> None:
        if event.type not in {WorkerEventType.TASK_COMPLETED, WorkerEventType.TASK_FAILED}:
            return
        with self._lock:
            task = self._active.get(event.task.id)
            if task is not event.task:
                # Timed out, cancelled, or a subtask delegated by the coordinator.
                return
            del self._active[task.id]
            if task.status != TaskStatus.COMPLETED and self._should_retry(task):
                error = task.result.error if task.result else None
                retry_count = task.reset_for_retry()
                self._pending.append(task)
                logger.info(
                    "Retrying task %s (%d/%d) after failure on %s: %s",
                    task.id,
                    retry_count,
                    self.config.retry_attempts,
                    event.worker_id,
                    error,
                )
            else:
                self._completed[task.id] = task
                self._emit_outcome_locked(task, event.worker_id)
            self._wakeup.notify_all()

    def _emit_outcome_locked(self, task: Task, worker_id: str | None) -> None:
        if task.status == TaskStatus.COMPLETED:
            self._emit(
                SwarmEventType.TASK_COMPLETED,
                worker_id=worker_id,
                task_id=task.id,
                data={"execution_time_ms": task.result.execution_time_ms if task.result else 0},
            )
            return
        error = task.result.error if task.result else None
        logger.warning("Task %s failed on %s: %s", task.id, worker_id, error)
        self._emit(
            SwarmEventType.TASK_FAILED,
            worker_id=worker_id,
            task_id=task.id,
            data={"reason": "error", "error": error, "retry_count": task.retry_count},
        )

    def _should_retry(self, task: Task) -> bool:
        attempts = self.config.retry_attempts
        return attempts > 0 and task.retry_count < attempts

    def _emit(
        self,
        event_type: SwarmEventType,
        *,
        worker_id: str | None = None,
        task_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        self.events.emit(
            SwarmEvent(type=event_type, worker_id=worker_id, task_id=task_id, data=data or {}),
        )
