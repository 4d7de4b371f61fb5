"""Domain models for the agent swarm task queue and worker pool."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any

RETRY_COUNT_KEY = "retry_count"
QUALITY_SPEED_WINDOW_MS = 60_000


def utc_now() -> datetime:
    """Current UTC timestamp."""

    return datetime.now(tz=UTC)


class TaskPriority(IntEnum):
    """Admission priority; higher value is admitted first."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def parse(cls, value: str) -> TaskPriority:
        """Resolve a priority by case-insensitive name."""

        try:
            return cls[value.strip().upper()]
        except KeyError as error:
            names = ", ".join(member.name.lower() for member in cls)
            raise ValueError(
                f"Unsupported task priority: {value!r}. Use one of {names}.",
            ) from error


class TaskStatus(str, Enum):
    """In-memory task lifecycle states."""

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})


class WorkerStatus(str, Enum):
    """Worker runtime status."""

    IDLE = "idle"
    BUSY = "busy"
    OVERLOADED = "overloaded"
    ERROR = "error"
    OFFLINE = "offline"


class WorkerSpecialization(str, Enum):
    """Kinds of workers known to the swarm."""

    COORDINATOR = "coordinator"
    CODING = "coding"
    RESEARCH = "research"
    FILESYSTEM = "filesystem"
    TESTING = "testing"
    SECURITY = "security"
    GENERAL = "general"


class SwarmEventType(str, Enum):
    """Event types published on the swarm event stream."""

    WORKER_REGISTERED = "worker_registered"
    WORKER_DEREGISTERED = "worker_deregistered"
    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"
    SWARM_OVERLOADED = "swarm_overloaded"
    SWARM_IDLE = "swarm_idle"


class WorkerEventType(str, Enum):
    """Event types published by a single worker."""

    TASK_ASSIGNED = "task_assigned"
    TASK_STARTED = "task_started"
    TASK_COMPLETED = "task_completed"
    TASK_FAILED = "task_failed"


class CancellationToken:
    """Cooperative cancellation flag handed to a running task body."""

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout elapses; return the cancelled flag."""

        return self._event.wait(timeout)


@dataclass(frozen=True, slots=True)
class Capability:
    """Named skill a worker advertises, weighted for routing."""

    name: str
    priority: float
    description: str = ""
    tools: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class WorkerProfile:
    """Static worker identity and capacity."""

    id: str
    name: str
    capabilities: tuple[Capability, ...]
    max_concurrent_tasks: int
    description: str = ""
    specialization: WorkerSpecialization = WorkerSpecialization.GENERAL

    def capability(self, name: str) -> Capability | None:
        for capability in self.capabilities:
            if capability.name == name:
                return capability
        return None

    def has_any_capability(self, names: tuple[str, ...] | list[str]) -> bool:
        return any(self.capability(name) is not None for name in names)


@dataclass(slots=True)
class TaskResult:
    """Outcome of one task execution."""

    success: bool
    output: Any = None
    error: str | None = None
    execution_time_ms: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, error: str, **metadata: Any) -> TaskResult:
        return cls(success=False, error=error, metadata=dict(metadata))


@dataclass(slots=True)
class Task:
    """Unit of work tracked by the swarm.

    Status transitions go through the ``mark_*``/``finish`` helpers so that the
    scheduler thread and the executing worker thread never interleave partial
    updates. Terminal transitions are first-writer-wins.
    """

    id: str
    description: str
    priority: TaskPriority = TaskPriority.MEDIUM
    required_capabilities: tuple[str, ...] = ()
    context: dict[str, Any] = field(default_factory=dict)
    status: TaskStatus = TaskStatus.PENDING
    assigned_worker_id: str | None = None
    result: TaskResult | None = None
    parent_task_id: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    cancel_token: CancellationToken = field(
        default_factory=CancellationToken,
        repr=False,
        compare=False,
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def retry_count(self) -> int:
        return int(self.context.get(RETRY_COUNT_KEY, 0) or 0)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_assigned(self, worker_id: str) -> None:
        with self._lock:
            self.assigned_worker_id = worker_id
            self.status = TaskStatus.ASSIGNED
            self.updated_at = utc_now()

    def mark_in_progress(self) -> bool:
        with self._lock:
            if self.status in TERMINAL_STATUSES:
                return False
            self.status = TaskStatus.IN_PROGRESS
            self.updated_at = utc_now()
            return True

    def finish(self, result: TaskResult, status: TaskStatus | None = None) -> bool:
        """Store a terminal result; return False if the task was already terminal."""

        with self._lock:
            if self.status in TERMINAL_STATUSES:
                return False
            if status is None:
                status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
            if status not in TERMINAL_STATUSES:
                raise ValueError(f"Task can only finish with a terminal status, got {status!r}")
            self.result = result
            self.status = status
            self.updated_at = utc_now()
            return True

    def reset_for_retry(self) -> int:
        """Return the task to PENDING for another attempt; return the new retry count."""

        with self._lock:
            retry_count = self.retry_count + 1
            self.context[RETRY_COUNT_KEY] = retry_count
            if self.result is not None and self.result.error:
                self.context["last_error"] = self.result.error
            self.status = TaskStatus.PENDING
            self.assigned_worker_id = None
            self.result = None
            self.cancel_token = CancellationToken()
            self.updated_at = utc_now()
            return retry_count


@dataclass(slots=True)
class Performance:
    """Rolling per-worker execution metrics."""

    average_execution_time_ms: float = 0.0
    success_rate: float = 1.0
    task_completion_rate: float = 1.0
    quality_score: float = 1.0


@dataclass(slots=True)
class WorkerState:
    """Snapshot of a worker's runtime state."""

    id: str
    status: WorkerStatus
    current_tasks: list[Task]
    completed_tasks: int
    failed_tasks: int
    last_activity: datetime
    performance: Performance


@dataclass(frozen=True, slots=True)
class OrchestrationConfig:
    """Per-swarm immutable configuration."""

    max_concurrent_tasks: int = 10
    task_timeout_seconds: float = 300.0
    retry_attempts: int = 3
    load_balancing: bool = True
    failover_enabled: bool = True
    tick_interval_seconds: float = 0.1
    shutdown_grace_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_concurrent_tasks <= 0:
            raise ValueError("max_concurrent_tasks must be > 0.")
        if self.task_timeout_seconds <= 0:
            raise ValueError("task_timeout_seconds must be > 0.")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts must be >= 0.")
        if self.tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be > 0.")
        if self.shutdown_grace_seconds < 0:
            raise ValueError("shutdown_grace_seconds must be >= 0.")


@dataclass(frozen=True, slots=True)
class SwarmEvent:
    """One entry of the swarm event stream."""

    type: SwarmEventType
    worker_id: str | None = None
    task_id: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True, slots=True)
class WorkerEvent:
    """Lifecycle notification emitted by one worker."""

    type: WorkerEventType
    worker_id: str
    task: Task
    result: TaskResult | None = None


@dataclass(frozen=True, slots=True)
class SwarmStatus:
    """Aggregate counters returned by ``Swarm.get_status``."""

    is_running: bool
    active_tasks: int
    pending_tasks: int
    completed_tasks: int
    registered_workers: int
