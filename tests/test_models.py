from __future__ import annotations

import allure
import pytest

from agent_swarm.orchestration.models import (
    RETRY_COUNT_KEY,
    CancellationToken,
    OrchestrationConfig,
    Task,
    TaskPriority,
    TaskResult,
    TaskStatus,
)

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Task Model"),
]


def test_priority_parse_is_case_insensitive() -> None:
    assert TaskPriority.parse("critical") is TaskPriority.CRITICAL
    assert TaskPriority.parse(" High ") is TaskPriority.HIGH
    assert TaskPriority.LOW < TaskPriority.MEDIUM < TaskPriority.HIGH < TaskPriority.CRITICAL


def test_priority_parse_rejects_unknown_name() -> None:
    with pytest.raises(ValueError, match="Unsupported task priority"):
        TaskPriority.parse("urgent")


def test_task_finish_is_first_writer_wins() -> None:
    task = Task(id="task-1", description="work")
    task.mark_assigned("worker-1")
    assert task.mark_in_progress()

    timed_out = TaskResult.failure("Task timed out")
    assert task.finish(timed_out, TaskStatus.FAILED)
    assert not task.finish(TaskResult(success=True, output="late"))

    assert task.status == TaskStatus.FAILED
    assert task.result is timed_out
    assert not task.mark_in_progress()


def test_task_finish_rejects_non_terminal_status() -> None:
    task = Task(id="task-1", description="work")

    with pytest.raises(ValueError, match="terminal status"):
        task.finish(TaskResult(success=True), TaskStatus.ASSIGNED)


def test_reset_for_retry_restores_pending_invariants() -> None:
    task = Task(id="task-1", description="work")
    task.mark_assigned("worker-1")
    task.mark_in_progress()
    task.finish(TaskResult.failure("boom"))
    old_token = task.cancel_token
    old_token.cancel("timeout")

    assert task.reset_for_retry() == 1

    assert task.status == TaskStatus.PENDING
    assert task.assigned_worker_id is None
    assert task.result is None
    assert task.context[RETRY_COUNT_KEY] == 1
    assert task.context["last_error"] == "boom"
    assert task.cancel_token is not old_token
    assert not task.cancel_token.cancelled


def test_cancellation_token_keeps_first_reason() -> None:
    token = CancellationToken()
    assert not token.wait(0)

    token.cancel("timeout")
    token.cancel("shutdown")

    assert token.cancelled
    assert token.reason == "timeout"
    assert token.wait(0)


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"max_concurrent_tasks": 0}, "max_concurrent_tasks"),
        ({"task_timeout_seconds": 0}, "task_timeout_seconds"),
        ({"retry_attempts": -1}, "retry_attempts"),
        ({"tick_interval_seconds": 0}, "tick_interval_seconds"),
        ({"shutdown_grace_seconds": -1}, "shutdown_grace_seconds"),
    ],
)
def test_orchestration_config_rejects_invalid_values(kwargs: dict, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        OrchestrationConfig(**kwargs)


def test_orchestration_config_defaults() -> None:
    config = OrchestrationConfig()

    assert config.max_concurrent_tasks == 10
    assert config.task_timeout_seconds == 300.0
    assert config.retry_attempts == 3
    assert config.load_balancing is True
    assert config.failover_enabled is True
