"""Worker-turn boundary: the one call a worker makes to the language-model loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from agent_swarm.orchestration.models import Task, TaskResult
from agent_swarm.tools.batch import BatchExecutionPlanner
from agent_swarm.tools.models import ToolInvocation, ToolResult

logger = logging.getLogger(__name__)

TOOL_CALLS_CONTEXT_KEY = "tool_calls"


@dataclass(slots=True)
class TurnOutcome:
    """Messages and tool results produced by one worker turn."""

    messages: list[str] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)

    @property
    def failed_tools(self) -> list[ToolResult]:
        return [result for result in self.tool_results if not result.success]


class TurnRunner(Protocol):
    """Protocol implemented by worker-turn loops."""

    def __call__(self, prompt: str, *, task: Task) -> TurnOutcome:
        """Run one turn for the task and return its outcome."""


class EchoTurnRunner:
    """Deterministic local turn runner used by the CLI and tests.

    Echoes the prompt back. Tool names listed under ``task.context["tool_calls"]``
    are planned and run through the batch planner with a no-op tool executor,
    so the planner path is exercised without any real side effects.
    """

    def __init__(
        self,
        *,
        delay_seconds: float = 0.0,
        planner: BatchExecutionPlanner | None = None,
    ) -> None:
        self.delay_seconds = delay_seconds
        self.planner = planner or BatchExecutionPlanner()

    def __call__(self, prompt: str, *, task: Task) -> TurnOutcome:
        if self.delay_seconds > 0 and task.cancel_token.wait(self.delay_seconds):
            return TurnOutcome(
                messages=[f"[echo] turn cancelled: {task.cancel_token.reason}"],
                tool_results=[ToolResult(success=False, error="Turn cancelled")],
            )

        invocations = [
            ToolInvocation(id=f"{task.id}-tool-{index}", name=str(name))
            for index, name in enumerate(task.context.get(TOOL_CALLS_CONTEXT_KEY, ()), start=1)
        ]
        outcome = TurnOutcome(messages=[f"[echo] {prompt}"])
        if invocations:
            batch = self.planner.execute(invocations, _echo_tool, cancel_token=task.cancel_token)
            outcome.tool_results = batch.results
            outcome.messages.append(
                f"[echo] ran {batch.total_tools} tool(s): "
                f"parallel={batch.parallel_count} sequential={batch.sequential_count}",
            )
        return outcome


def _echo_tool(invocation: ToolInvocation) -> ToolResult:
    return ToolResult(success=True, output=f"{invocation.name} ok")


def run_worker_turn(
    turn_runner: TurnRunner,
    *,
    task: Task,
    prompt: str,
    worker_id: str,
    task_type: str,
) -> TaskResult:
    """Run one turn for a specialist worker and convert it into a task result."""

    logger.debug("Worker %s running %s turn for task %s", worker_id, task_type, task.id)
    outcome = turn_runner(prompt, task=task)
    metadata: dict[str, Any] = {
        "worker_id": worker_id,
        "task_type": task_type,
        "tool_calls": len(outcome.tool_results),
    }
    failed = outcome.failed_tools
    if failed:
        errors = "; ".join(result.error or "unknown error" for result in failed)
        return TaskResult(
            success=False,
            output="\n".join(outcome.messages),
            error=f"{len(failed)} tool call(s) failed: {errors}",
            metadata=metadata,
        )
    return TaskResult(success=True, output="\n".join(outcome.messages), metadata=metadata)
