"""Plan and run the tool calls of one worker turn in safe concurrent batches.

Planning is a single left-to-right pass: an invocation joins the open batch
only if its category combines with every category already in it; otherwise
the batch is closed and a new one starts. Batches never reorder calls, so a
read requested after a write always observes the write.

Combinability:

- ``read`` combines with ``read``, ``compute`` and ``network``
- ``compute`` combines with ``read`` and ``compute``
- ``network`` combines with ``read`` only
- ``write`` and ``bash`` always run alone; unknown tools count as ``write``
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from agent_swarm.orchestration.models import CancellationToken
from agent_swarm.tools.models import (
    BatchAnalysis,
    BatchResult,
    ToolCategory,
    ToolInvocation,
    ToolResult,
)

logger = logging.getLogger(__name__)

ToolRunner = Callable[[ToolInvocation], ToolResult]
ExecutorFactory = Callable[[int], Executor]

READ_ONLY_TOOLS: tuple[str, ...] = (
    "view_file",
    "bash_read_only",
    "list_files",
    "search_files",
    "get_file_info",
)
WRITE_TOOLS: tuple[str, ...] = (
    "create_file",
    "str_replace_editor",
    "delete_file",
    "move_file",
    "copy_file",
)
COMPUTE_TOOLS: tuple[str, ...] = (
    "create_todo_list",
    "update_todo_list",
    "condense_conversation",
)
NETWORK_TOOLS: tuple[str, ...] = (
    "web_search",
    "api_call",
    "fetch_url",
)
BASH_TOOLS: tuple[str, ...] = (
    "bash",
    "execute_command",
    "run_script",
)

DEFAULT_TOOL_CATEGORIES: dict[str, ToolCategory] = {
    **dict.fromkeys(READ_ONLY_TOOLS, ToolCategory.READ),
    **dict.fromkeys(WRITE_TOOLS, ToolCategory.WRITE),
    **dict.fromkeys(COMPUTE_TOOLS, ToolCategory.COMPUTE),
    **dict.fromkeys(NETWORK_TOOLS, ToolCategory.NETWORK),
    **dict.fromkeys(BASH_TOOLS, ToolCategory.BASH),
}

_COMBINES_WITH: dict[ToolCategory, frozenset[ToolCategory]] = {
    ToolCategory.READ: frozenset({ToolCategory.READ, ToolCategory.COMPUTE, ToolCategory.NETWORK}),
    ToolCategory.COMPUTE: frozenset({ToolCategory.READ, ToolCategory.COMPUTE}),
    ToolCategory.NETWORK: frozenset({ToolCategory.READ}),
    ToolCategory.WRITE: frozenset(),
    ToolCategory.BASH: frozenset(),
}


def _thread_pool(size: int) -> Executor:
    return ThreadPoolExecutor(max_workers=size, thread_name_prefix="tool-batch")


class BatchExecutionPlanner:
    """Groups tool invocations into batches and executes them in order."""

    def __init__(
        self,
        *,
        categories: Mapping[str, ToolCategory] | None = None,
        executor_factory: ExecutorFactory = _thread_pool,
    ) -> None:
        self._categories = {**DEFAULT_TOOL_CATEGORIES, **(categories or {})}
        self._executor_factory = executor_factory

    def categorize(self, tool_name: str) -> ToolCategory:
        return self._categories.get(tool_name, ToolCategory.WRITE)

    def can_join(self, category: ToolCategory, batch_categories: Sequence[ToolCategory]) -> bool:
        if not batch_categories:
            return True
        allowed = _COMBINES_WITH[category]
        return all(existing in allowed for existing in batch_categories)

    def plan_indices(self, invocations: Sequence[ToolInvocation]) -> list[list[int]]:
        """Return batches as lists of positions into ``invocations``."""

        batches: list[list[int]] = []
        current: list[int] = []
        current_categories: list[ToolCategory] = []
        for index, invocation in enumerate(invocations):
            category = self.categorize(invocation.name)
            if not self.can_join(category, current_categories):
                batches.append(current)
                current, current_categories = [], []
            current.append(index)
            current_categories.append(category)
        if current:
            batches.append(current)
        return batches

    def plan(self, invocations: Sequence[ToolInvocation]) -> list[list[ToolInvocation]]:
        return [
            [invocations[index] for index in batch] for batch in self.plan_indices(invocations)
        ]

    def execute(
        self,
        invocations: Sequence[ToolInvocation],
        run: ToolRunner,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> BatchResult:
        """Run all invocations batch by batch; results keep invocation order."""

        started = time.monotonic()
        results: list[ToolResult | None] = [None] * len(invocations)
        plan = self.plan_indices(invocations)
        parallel_count = 0
        sequential_count = 0

        for batch in plan:
            if cancel_token is not None and cancel_token.cancelled:
                for index in batch:
                    results[index] = ToolResult(
                        success=False,
                        error=f"Cancelled before {invocations[index].name} started",
                    )
                continue

            if len(batch) == 1:
                index = batch[0]
                results[index] = self._run_single(invocations[index], run)
                sequential_count += 1
                continue

            batch_results = self._run_parallel([invocations[index] for index in batch], run)
            for index, result in zip(batch, batch_results, strict=True):
                results[index] = result
            parallel_count += len(batch)

        return BatchResult(
            results=[result for result in results if result is not None],
            execution_time_ms=int((time.monotonic() - started) * 1000),
            parallel_count=parallel_count,
            sequential_count=sequential_count,
            total_tools=len(invocations),
            batch_sizes=[len(batch) for batch in plan],
        )

    def analyze(self, invocations: Sequence[ToolInvocation]) -> BatchAnalysis:
        """Estimate the speed-up planning would give without running anything."""

        plan = self.plan_indices(invocations)
        parallel_batches = [batch for batch in plan if len(batch) > 1]
        parallelizable = sum(len(batch) for batch in parallel_batches)
        sequential = sum(len(batch) for batch in plan if len(batch) == 1)
        if parallelizable:
            speedup = len(invocations) / (sequential + len(parallel_batches))
        else:
            speedup = 1.0
        return BatchAnalysis(
            total_tools=len(invocations),
            parallelizable=parallelizable,
            sequential=sequential,
            estimated_speedup=round(speedup, 2),
        )

    def tool_categories(self) -> dict[ToolCategory, list[str]]:
        grouped: dict[ToolCategory, list[str]] = {category: [] for category in ToolCategory}
        for name, category in self._categories.items():
            grouped[category].append(name)
        return grouped

    def _run_single(self, invocation: ToolInvocation, run: ToolRunner) -> ToolResult:
        try:
            return run(invocation)
        except Exception as error:  # noqa: BLE001
            logger.exception("Tool %s (%s) raised", invocation.name, invocation.id)
            return ToolResult(
                success=False,
                error=f"Tool execution error for {invocation.name}: {error}",
            )

    def _run_parallel(
        self,
        batch: list[ToolInvocation],
        run: ToolRunner,
    ) -> list[ToolResult]:
        futures: list[Future[ToolResult]] = []
        try:
            executor = self._executor_factory(len(batch))
        except RuntimeError as error:
            logger.warning("Parallel dispatch failed, falling back to sequential: %s", error)
            return self._run_sequential_fallback(batch, run)

        with executor:
            try:
                for invocation in batch:
                    futures.append(executor.submit(run, invocation))
            except RuntimeError as error:
                logger.warning("Parallel dispatch failed, falling back to sequential: %s", error)
            # Calls that were dispatched finish on the pool; the rest run inline.
            results = [
                self._collect(future, invocation)
                for future, invocation in zip(futures, batch, strict=False)
            ]
        if len(results) < len(batch):
            results.extend(self._run_sequential_fallback(batch[len(results) :], run))
        return results

    def _collect(self, future: Future[ToolResult], invocation: ToolInvocation) -> ToolResult:
        try:
            return future.result()
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "Tool %s (%s) failed in batch: %s",
                invocation.name,
                invocation.id,
                error,
            )
            return ToolResult(
                success=False,
                error=f"Batch execution error for {invocation.name}: {error}",
            )

    def _run_sequential_fallback(
        self,
        batch: list[ToolInvocation],
        run: ToolRunner,
    ) -> list[ToolResult]:
        results: list[ToolResult] = []
        for invocation in batch:
            try:
                results.append(run(invocation))
            except Exception as error:  # noqa: BLE001
                results.append(
                    ToolResult(
                        success=False,
                        error=f"Sequential fallback error for {invocation.name}: {error}",
                    ),
                )
        return results
