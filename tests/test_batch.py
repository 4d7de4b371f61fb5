from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import allure
import pytest

from agent_swarm.orchestration.models import CancellationToken
from agent_swarm.tools.batch import BatchExecutionPlanner
from agent_swarm.tools.models import ToolCategory, ToolInvocation, ToolResult

pytestmark = [
    allure.epic("Tool Batching"),
    allure.feature("Batch Execution Planner"),
]


def _calls(*names: str) -> list[ToolInvocation]:
    return [ToolInvocation(id=f"call-{index}", name=name) for index, name in enumerate(names)]


def _ok(invocation: ToolInvocation) -> ToolResult:
    return ToolResult(success=True, output=invocation.id)


def test_read_write_read_plans_three_singletons() -> None:
    planner = BatchExecutionPlanner()

    assert planner.plan_indices(_calls("view_file", "create_file", "view_file")) == [
        [0],
        [1],
        [2],
    ]


@pytest.mark.parametrize(
    "names",
    [
        ("view_file", "list_files", "create_file", "search_files"),
        ("bash", "view_file", "view_file"),
        ("web_search", "str_replace_editor", "fetch_url", "view_file"),
        ("create_todo_list", "delete_file", "update_todo_list"),
    ],
)
def test_write_and_bash_always_run_alone(names: tuple[str, ...]) -> None:
    planner = BatchExecutionPlanner()
    invocations = _calls(*names)

    for batch in planner.plan(invocations):
        categories = {planner.categorize(invocation.name) for invocation in batch}
        if categories & {ToolCategory.WRITE, ToolCategory.BASH}:
            assert len(batch) == 1


def test_combinability_rules() -> None:
    planner = BatchExecutionPlanner()

    assert planner.plan_indices(_calls("view_file", "web_search", "create_todo_list")) == [
        [0, 1],
        [2],
    ]
    assert planner.plan_indices(_calls("create_todo_list", "view_file", "update_todo_list")) == [
        [0, 1, 2],
    ]
    assert planner.plan_indices(_calls("web_search", "fetch_url")) == [[0], [1]]


def test_unknown_tools_are_treated_as_writes() -> None:
    planner = BatchExecutionPlanner()

    assert planner.categorize("launch_rocket") == ToolCategory.WRITE
    assert planner.plan_indices(_calls("view_file", "launch_rocket", "view_file")) == [
        [0],
        [1],
        [2],
    ]


def test_category_overrides_extend_the_table() -> None:
    planner = BatchExecutionPlanner(categories={"read_logs": ToolCategory.READ})

    assert planner.plan_indices(_calls("read_logs", "view_file")) == [[0, 1]]


def test_parallel_batch_results_keep_invocation_order() -> None:
    second_done = threading.Event()
    third_done = threading.Event()
    finished: list[str] = []

    def _run(invocation: ToolInvocation) -> ToolResult:
        if invocation.id == "call-0":
            third_done.wait(5)
        elif invocation.id == "call-2":
            second_done.wait(5)
        finished.append(invocation.id)
        if invocation.id == "call-1":
            second_done.set()
        elif invocation.id == "call-2":
            third_done.set()
        return ToolResult(success=True, output=invocation.id)

    result = BatchExecutionPlanner().execute(
        _calls("view_file", "list_files", "search_files"),
        _run,
    )

    assert finished == ["call-1", "call-2", "call-0"]
    assert [item.output for item in result.results] == ["call-0", "call-1", "call-2"]
    assert result.parallel_count == 3
    assert result.sequential_count == 0
    assert result.total_tools == 3
    assert result.batch_sizes == [3]


def test_mixed_plan_counts_parallel_and_sequential() -> None:
    result = BatchExecutionPlanner().execute(
        _calls("view_file", "list_files", "create_file", "bash"),
        _ok,
    )

    assert [item.output for item in result.results] == ["call-0", "call-1", "call-2", "call-3"]
    assert result.parallel_count == 2
    assert result.sequential_count == 2
    assert result.batch_sizes == [2, 1, 1]
    assert result.execution_time_ms >= 0


def test_failure_in_parallel_batch_does_not_abort_siblings() -> None:
    def _run(invocation: ToolInvocation) -> ToolResult:
        if invocation.id == "call-1":
            raise OSError("permission denied")
        return _ok(invocation)

    result = BatchExecutionPlanner().execute(
        _calls("view_file", "list_files", "search_files"),
        _run,
    )

    assert [item.success for item in result.results] == [True, False, True]
    assert result.results[1].error == "Batch execution error for list_files: permission denied"


def test_failure_in_singleton_becomes_failed_result() -> None:
    def _run(invocation: ToolInvocation) -> ToolResult:
        raise ValueError("bad path")

    result = BatchExecutionPlanner().execute(_calls("create_file"), _run)

    assert result.results[0].success is False
    assert "bad path" in result.results[0].error


def test_dispatch_failure_falls_back_to_sequential() -> None:
    def _no_pool(_size: int) -> ThreadPoolExecutor:
        raise RuntimeError("can't start new thread")

    order: list[str] = []

    def _run(invocation: ToolInvocation) -> ToolResult:
        order.append(invocation.id)
        if invocation.id == "call-1":
            raise OSError("gone")
        return _ok(invocation)

    result = BatchExecutionPlanner(executor_factory=_no_pool).execute(
        _calls("view_file", "list_files", "search_files"),
        _run,
    )

    assert order == ["call-0", "call-1", "call-2"]
    assert [item.success for item in result.results] == [True, False, True]
    assert result.results[1].error == "Sequential fallback error for list_files: gone"


class _RejectingExecutor(ThreadPoolExecutor):
    """Accepts the first submission, then refuses like a shut-down pool."""

    def __init__(self, max_workers: int) -> None:
        super().__init__(max_workers=max_workers)
        self.submitted = 0

    def submit(self, fn, /, *args, **kwargs):
        if self.submitted >= 1:
            raise RuntimeError("cannot schedule new futures after shutdown")
        self.submitted += 1
        return super().submit(fn, *args, **kwargs)


def test_partial_dispatch_failure_runs_each_call_once() -> None:
    seen: list[str] = []
    lock = threading.Lock()

    def _run(invocation: ToolInvocation) -> ToolResult:
        with lock:
            seen.append(invocation.id)
        return _ok(invocation)

    result = BatchExecutionPlanner(executor_factory=_RejectingExecutor).execute(
        _calls("view_file", "list_files", "search_files"),
        _run,
    )

    assert sorted(seen) == ["call-0", "call-1", "call-2"]
    assert [item.output for item in result.results] == ["call-0", "call-1", "call-2"]


def test_cancelled_token_skips_remaining_batches() -> None:
    token = CancellationToken()

    def _run(invocation: ToolInvocation) -> ToolResult:
        token.cancel("timeout")
        return _ok(invocation)

    result = BatchExecutionPlanner().execute(
        _calls("create_file", "view_file", "list_files"),
        _run,
        cancel_token=token,
    )

    assert result.results[0].success is True
    assert [item.success for item in result.results[1:]] == [False, False]
    assert "Cancelled" in result.results[1].error
    assert result.total_tools == 3


def test_analyze_estimates_speedup() -> None:
    planner = BatchExecutionPlanner()

    analysis = planner.analyze(_calls("view_file", "list_files", "create_file"))
    assert (analysis.parallelizable, analysis.sequential) == (2, 1)
    assert analysis.estimated_speedup == 1.5

    sequential_only = planner.analyze(_calls("create_file", "bash"))
    assert sequential_only.estimated_speedup == 1.0
    assert sequential_only.parallelizable == 0


def test_tool_categories_lists_every_category() -> None:
    grouped = BatchExecutionPlanner().tool_categories()

    assert set(grouped) == set(ToolCategory)
    assert "view_file" in grouped[ToolCategory.READ]
    assert "bash" in grouped[ToolCategory.BASH]
    assert "fetch_url" in grouped[ToolCategory.NETWORK]
