"""Tool invocation and batch result contracts shared with the worker-turn loop."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolCategory(str, Enum):
    """Side-effect class of a tool, used to decide what may run concurrently."""

    READ = "read"
    WRITE = "write"
    COMPUTE = "compute"
    NETWORK = "network"
    BASH = "bash"


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """One tool call requested by a worker turn."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ToolResult:
    """Outcome of one tool call."""

    success: bool
    output: Any = None
    error: str | None = None


@dataclass(slots=True)
class BatchResult:
    """Results of a planned run, in invocation order."""

    results: list[ToolResult]
    execution_time_ms: int
    parallel_count: int
    sequential_count: int
    total_tools: int
    batch_sizes: list[int] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class BatchAnalysis:
    """Static estimate of how much a list of invocations can be parallelised."""

    total_tools: int
    parallelizable: int
    sequential: int
    estimated_speedup: float
