"""Tool-call batching for worker turns."""

from agent_swarm.tools.batch import DEFAULT_TOOL_CATEGORIES, BatchExecutionPlanner
from agent_swarm.tools.models import (
    BatchAnalysis,
    BatchResult,
    ToolCategory,
    ToolInvocation,
    ToolResult,
)

__all__ = [
    "DEFAULT_TOOL_CATEGORIES",
    "BatchAnalysis",
    "BatchExecutionPlanner",
    "BatchResult",
    "ToolCategory",
    "ToolInvocation",
    "ToolResult",
]
