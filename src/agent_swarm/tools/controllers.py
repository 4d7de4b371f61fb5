"""Controllers for tool planning CLI commands."""

from __future__ import annotations

from dataclasses import dataclass

from agent_swarm.tools.batch import BatchExecutionPlanner
from agent_swarm.tools.models import ToolInvocation


@dataclass(slots=True)
class ToolsPlanCommand:
    """CLI input for a dry-run batch plan."""

    tool_names: tuple[str, ...]


class ToolsCliController:
    """Renders batch plans and the tool category table."""

    def __init__(self, planner: BatchExecutionPlanner | None = None) -> None:
        self.planner = planner or BatchExecutionPlanner()

    def plan(self, command: ToolsPlanCommand) -> list[str]:
        invocations = [
            ToolInvocation(id=f"call-{index}", name=name)
            for index, name in enumerate(command.tool_names, start=1)
        ]
        lines: list[str] = []
        for number, batch in enumerate(self.planner.plan(invocations), start=1):
            mode = "parallel" if len(batch) > 1 else "sequential"
            calls = ", ".join(
                f"{invocation.name}[{self.planner.categorize(invocation.name).value}]"
                for invocation in batch
            )
            lines.append(f"Batch {number} ({mode}): {calls}")

        analysis = self.planner.analyze(invocations)
        lines.append(
            "Analysis: "
            f"total={analysis.total_tools} parallelizable={analysis.parallelizable} "
            f"sequential={analysis.sequential} estimated_speedup={analysis.estimated_speedup:.2f}x",
        )
        return lines

    def categories(self) -> list[str]:
        return [
            f"{category.value}: {', '.join(sorted(names)) or '-'}"
            for category, names in self.planner.tool_categories().items()
        ]
