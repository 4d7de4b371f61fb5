"""Research worker: information gathering, analysis and reporting."""

from __future__ import annotations

from agent_swarm.orchestration.capabilities import GENERAL_CAPABILITY
from agent_swarm.orchestration.models import (
    Capability,
    Task,
    TaskResult,
    WorkerProfile,
    WorkerSpecialization,
)
from agent_swarm.orchestration.turns import TurnRunner, run_worker_turn

RESEARCH_KEYWORDS: tuple[str, ...] = (
    "research",
    "analyze",
    "investigate",
    "study",
    "examine",
    "explore",
    "find information",
    "gather data",
    "search",
    "lookup",
    "discover",
    "compare",
    "evaluate",
    "assess",
    "review",
    "survey",
    "report",
    "documentation",
    "api docs",
    "examples",
    "tutorials",
    "guides",
    "best practices",
    "trends",
    "market analysis",
    "competitive analysis",
    "fact check",
    "verify",
    "validate",
    "sources",
    "references",
)

_TASK_TYPES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("web_research", ("web", "online", "internet")),
    ("documentation_research", ("documentation", "api", "docs")),
    ("data_analysis", ("analyze", "analysis", "data")),
    ("competitive_analysis", ("competitor", "competitive", "market")),
    ("fact_checking", ("fact", "verify", "validate")),
    ("report_generation", ("report", "summary", "document")),
)

RESEARCH_PROFILE = WorkerProfile(
    id="research-001",
    name="Research Agent",
    description="Information gathering, analysis and research tasks.",
    specialization=WorkerSpecialization.RESEARCH,
    max_concurrent_tasks=4,
    capabilities=(
        Capability("web_research", 10, "Search and gather information from web sources", ("bash",)),
        Capability(
            "data_analysis",
            9,
            "Analyze and synthesize information from multiple sources",
            ("view_file", "create_file"),
        ),
        Capability(
            "documentation_research",
            9,
            "Research technical documentation and APIs",
            ("view_file", "bash"),
        ),
        Capability(
            "competitive_analysis",
            8,
            "Analyze competitors and market trends",
            ("create_file", "bash"),
        ),
        Capability(
            "fact_checking",
            8,
            "Verify information accuracy and credibility",
            ("bash", "view_file"),
        ),
        Capability(
            "report_generation",
            7,
            "Generate research reports",
            ("create_file", "str_replace_editor"),
        ),
        # Catch-all for tasks whose capabilities could not be inferred.
        Capability(GENERAL_CAPABILITY, 5, "Answer general questions"),
    ),
)


def identify_research_task_type(description: str) -> str:
    lowered = description.lower()
    for task_type, keywords in _TASK_TYPES:
        if any(keyword in lowered for keyword in keywords):
            return task_type
    return "general_research"


class ResearchWorker:
    """Accepts research tasks and runs one research turn per task."""

    def __init__(self, turn_runner: TurnRunner, profile: WorkerProfile = RESEARCH_PROFILE) -> None:
        self.profile = profile
        self.turn_runner = turn_runner

    def can_handle(self, task: Task) -> bool:
        description = task.description.lower()
        if any(keyword in description for keyword in RESEARCH_KEYWORDS):
            return True
        return self.profile.has_any_capability(task.required_capabilities)

    def execute_task(self, task: Task) -> TaskResult:
        task_type = identify_research_task_type(task.description)
        prompt = (
            f"You are the {self.profile.name}.\n\n"
            f"TASK: {task.description}\n\n"
            "Gather information from reliable sources, cross-check it and summarize the findings."
        )
        return run_worker_turn(
            self.turn_runner,
            task=task,
            prompt=prompt,
            worker_id=self.profile.id,
            task_type=task_type,
        )
