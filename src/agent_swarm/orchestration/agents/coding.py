"""Coding worker: code generation, analysis, debugging, refactoring, docs and tests."""

from __future__ import annotations

from agent_swarm.orchestration.models import (
    Capability,
    Task,
    TaskResult,
    WorkerProfile,
    WorkerSpecialization,
)
from agent_swarm.orchestration.turns import TurnRunner, run_worker_turn

CODING_KEYWORDS: tuple[str, ...] = (
    "code",
    "program",
    "function",
    "class",
    "implement",
    "develop",
    "bug",
    "fix",
    "debug",
    "refactor",
    "optimize",
    "algorithm",
    "api",
    "library",
    "framework",
    "test",
    "unit test",
    "integration",
    "typescript",
    "javascript",
    "python",
    "java",
    "react",
    "node",
    "component",
    "module",
    "package",
    "dependency",
    "build",
    "compile",
)

_TASK_TYPES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("code_generation", ("create", "implement", "generate")),
    ("code_analysis", ("analyze", "review", "examine")),
    ("debugging", ("debug", "fix", "error")),
    ("refactoring", ("refactor", "optimize", "improve")),
    ("documentation", ("document", "comment", "readme")),
    ("testing", ("test",)),
)

_FOCUS = {
    "code_generation": "Generate the requested code and create the files it needs.",
    "code_analysis": "Analyze the code for quality, bugs, performance and security issues.",
    "debugging": "Find the root cause, fix it and verify the fix.",
    "refactoring": "Refactor while preserving behavior.",
    "documentation": "Write clear documentation for the code in question.",
    "testing": "Write the tests, run them and report the failures.",
    "generic": "Complete the programming task.",
}

CODING_PROFILE = WorkerProfile(
    id="coding-001",
    name="Coding Agent",
    description="Software development and programming tasks.",
    specialization=WorkerSpecialization.CODING,
    max_concurrent_tasks=3,
    capabilities=(
        Capability(
            "code_generation",
            10,
            "Generate new code, functions, classes and modules",
            ("create_file", "str_replace_editor", "view_file"),
        ),
        Capability(
            "code_analysis",
            9,
            "Analyze existing code for bugs, performance and best practices",
            ("view_file", "search_files", "bash_read_only"),
        ),
        Capability(
            "refactoring",
            9,
            "Restructure code to improve readability and maintainability",
            ("view_file", "str_replace_editor"),
        ),
        Capability(
            "debugging",
            8,
            "Identify and fix bugs",
            ("view_file", "str_replace_editor", "bash"),
        ),
        Capability(
            "documentation",
            7,
            "Write code documentation, comments and README files",
            ("create_file", "str_replace_editor"),
        ),
        Capability(
            "testing",
            8,
            "Write and run unit and integration tests",
            ("create_file", "str_replace_editor", "bash"),
        ),
        Capability(
            "file_operations",
            6,
            "Create, edit, move and inspect project files",
            ("create_file", "str_replace_editor", "move_file", "list_files"),
        ),
    ),
)


def identify_coding_task_type(description: str) -> str:
    lowered = description.lower()
    for task_type, keywords in _TASK_TYPES:
        if any(keyword in lowered for keyword in keywords):
            return task_type
    return "generic"


class CodingWorker:
    """Accepts programming tasks and runs one coding turn per task."""

    def __init__(self, turn_runner: TurnRunner, profile: WorkerProfile = CODING_PROFILE) -> None:
        self.profile = profile
        self.turn_runner = turn_runner

    def can_handle(self, task: Task) -> bool:
        description = task.description.lower()
        if any(keyword in description for keyword in CODING_KEYWORDS):
            return True
        return self.profile.has_any_capability(task.required_capabilities)

    def execute_task(self, task: Task) -> TaskResult:
        task_type = identify_coding_task_type(task.description)
        prompt = (
            f"You are the {self.profile.name}.\n\n"
            f"TASK: {task.description}\n\n"
            f"{_FOCUS[task_type]}"
        )
        return run_worker_turn(
            self.turn_runner,
            task=task,
            prompt=prompt,
            worker_id=self.profile.id,
            task_type=task_type,
        )
