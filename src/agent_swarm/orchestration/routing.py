"""Capability-based worker selection and task complexity classification."""

from __future__ import annotations

from collections.abc import Iterable

from agent_swarm.orchestration.models import Task
from agent_swarm.orchestration.worker import AgentWorker

COMPLEXITY_KEYWORDS: tuple[str, ...] = ("multiple", "complex", "comprehensive", "end-to-end")
COMPLEX_CAPABILITY_COUNT = 2
COMPLEX_DESCRIPTION_CHARS = 200
COMPLEX_MIN_INDICATORS = 2
LOAD_PENALTY = 0.5


def complexity_indicators(task: Task) -> list[bool]:
    """Evaluate the three complexity heuristics; any keyword counts once."""

    description = task.description.lower()
    return [
        len(task.required_capabilities) > COMPLEX_CAPABILITY_COUNT,
        len(task.description) > COMPLEX_DESCRIPTION_CHARS,
        any(keyword in description for keyword in COMPLEXITY_KEYWORDS),
    ]


def is_complex(task: Task) -> bool:
    """True when at least two complexity indicators hold."""

    return sum(complexity_indicators(task)) >= COMPLEX_MIN_INDICATORS


def routing_score(worker: AgentWorker, task: Task, *, load_balancing: bool) -> float:
    """Capability score, discounted by current load when load balancing is on."""

    score = worker.get_capability_score(task.required_capabilities)
    if load_balancing:
        score *= 1 - worker.current_load() * LOAD_PENALTY
    return score


def find_best_worker(
    task: Task,
    workers: Iterable[AgentWorker],
    *,
    load_balancing: bool,
    exclude: AgentWorker | None = None,
) -> AgentWorker | None:
    """Pick the available worker with the highest positive routing score.

    ``workers`` must be iterated in a stable order; on equal scores the first
    candidate wins.
    """

    best: AgentWorker | None = None
    best_score = 0.0
    for worker in workers:
        if worker is exclude or not worker.is_available():
            continue
        score = routing_score(worker, task, load_balancing=load_balancing)
        if score > best_score:
            best_score = score
            best = worker
    return best
