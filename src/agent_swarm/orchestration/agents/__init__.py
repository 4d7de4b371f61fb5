"""Built-in worker kinds and the default swarm wiring."""

from __future__ import annotations

from agent_swarm.orchestration.agents.coding import CODING_PROFILE, CodingWorker
from agent_swarm.orchestration.agents.coordinator import (
    COORDINATOR_PROFILE,
    CoordinatorWorker,
    Decomposer,
    SubtaskSpec,
    default_decomposer,
)
from agent_swarm.orchestration.agents.research import RESEARCH_PROFILE, ResearchWorker
from agent_swarm.orchestration.models import OrchestrationConfig
from agent_swarm.orchestration.swarm import Swarm
from agent_swarm.orchestration.turns import TurnRunner
from agent_swarm.orchestration.worker import AgentWorker


def build_default_workers(
    turn_runner: TurnRunner,
    *,
    decomposer: Decomposer = default_decomposer,
) -> list[AgentWorker]:
    """Coordinator first, then the specialists it delegates to."""

    coding = AgentWorker(CodingWorker(turn_runner))
    research = AgentWorker(ResearchWorker(turn_runner))
    coordinator = AgentWorker(CoordinatorWorker([coding, research], decomposer=decomposer))
    return [coordinator, coding, research]


def build_default_swarm(
    turn_runner: TurnRunner,
    config: OrchestrationConfig | None = None,
    *,
    decomposer: Decomposer = default_decomposer,
) -> Swarm:
    return Swarm(config, workers=build_default_workers(turn_runner, decomposer=decomposer))


__all__ = [
    "CODING_PROFILE",
    "COORDINATOR_PROFILE",
    "RESEARCH_PROFILE",
    "CodingWorker",
    "CoordinatorWorker",
    "Decomposer",
    "ResearchWorker",
    "SubtaskSpec",
    "build_default_swarm",
    "build_default_workers",
    "default_decomposer",
]
