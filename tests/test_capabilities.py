from __future__ import annotations

import allure

from agent_swarm.orchestration.capabilities import (
    GENERAL_CAPABILITY,
    infer_capabilities,
    normalize_capabilities,
)

pytestmark = [
    allure.epic("Task Orchestration"),
    allure.feature("Capability Routing"),
]


def test_infer_capabilities_for_coding_request() -> None:
    inferred = infer_capabilities("Implement a parser function and fix the bug")

    assert inferred[:3] == ("code_generation", "code_analysis", "debugging")


def test_infer_capabilities_merges_rules_without_duplicates() -> None:
    inferred = infer_capabilities("Research the API and write a report with unit test notes")

    assert "code_generation" in inferred
    assert "web_research" in inferred
    assert "report_generation" in inferred
    assert "testing" in inferred
    assert len(inferred) == len(set(inferred))


def test_infer_capabilities_falls_back_to_general() -> None:
    assert infer_capabilities("Say hello") == (GENERAL_CAPABILITY,)


def test_normalize_capabilities_strips_and_deduplicates() -> None:
    assert normalize_capabilities([" Code_Generation", "code_generation", "", "debugging"]) == (
        "code_generation",
        "debugging",
    )
