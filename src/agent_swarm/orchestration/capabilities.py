"""Keyword-based capability inference for free-text task descriptions."""

from __future__ import annotations

GENERAL_CAPABILITY = "general_assistance"

_CAPABILITY_RULES: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        (
            "code",
            "program",
            "implement",
            "develop",
            "function",
            "class",
            "api",
            "bug",
            "debug",
            "refactor",
        ),
        ("code_generation", "code_analysis", "debugging"),
    ),
    (
        ("research", "analyze", "investigate", "find", "search", "information", "data", "report"),
        ("web_research", "data_analysis", "report_generation"),
    ),
    (
        ("file", "directory", "folder", "create", "edit", "modify"),
        ("file_operations",),
    ),
    (
        ("test", "testing", "unit test", "integration"),
        ("testing",),
    ),
    (
        ("document", "readme", "documentation", "comment"),
        ("documentation",),
    ),
)


def infer_capabilities(description: str) -> tuple[str, ...]:
    """Guess required capabilities from a description.

    Falls back to ``general_assistance`` when nothing matches.
    """

    haystack = description.lower()
    inferred: list[str] = []
    for keywords, capabilities in _CAPABILITY_RULES:
        if not any(keyword in haystack for keyword in keywords):
            continue
        for capability in capabilities:
            if capability not in inferred:
                inferred.append(capability)
    if not inferred:
        inferred.append(GENERAL_CAPABILITY)
    return tuple(inferred)


def normalize_capabilities(values: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Strip, lowercase and de-duplicate capability names, keeping order."""

    normalized: list[str] = []
    seen: set[str] = set()
    for value in values:
        name = value.strip().lower()
        if not name or name in seen:
            continue
        seen.add(name)
        normalized.append(name)
    return tuple(normalized)
