"""Tests for the agentic design pattern catalog."""

from __future__ import annotations

import pytest

from agent_wizard.models.enums import AgentRole
from agent_wizard.patterns import (
    ALL_PATTERNS,
    CORE_PATTERNS,
    REASONING_PATTERNS,
    get_pattern,
    pattern_reference,
    suggest_pattern,
)


def test_catalog_sizes_and_unique_names() -> None:
    assert len(CORE_PATTERNS) == 9
    assert len(REASONING_PATTERNS) == 7
    names = [p.name for p in ALL_PATTERNS]
    assert len(names) == len(set(names))


def test_every_agent_role_has_a_catalog_entry() -> None:
    for role in AgentRole:
        assert get_pattern(role.value) is not None


def test_get_pattern_is_case_insensitive() -> None:
    assert get_pattern(" Gateway ").name == "gateway"
    assert get_pattern("unknown") is None


@pytest.mark.parametrize(
    ("purpose", "expected"),
    [
        ("Coordinate the incident response team", "orchestrator"),
        ("Integrate with the external ticketing API", "gateway"),
        ("Watch queue depth and alert on SLA breaches", "monitor"),
        ("Analyze trends and produce weekly insight reports", "analyzer"),
        ("Handoff cases between teams at shift change", "coordinator"),
        ("Answer FAQ questions from the knowledge base", "rag"),
        ("Draft replies to customers", "specialist"),
    ],
)
def test_suggest_pattern(purpose: str, expected: str) -> None:
    assert suggest_pattern(purpose) == expected


def test_pattern_reference_lists_every_pattern() -> None:
    reference = pattern_reference()
    for pattern in ALL_PATTERNS:
        assert f"**{pattern.name}**" in reference
