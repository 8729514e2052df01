"""Tests for the prompt template registry."""

from __future__ import annotations

import pytest

from agent_wizard.generation.templates import (
    TEMPLATES,
    IntegrationsInput,
    OptimizeInput,
    ProposeInput,
    get_template,
)
from agent_wizard.models.agents import ProposedAgent
from agent_wizard.models.elements import ClassifiedElement
from agent_wizard.models.enums import ElementType

EXPECTED_TEMPLATES = {
    "extract-capabilities",
    "classify-elements",
    "propose-agents",
    "optimize-agents",
    "assign-patterns",
    "define-skills",
    "generate-process-flow",
    "relationships",
    "integrations",
}


def _element(element_id: str = "c1", name: str = "Handle Incidents") -> ClassifiedElement:
    return ClassifiedElement(
        id=element_id, name=name, element_type=ElementType.PROCESS, rationale="Runs end to end"
    )


def test_registry_holds_every_template() -> None:
    assert set(TEMPLATES) == EXPECTED_TEMPLATES
    for name, template in TEMPLATES.items():
        assert template.name == name
        assert template.version


def test_get_template_unknown_name() -> None:
    with pytest.raises(KeyError, match="Unknown prompt template"):
        get_template("summarize-everything")


def test_render_system_embeds_output_schema_with_aliases() -> None:
    rendered = get_template("classify-elements").render_system()
    assert "JSON Schema" in rendered
    assert '"elementType"' in rendered
    assert '"element_type"' not in rendered


def test_assign_patterns_prompt_embeds_pattern_reference() -> None:
    rendered = get_template("assign-patterns").render_system()
    assert "AGENTIC DESIGN PATTERNS" in rendered
    assert "**orchestrator**" in rendered


def test_template_defaults() -> None:
    extract = get_template("extract-capabilities")
    assert extract.temperature == 0.3
    assert extract.max_tokens == 8192
    assert get_template("generate-process-flow").temperature == 0.1


def test_propose_message_lists_element_ids_and_target() -> None:
    template = get_template("propose-agents")
    message = template.build_user_message(
        ProposeInput(elements=[_element("c1"), _element("c2", "Track SLAs")], target_agent_count=2)
    )
    assert "[c1] Handle Incidents (Process)" in message
    assert "[c2] Track SLAs" in message
    assert "approximately 2 agents" in message


def test_optimize_message_suggests_pattern_from_purpose() -> None:
    agent = ProposedAgent(id="a1", name="SLA Watcher", purpose="Monitor SLA breaches")
    message = get_template("optimize-agents").build_user_message(
        OptimizeInput(agents=[agent], elements=[_element()])
    )
    assert "[a1] SLA Watcher" in message
    assert "Pattern: monitor" in message


def test_integrations_message_includes_known_systems() -> None:
    agent = ProposedAgent(id="a1", name="Ticket Gateway", purpose="Integrate with ServiceNow")
    message = get_template("integrations").build_user_message(
        IntegrationsInput(
            agents=[agent], patterns=[], industry="Retail", known_systems=["ServiceNow", "Slack"]
        )
    )
    assert "ServiceNow, Slack" in message
    assert "Retail" in message
