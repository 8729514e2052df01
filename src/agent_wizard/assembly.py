"""Commit planning: reconcile a session's temporary identifiers into one agent graph.

Planning is pure and runs in two passes. Pass 1 assigns a permanent identifier to
every proposed agent. Pass 2 resolves every cross-reference (owned elements,
patterns, skills, process flows, relationship endpoints, integration owners)
through lookups that return None when a reference cannot be resolved; such
references are dropped and counted, never fatal.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from agent_wizard.models.agents import AgentPattern, AgentSkillSet, ProposedAgent, Skill
from agent_wizard.models.base import WizardModel
from agent_wizard.models.enums import AgentRole, AutonomyLevel, RiskAppetite
from agent_wizard.models.network import BPMNFlow
from agent_wizard.models.session import StageData

FALLBACK_PATTERN = AgentRole.SPECIALIST
FALLBACK_AUTONOMY = AutonomyLevel.SUPERVISED
FALLBACK_RISK = RiskAppetite.MEDIUM


class DroppedReferences(WizardModel):
    owned_elements: int = 0
    relationships: int = 0
    integrations: int = 0

    @property
    def total(self) -> int:
        return self.owned_elements + self.relationships + self.integrations


class AgentRecord(BaseModel):
    id: str
    temp_id: str
    name: str
    pattern: AgentRole
    description: str | None
    config: dict[str, Any]
    skills: list[Skill] = Field(default_factory=list)


class RelationshipRecord(BaseModel):
    source_agent_id: str
    target_agent_id: str
    relationship_type: str
    message_type: str
    description: str | None
    config: dict[str, Any]


class IntegrationRecord(BaseModel):
    agent_id: str
    name: str
    integration_type: str
    config: dict[str, Any]


class CommitPlan(BaseModel):
    agents: list[AgentRecord] = Field(default_factory=list)
    relationships: list[RelationshipRecord] = Field(default_factory=list)
    integrations: list[IntegrationRecord] = Field(default_factory=list)
    dropped: DroppedReferences = Field(default_factory=DroppedReferences)


# ---------------------------------------------------------------------------
# Pass 1
# ---------------------------------------------------------------------------


def assign_permanent_ids(
    agents: list[ProposedAgent], id_factory: Callable[[], str] | None = None
) -> dict[str, str]:
    """Map every temporary agent id to a fresh permanent id."""
    make_id = id_factory or (lambda: str(uuid.uuid4()))
    id_map: dict[str, str] = {}
    for agent in agents:
        if agent.id not in id_map:
            id_map[agent.id] = make_id()
    return id_map


# ---------------------------------------------------------------------------
# Pass 2
# ---------------------------------------------------------------------------


def element_names(stage_data: StageData) -> dict[str, str]:
    """Temporary element id to display name; classified names override extracted ones."""
    names: dict[str, str] = {}
    if stage_data.step1:
        names.update({c.id: c.name for c in stage_data.step1.capabilities})
    if stage_data.step2:
        names.update({e.id: e.name for e in stage_data.step2.elements})
    return names


def find_flow(agent: ProposedAgent, flows: dict[str, BPMNFlow]) -> BPMNFlow | None:
    if agent.id in flows:
        return flows[agent.id]
    return next((flows[e] for e in agent.owned_elements if e in flows), None)


def _agent_config(
    agent: ProposedAgent,
    capabilities: list[str],
    pattern: AgentPattern | None,
    flow: BPMNFlow | None,
) -> dict[str, Any]:
    config: dict[str, Any] = {
        "purpose": agent.purpose,
        "capabilities": capabilities,
        "pattern": (pattern.pattern if pattern else FALLBACK_PATTERN).value,
        "autonomyLevel": (pattern.autonomy_level if pattern else FALLBACK_AUTONOMY).value,
        "riskAppetite": (pattern.risk_appetite if pattern else FALLBACK_RISK).value,
        "triggers": pattern.triggers if pattern else agent.triggers,
        "outputs": pattern.outputs if pattern else agent.outputs,
        "boundaries": agent.boundaries.to_document(),
        "isOrchestrator": agent.is_orchestrator,
        "tools": [tool.to_document() for tool in agent.tools],
    }
    if pattern is not None:
        config["patternRationale"] = pattern.pattern_rationale
        config["a2aCapabilities"] = pattern.a2a_capabilities.to_document()
        if pattern.reasoning_pattern is not None:
            config["reasoningPattern"] = pattern.reasoning_pattern.value
    details = agent.to_document()
    for key in (
        "shortDescription",
        "detailedPurpose",
        "businessValue",
        "keyResponsibilities",
        "successCriteria",
        "decisionAuthority",
        "valueStream",
        "capabilityGroup",
        "objectives",
        "kpis",
        "escalationPath",
        "responsibilities",
    ):
        if details.get(key):
            config[key] = details[key]
    if flow is not None:
        config["processFlow"] = flow.to_document()
    return config


def plan_commit(stage_data: StageData, id_map: dict[str, str]) -> CommitPlan:
    """Resolve every stage document through ``id_map`` into rows ready to insert."""
    plan = CommitPlan()
    step3 = stage_data.step3
    if step3 is None:
        return plan

    names = element_names(stage_data)
    patterns: dict[str, AgentPattern] = {}
    skills: dict[str, AgentSkillSet] = {}
    if stage_data.step4:
        for p in stage_data.step4.agent_patterns:
            patterns.setdefault(p.agent_id, p)
        for s in stage_data.step4.agent_skills:
            skills.setdefault(s.agent_id, s)
    flows = stage_data.step5.process_flows if stage_data.step5 else {}

    seen: set[str] = set()
    for agent in step3.agents:
        permanent_id = id_map.get(agent.id)
        if permanent_id is None or agent.id in seen:
            continue
        seen.add(agent.id)

        capabilities: list[str] = []
        for element_id in agent.owned_elements:
            name = names.get(element_id)
            if name is None:
                plan.dropped.owned_elements += 1
            else:
                capabilities.append(name)

        pattern = patterns.get(agent.id)
        skill_set = skills.get(agent.id)
        plan.agents.append(
            AgentRecord(
                id=permanent_id,
                temp_id=agent.id,
                name=agent.name,
                pattern=pattern.pattern if pattern else FALLBACK_PATTERN,
                description=agent.short_description or agent.purpose or None,
                config=_agent_config(agent, capabilities, pattern, find_flow(agent, flows)),
                skills=skill_set.skills if skill_set else [],
            )
        )

    if stage_data.step6 is None:
        return plan

    for rel in stage_data.step6.relationships:
        source = id_map.get(rel.source_agent_id)
        target = id_map.get(rel.target_agent_id)
        if source is None or target is None:
            plan.dropped.relationships += 1
            continue
        plan.relationships.append(
            RelationshipRecord(
                source_agent_id=source,
                target_agent_id=target,
                relationship_type=rel.relationship_type.value,
                message_type=rel.message_type,
                description=rel.description or None,
                config={
                    "isAsync": rel.is_async,
                    "priority": rel.priority.value,
                    "messageSchema": rel.message_schema,
                },
            )
        )

    for integration in stage_data.step6.integrations:
        owner = id_map.get(integration.agent_id)
        if owner is None:
            plan.dropped.integrations += 1
            continue
        plan.integrations.append(
            IntegrationRecord(
                agent_id=owner,
                name=integration.name,
                integration_type=integration.type.value,
                config={
                    "system": integration.system,
                    "direction": integration.direction.value,
                    "description": integration.description,
                    "dataFlows": integration.data_flows,
                },
            )
        )
    return plan
