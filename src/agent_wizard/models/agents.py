"""Agent design documents: proposals (step3), optimization, patterns and skills (step4)."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from agent_wizard.models.base import WizardModel
from agent_wizard.models.enums import (
    AgentRole,
    AutonomyLevel,
    OptimizationStatus,
    ReasoningPattern,
    RiskAppetite,
)

# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------


class AgentBoundaries(WizardModel):
    internal: list[str] = Field(default_factory=list)
    delegates: list[str] = Field(default_factory=list)
    escalates: list[str] = Field(default_factory=list)


class AgentTool(WizardModel):
    """A responsibility carried by an agent as a tool rather than as a separate agent."""

    name: str
    description: str = ""
    source: str = "demoted"
    original_agent: str | None = None


class ProposedAgent(WizardModel):
    id: str
    name: str
    purpose: str = ""
    short_description: str | None = None
    detailed_purpose: str | None = None
    business_value: str | None = None
    key_responsibilities: list[str] = Field(default_factory=list)
    success_criteria: str | None = None
    suggested_pattern: AgentRole | None = None
    suggested_autonomy: AutonomyLevel | None = None
    decision_authority: str | None = None
    value_stream: str | None = None
    capability_group: str | None = None
    objectives: list[str] = Field(default_factory=list)
    kpis: list[str] = Field(default_factory=list)
    interaction_pattern: str | None = None
    triggers: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    escalation_path: str | None = None
    responsibilities: list[str] = Field(default_factory=list)
    owned_elements: list[str] = Field(default_factory=list)
    boundaries: AgentBoundaries = Field(default_factory=AgentBoundaries)
    is_orchestrator: bool = False
    needs_internal_bpmn: bool = False
    tools: list[AgentTool] = Field(default_factory=list)


class ProposeAgentsOutput(WizardModel):
    agents: list[ProposedAgent]
    orphaned_elements: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Optimization
# ---------------------------------------------------------------------------


class OptimizedAgent(ProposedAgent):
    status: OptimizationStatus = OptimizationStatus.KEEP
    reasoning: str = ""


class DemotedTool(WizardModel):
    original_agent_id: str
    original_agent_name: str = ""
    tool_name: str
    tool_description: str = ""
    assigned_to_agent_id: str
    reasoning: str = ""


class AsyncMove(WizardModel):
    agent_id: str
    agent_name: str = ""
    schedule: str | None = None
    reasoning: str = ""


class AgentMerge(WizardModel):
    merged_agent_ids: list[str] = Field(default_factory=list)
    into_agent_id: str
    reasoning: str = ""


class HitlPoint(WizardModel):
    agent_id: str
    hitl_type: str = "HITL"
    checkpoint: str = ""
    reasoning: str = ""


class OptimizeAgentsOutput(WizardModel):
    optimized_agents: list[OptimizedAgent]
    demoted_to_tools: list[DemotedTool] = Field(default_factory=list)
    moved_to_async: list[AsyncMove] = Field(default_factory=list)
    merged_agents: list[AgentMerge] = Field(default_factory=list)
    added_hitl_points: list[HitlPoint] = Field(default_factory=list)
    optimization_summary: str = ""


class OptimizationReport(WizardModel):
    """What the optimize pass changed, kept alongside the step3 proposal."""

    applied: bool
    original_agent_count: int
    optimized_agent_count: int
    demoted_to_tools: list[DemotedTool] = Field(default_factory=list)
    moved_to_async: list[AsyncMove] = Field(default_factory=list)
    merged_agents: list[AgentMerge] = Field(default_factory=list)
    added_hitl_points: list[HitlPoint] = Field(default_factory=list)
    summary: str = ""
    error: str | None = None


# ---------------------------------------------------------------------------
# Patterns and skills
# ---------------------------------------------------------------------------


class A2ACapabilities(WizardModel):
    streaming: bool = False
    push_notifications: bool = False


class AgentPattern(WizardModel):
    agent_id: str
    pattern: AgentRole
    reasoning_pattern: ReasoningPattern | None = None
    pattern_rationale: str = ""
    autonomy_level: AutonomyLevel = AutonomyLevel.SUPERVISED
    risk_appetite: RiskAppetite = RiskAppetite.MEDIUM
    a2a_capabilities: A2ACapabilities = Field(default_factory=A2ACapabilities)
    triggers: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)


class AssignPatternsOutput(WizardModel):
    agent_patterns: list[AgentPattern]


class SkillExample(WizardModel):
    name: str = ""
    input: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] = Field(default_factory=dict)


class Skill(WizardModel):
    skill_id: str
    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    input_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object"})
    output_schema: dict[str, Any] = Field(default_factory=lambda: {"type": "object"})
    examples: list[SkillExample] = Field(default_factory=list)


class AgentSkillSet(WizardModel):
    agent_id: str
    skills: list[Skill] = Field(default_factory=list)


class DefineSkillsOutput(WizardModel):
    agent_skills: list[AgentSkillSet]
