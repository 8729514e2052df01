"""Prompt template registry.

Each template pairs a versioned system prompt with a user-message builder for
its typed input and the pydantic model its reply must validate against. The
output model's JSON schema is appended to the system prompt so the reply
contract and the validator never drift apart.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agent_wizard.models.agents import (
    AgentPattern,
    AssignPatternsOutput,
    DefineSkillsOutput,
    OptimizeAgentsOutput,
    ProposeAgentsOutput,
    ProposedAgent,
)
from agent_wizard.models.base import WizardModel
from agent_wizard.models.elements import (
    Capability,
    ClassifiedElement,
    ClassifyElementsOutput,
    ExtractCapabilitiesOutput,
)
from agent_wizard.models.network import (
    GenerateProcessFlowOutput,
    IntegrationsOutput,
    RelationshipsOutput,
)
from agent_wizard.patterns import pattern_reference, suggest_pattern

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 8192


class PromptTemplate(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    version: str
    description: str
    system_prompt: str
    build_user_message: Callable[[Any], str]
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS

    def render_system(self) -> str:
        schema = self.output_model.model_json_schema(by_alias=True)
        return (
            f"{self.system_prompt.strip()}\n\n"
            "## JSON Output Format\n"
            "Return ONLY a JSON object, with no prose before or after it, "
            "that validates against this JSON Schema:\n"
            f"{json.dumps(schema, separators=(',', ':'))}"
        )


# ---------------------------------------------------------------------------
# Typed inputs
# ---------------------------------------------------------------------------


class ExtractInput(WizardModel):
    description: str
    custom_context: str | None = None
    industry: str | None = None


class ClassifyInput(WizardModel):
    capabilities: list[Capability]
    custom_context: str | None = None


class ProposeInput(WizardModel):
    elements: list[ClassifiedElement]
    target_agent_count: int
    organization_context: str | None = None


class OptimizeInput(WizardModel):
    agents: list[ProposedAgent]
    elements: list[ClassifiedElement]


class PatternsInput(WizardModel):
    agents: list[ProposedAgent]
    risk_tolerance: str | None = None
    compliance_requirements: list[str] = Field(default_factory=list)


class SkillsInput(WizardModel):
    agents: list[ProposedAgent]
    patterns: list[AgentPattern]


class ProcessFlowInput(WizardModel):
    element: ClassifiedElement
    owner: ProposedAgent | None = None
    related_agents: list[ProposedAgent] = Field(default_factory=list)
    custom_context: str | None = None


class RelationshipsInput(WizardModel):
    agents: list[ProposedAgent]
    patterns: list[AgentPattern]


class IntegrationsInput(WizardModel):
    agents: list[ProposedAgent]
    patterns: list[AgentPattern]
    industry: str | None = None
    known_systems: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# User message builders
# ---------------------------------------------------------------------------


def _join(items: list[str], empty: str = "none") -> str:
    return ", ".join(items) if items else empty


def _pattern_for(agent: ProposedAgent, patterns: list[AgentPattern]) -> AgentPattern | None:
    return next((p for p in patterns if p.agent_id == agent.id), None)


def _build_extract(data: ExtractInput) -> str:
    message = f"## Organization Description\n\n{data.description}"
    if data.industry:
        message += f"\n\n## Industry\n{data.industry}"
    if data.custom_context:
        message += f"\n\n## Additional Context\n{data.custom_context}"
    message += (
        "\n\n## Instructions\n"
        "1. Extract every capability mentioned or implied\n"
        "2. Use levels 0 (domain), 1 (capability) and 2 (sub-capability) with parentId links\n"
        "3. Give each capability a unique id (cap-001, cap-002, ...)\n"
        "4. Return ONLY the JSON object"
    )
    return message


def _build_classify(data: ClassifyInput) -> str:
    lines = "\n".join(
        f"- [{c.id}] {c.name}: {c.description} (domain: {c.domain or 'unknown'})"
        for c in data.capabilities
    )
    message = f"## Capabilities to Classify\n\n{lines}"
    if data.custom_context:
        message += f"\n\n## Additional Context\n{data.custom_context}"
    message += (
        "\n\n## Instructions\n"
        "1. Classify EACH capability into exactly one element type\n"
        "2. Keep the id in brackets unchanged\n"
        "3. Give a brief rationale\n"
        "4. Return counts in summary\n"
        "5. Return ONLY the JSON object"
    )
    return message


def _build_propose(data: ProposeInput) -> str:
    lines = "\n".join(
        f"- [{e.id}] {e.name} ({e.element_type.value}): {e.rationale}" for e in data.elements
    )
    message = f"## Classified Elements\n\n{lines}"
    if data.organization_context:
        message += f"\n\n## Organization Context\n{data.organization_context}"
    message += (
        f"\n\n## Preferred Agent Count\n"
        f"Aim for approximately {data.target_agent_count} agents."
    )
    message += (
        "\n\n## Instructions\n"
        "1. Group elements into logical agents\n"
        "2. Use the EXACT ids from brackets in ownedElements; never invent element ids\n"
        "3. Give each agent a unique id (agent-001, agent-002, ...)\n"
        "4. Define boundaries (internal, delegates, escalates)\n"
        "5. List element ids that fit no agent in orphanedElements\n"
        "6. Return ONLY the JSON object"
    )
    return message


def _describe_agent(agent: ProposedAgent) -> str:
    lines = [
        f"### [{agent.id}] {agent.name}",
        f"Purpose: {agent.purpose}",
        f"Pattern: {agent.suggested_pattern or suggest_pattern(agent.purpose)}"
        f" | Autonomy: {agent.suggested_autonomy or 'unspecified'}",
        f"Is Orchestrator: {str(agent.is_orchestrator).lower()}",
    ]
    if agent.responsibilities:
        lines.append(f"Responsibilities: {'; '.join(agent.responsibilities)}")
    if agent.owned_elements:
        lines.append(f"Owned Elements: {', '.join(agent.owned_elements)}")
    lines.append(f"Delegates: {_join(agent.boundaries.delegates)}")
    lines.append(f"Escalates: {_join(agent.boundaries.escalates)}")
    return "\n".join(lines)


def _build_optimize(data: OptimizeInput) -> str:
    agents = "\n\n".join(_describe_agent(a) for a in data.agents)
    elements = "\n".join(
        f"- [{e.id}] {e.name} ({e.element_type.value}): {e.rationale}" for e in data.elements
    )
    return (
        f"## Proposed Agents to Review\n\n{agents}\n\n"
        f"## Original Elements\n\n{elements}\n\n"
        "## Instructions\n"
        "1. Return every proposed agent in optimizedAgents with a status "
        "(keep, merge, demote-to-tool, move-to-async) and add new agents with status new\n"
        "2. Demote agents that only wrap a single deterministic action to a tool of another agent "
        "and list them in demotedToTools with assignedToAgentId\n"
        "3. For merges, keep the surviving agent with status merge and list absorbed ids\n"
        "4. Keep agent ids unchanged\n"
        "5. Return ONLY the JSON object"
    )


def _build_patterns(data: PatternsInput) -> str:
    agents = "\n\n".join(_describe_agent(a) for a in data.agents)
    message = f"## Agents to Configure\n\n{agents}"
    if data.risk_tolerance:
        message += f"\n\n## Organization Risk Tolerance\n{data.risk_tolerance}"
    if data.compliance_requirements:
        message += f"\n\n## Compliance Requirements\n{', '.join(data.compliance_requirements)}"
    message += (
        "\n\n## Instructions\n"
        "1. Confirm or adjust the suggested pattern for each agent\n"
        "2. Set autonomy level and risk appetite\n"
        "3. Determine A2A capabilities (streaming, push notifications)\n"
        "4. List triggers and outputs as event names\n"
        "5. Return ONLY the JSON object"
    )
    return message


def _build_skills(data: SkillsInput) -> str:
    blocks = []
    for agent in data.agents:
        pattern = _pattern_for(agent, data.patterns)
        triggers = pattern.triggers if pattern else agent.triggers
        outputs = pattern.outputs if pattern else agent.outputs
        blocks.append(
            f"- [{agent.id}] {agent.name}\n"
            f"  Pattern: {pattern.pattern.value if pattern else suggest_pattern(agent.purpose)}\n"
            f"  Purpose: {agent.purpose}\n"
            f"  Triggers: {_join(triggers, 'not specified')}\n"
            f"  Outputs: {_join(outputs, 'not specified')}"
        )
    return (
        "## Agents\n\n" + "\n\n".join(blocks) + "\n\n"
        "## Instructions\n"
        "1. Define 3-4 skills per agent shaped by its pattern\n"
        "2. Use kebab-case for skillId\n"
        "3. Define input and output JSON schemas\n"
        "4. Include 2 examples per skill\n"
        "5. Return ONLY the JSON object"
    )


def _build_process_flow(data: ProcessFlowInput) -> str:
    element = data.element
    message = (
        f"## Process\n\n[{element.id}] {element.name} ({element.element_type.value})\n"
        f"{element.rationale}"
    )
    if data.owner:
        message += f"\n\n## Owning Agent\n{_describe_agent(data.owner)}"
    if data.related_agents:
        lanes = "\n".join(f"- [{a.id}] {a.name}: {a.purpose}" for a in data.related_agents)
        message += f"\n\n## Participating Agents\n{lanes}"
    if data.custom_context:
        message += f"\n\n## Additional Context\n{data.custom_context}"
    message += (
        "\n\n## Instructions\n"
        "1. Produce a complete BPMN 2.0 XML document with one lane per participating agent\n"
        "2. Escape the XML as a JSON string in bpmnXml\n"
        "3. Count tasks, gateways and lanes in summary\n"
        "4. Return ONLY the JSON object"
    )
    return message


def _build_relationships(data: RelationshipsInput) -> str:
    blocks = []
    for agent in data.agents:
        pattern = _pattern_for(agent, data.patterns)
        blocks.append(
            f"- [{agent.id}] {agent.name} "
            f"({pattern.pattern.value if pattern else agent.suggested_pattern or 'specialist'})\n"
            f"  Delegates to: {_join(agent.boundaries.delegates)}\n"
            f"  Escalates to: {_join(agent.boundaries.escalates)}\n"
            f"  Triggers: {_join(pattern.triggers if pattern else [], 'not defined')}\n"
            f"  Outputs: {_join(pattern.outputs if pattern else [], 'not defined')}"
        )
    return (
        "## Agents\n\n" + "\n\n".join(blocks) + "\n\n"
        "## Instructions\n"
        "1. Define directed relationships using the agent ids in brackets\n"
        "2. Every agent should take part in at least one relationship\n"
        "3. Set isAsync and priority from the communication pattern\n"
        "4. Generate unique ids (rel-001, rel-002, ...)\n"
        "5. Return ONLY the JSON object"
    )


def _build_integrations(data: IntegrationsInput) -> str:
    blocks = []
    for agent in data.agents:
        pattern = _pattern_for(agent, data.patterns)
        blocks.append(
            f"- [{agent.id}] {agent.name} "
            f"({pattern.pattern.value if pattern else agent.suggested_pattern or 'specialist'})\n"
            f"  Purpose: {agent.purpose}\n"
            f"  Triggers: {_join(pattern.triggers if pattern else [], 'not defined')}\n"
            f"  Outputs: {_join(pattern.outputs if pattern else [], 'not defined')}"
        )
    message = "## Agents\n\n" + "\n\n".join(blocks)
    if data.known_systems:
        message += f"\n\n## Known Systems in Environment\n{', '.join(data.known_systems)}"
    if data.industry:
        message += f"\n\n## Industry Context\n{data.industry}"
    message += (
        "\n\n## Instructions\n"
        "1. Identify realistic external integrations for each agent, keyed by agent id\n"
        "2. Gateway agents typically have the most integrations\n"
        "3. Describe the data flows of each integration\n"
        "4. Return ONLY the JSON object"
    )
    return message


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_EXTRACT_SYSTEM = """You are an Enterprise Architecture expert specializing in capability modeling.

Extract business capabilities from a description of an organization, system or process.
A capability is a WHAT: something the organization must be able to do, independent of
how it is done. "Payment Processing" is a capability; "Use Salesforce" is not.
Assign each capability to a business domain and include relevant keywords."""

_CLASSIFY_SYSTEM = """You are an Enterprise Architecture expert.

Classify each capability into exactly one element type:
- Agent: an active worker that makes decisions or performs work autonomously
- Capability: an ability or skill that an agent uses
- DataObject: an information store or record set
- Process: a workflow, lifecycle or sequence of steps"""

_PROPOSE_SYSTEM = """You are an AI agent architect.

Group classified elements into a network of autonomous agents. Each agent owns the
elements it is responsible for, has a clear purpose and explicit boundaries: what it
handles internally, what it delegates and what it escalates. Mark coordinating agents
with isOrchestrator and agents that run a multi-step internal workflow with
needsInternalBpmn."""

_OPTIMIZE_SYSTEM = """You are a senior AI agent architect reviewing a proposed agent network.

Reduce the network to the agents that genuinely need autonomy. Merge overlapping agents,
demote agents that only wrap one deterministic action into tools of another agent, move
batch or scheduled work to asynchronous jobs, add agents only where a clear gap exists,
and add human-in-the-loop checkpoints where decisions carry risk."""

_PATTERNS_SYSTEM = """You are an AI agent architect assigning behavioral patterns.

For each agent choose one pattern from: orchestrator, specialist, gateway, monitor,
executor, analyzer, aggregator, router. Optionally add a reasoning pattern from:
routing, planning, tool-use, human-in-loop, rag, reflection, guardrails.

""" + pattern_reference()

_SKILLS_SYSTEM = """You are an AI agent architect defining A2A agent skills.

A skill is a discrete, invocable unit of work an agent advertises to other agents.
Skill shape follows the agent's pattern: a monitor gets threshold-check skills, a
gateway gets translation and sync skills, an analyzer gets insight skills."""

_PROCESS_FLOW_SYSTEM = """You are a BPMN 2.0 process modeler.

Model the given process as an executable BPMN 2.0 collaboration. Use service tasks for
agent work, user tasks for human checkpoints and exclusive gateways for decisions. The
XML must be well formed and include the bpmn namespace."""

_RELATIONSHIPS_SYSTEM = """You are an AI agent network designer.

Define the directed message flows between agents. Relationship types: orchestrates,
delegates, monitors, notifies, queries, reports-to. Reference agents only by their ids."""

_INTEGRATIONS_SYSTEM = """You are an enterprise integration architect.

Identify the external systems each agent must integrate with. Integration types: API,
Webhook, Database, Queue, File. Directions: inbound, outbound, bidirectional."""


TEMPLATES: dict[str, PromptTemplate] = {
    t.name: t
    for t in (
        PromptTemplate(
            name="extract-capabilities",
            version="1.0.0",
            description="Extract a capability list from an organization description",
            system_prompt=_EXTRACT_SYSTEM,
            build_user_message=_build_extract,
            input_model=ExtractInput,
            output_model=ExtractCapabilitiesOutput,
            max_tokens=8192,
        ),
        PromptTemplate(
            name="classify-elements",
            version="1.0.0",
            description="Classify capabilities into Agent/Capability/DataObject/Process",
            system_prompt=_CLASSIFY_SYSTEM,
            build_user_message=_build_classify,
            input_model=ClassifyInput,
            output_model=ClassifyElementsOutput,
            temperature=0.2,
            max_tokens=4096,
        ),
        PromptTemplate(
            name="propose-agents",
            version="1.0.0",
            description="Group classified elements into proposed agents",
            system_prompt=_PROPOSE_SYSTEM,
            build_user_message=_build_propose,
            input_model=ProposeInput,
            output_model=ProposeAgentsOutput,
            temperature=0.4,
        ),
        PromptTemplate(
            name="optimize-agents",
            version="1.0.0",
            description="Merge, demote or defer proposed agents",
            system_prompt=_OPTIMIZE_SYSTEM,
            build_user_message=_build_optimize,
            input_model=OptimizeInput,
            output_model=OptimizeAgentsOutput,
            max_tokens=16000,
        ),
        PromptTemplate(
            name="assign-patterns",
            version="1.0.0",
            description="Assign behavioral patterns, autonomy and risk to agents",
            system_prompt=_PATTERNS_SYSTEM,
            build_user_message=_build_patterns,
            input_model=PatternsInput,
            output_model=AssignPatternsOutput,
            max_tokens=4096,
        ),
        PromptTemplate(
            name="define-skills",
            version="1.0.0",
            description="Define A2A skills for each agent given its pattern",
            system_prompt=_SKILLS_SYSTEM,
            build_user_message=_build_skills,
            input_model=SkillsInput,
            output_model=DefineSkillsOutput,
            max_tokens=16000,
        ),
        PromptTemplate(
            name="generate-process-flow",
            version="1.0.0",
            description="Generate a BPMN 2.0 flow for one process element",
            system_prompt=_PROCESS_FLOW_SYSTEM,
            build_user_message=_build_process_flow,
            input_model=ProcessFlowInput,
            output_model=GenerateProcessFlowOutput,
            temperature=0.1,
            max_tokens=16000,
        ),
        PromptTemplate(
            name="relationships",
            version="1.0.0",
            description="Define directed relationships between agents",
            system_prompt=_RELATIONSHIPS_SYSTEM,
            build_user_message=_build_relationships,
            input_model=RelationshipsInput,
            output_model=RelationshipsOutput,
            max_tokens=6144,
        ),
        PromptTemplate(
            name="integrations",
            version="1.0.0",
            description="Suggest external-system integrations per agent",
            system_prompt=_INTEGRATIONS_SYSTEM,
            build_user_message=_build_integrations,
            input_model=IntegrationsInput,
            output_model=IntegrationsOutput,
            temperature=0.4,
            max_tokens=4096,
        ),
    )
}


def get_template(name: str) -> PromptTemplate:
    try:
        return TEMPLATES[name]
    except KeyError:
        raise KeyError(f"Unknown prompt template: {name}") from None
