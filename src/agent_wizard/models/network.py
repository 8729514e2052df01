"""Process flows (step5) and the agent network: relationships and integrations (step6)."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from agent_wizard.models.base import WizardModel
from agent_wizard.models.enums import (
    IntegrationDirection,
    IntegrationType,
    MessagePriority,
    RelationshipType,
)


class ProcessFlowSummary(WizardModel):
    task_count: int = 0
    gateway_count: int = 0
    lane_count: int = 0
    estimated_duration: str | None = None


class GenerateProcessFlowOutput(WizardModel):
    process_id: str = ""
    process_name: str = ""
    bpmn_xml: str
    summary: ProcessFlowSummary = Field(default_factory=ProcessFlowSummary)


class BPMNFlow(GenerateProcessFlowOutput):
    """A generated process flow, keyed by the element it was generated for."""

    element_id: str


class Relationship(WizardModel):
    """Directed message flow between two proposed agents."""

    id: str = ""
    source_agent_id: str
    target_agent_id: str
    relationship_type: RelationshipType = RelationshipType.NOTIFIES
    message_type: str = "message"
    description: str = ""
    message_schema: dict[str, Any] | None = None
    is_async: bool = False
    priority: MessagePriority = MessagePriority.NORMAL


class RelationshipsOutput(WizardModel):
    relationships: list[Relationship]


class Integration(WizardModel):
    """Directed data flow between a proposed agent and an external system."""

    agent_id: str
    name: str
    system: str = ""
    type: IntegrationType = IntegrationType.API
    direction: IntegrationDirection = IntegrationDirection.BIDIRECTIONAL
    description: str = ""
    data_flows: list[str] = Field(default_factory=list)


class IntegrationsOutput(WizardModel):
    integrations: list[Integration]
