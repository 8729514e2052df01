"""Wizard documents: stage data, session state and generation envelopes."""

from agent_wizard.models.agents import (
    A2ACapabilities,
    AgentBoundaries,
    AgentMerge,
    AgentPattern,
    AgentSkillSet,
    AgentTool,
    AsyncMove,
    DemotedTool,
    HitlPoint,
    OptimizationReport,
    OptimizedAgent,
    ProposedAgent,
    Skill,
    SkillExample,
)
from agent_wizard.models.elements import (
    Capability,
    ClassificationSummary,
    ClassifiedElement,
    ExtractionMetadata,
)
from agent_wizard.models.enums import (
    AgentRole,
    AutonomyLevel,
    ElementType,
    IntegrationDirection,
    IntegrationType,
    MessagePriority,
    OptimizationStatus,
    ReasoningPattern,
    RelationshipType,
    RiskAppetite,
    SessionStatus,
    SourceType,
)
from agent_wizard.models.network import BPMNFlow, Integration, ProcessFlowSummary, Relationship
from agent_wizard.models.session import (
    STAGE_KEYS,
    SessionState,
    StageData,
    Step1Data,
    Step2Data,
    Step3Data,
    Step4Data,
    Step5Data,
    Step6Data,
    StepResult,
    TokenUsage,
    WizardSession,
)

__all__ = [
    "A2ACapabilities",
    "AgentBoundaries",
    "AgentMerge",
    "AgentPattern",
    "AgentRole",
    "AgentSkillSet",
    "AgentTool",
    "AsyncMove",
    "AutonomyLevel",
    "BPMNFlow",
    "Capability",
    "ClassificationSummary",
    "ClassifiedElement",
    "DemotedTool",
    "ElementType",
    "ExtractionMetadata",
    "HitlPoint",
    "Integration",
    "IntegrationDirection",
    "IntegrationType",
    "MessagePriority",
    "OptimizationReport",
    "OptimizationStatus",
    "OptimizedAgent",
    "ProcessFlowSummary",
    "ProposedAgent",
    "ReasoningPattern",
    "Relationship",
    "RelationshipType",
    "RiskAppetite",
    "STAGE_KEYS",
    "SessionState",
    "SessionStatus",
    "Skill",
    "SkillExample",
    "SourceType",
    "StageData",
    "Step1Data",
    "Step2Data",
    "Step3Data",
    "Step4Data",
    "Step5Data",
    "Step6Data",
    "StepResult",
    "TokenUsage",
    "WizardSession",
]
