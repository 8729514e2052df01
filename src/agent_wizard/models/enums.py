"""Closed vocabularies used across stages."""

from __future__ import annotations

from agent_wizard.models.base import LenientEnum


class SessionStatus(LenientEnum):
    DRAFT = "draft"
    ANALYZED = "analyzed"
    APPLIED = "applied"
    FAILED = "failed"


class SourceType(LenientEnum):
    TEXT = "text"
    FILE = "file"
    WEB = "web"
    XML = "xml"


class ElementType(LenientEnum):
    AGENT = "Agent"
    CAPABILITY = "Capability"
    DATA_OBJECT = "DataObject"
    PROCESS = "Process"


class AgentRole(LenientEnum):
    """Behavioral classification of an agent."""

    ORCHESTRATOR = "orchestrator"
    SPECIALIST = "specialist"
    GATEWAY = "gateway"
    MONITOR = "monitor"
    EXECUTOR = "executor"
    ANALYZER = "analyzer"
    AGGREGATOR = "aggregator"
    ROUTER = "router"


class ReasoningPattern(LenientEnum):
    ROUTING = "routing"
    PLANNING = "planning"
    TOOL_USE = "tool-use"
    HUMAN_IN_LOOP = "human-in-loop"
    RAG = "rag"
    REFLECTION = "reflection"
    GUARDRAILS = "guardrails"


class AutonomyLevel(LenientEnum):
    AUTONOMOUS = "autonomous"
    SUPERVISED = "supervised"
    HUMAN_IN_LOOP = "human-in-loop"


class RiskAppetite(LenientEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OptimizationStatus(LenientEnum):
    KEEP = "keep"
    MERGE = "merge"
    DEMOTE_TO_TOOL = "demote-to-tool"
    MOVE_TO_ASYNC = "move-to-async"
    NEW = "new"


class RelationshipType(LenientEnum):
    ORCHESTRATES = "orchestrates"
    DELEGATES = "delegates"
    MONITORS = "monitors"
    NOTIFIES = "notifies"
    QUERIES = "queries"
    REPORTS_TO = "reports-to"


class MessagePriority(LenientEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class IntegrationType(LenientEnum):
    API = "API"
    WEBHOOK = "Webhook"
    DATABASE = "Database"
    QUEUE = "Queue"
    FILE = "File"


class IntegrationDirection(LenientEnum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"
    BIDIRECTIONAL = "bidirectional"
