"""Agentic design pattern catalog.

The catalog is the shared vocabulary for behavioral patterns: the pattern
assignment prompt embeds ``pattern_reference()``, and ``suggest_pattern`` gives a
keyword-based first guess for an agent purpose.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict


class PatternDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    category: Literal["core", "reasoning"]
    use_when: str
    characteristics: str
    examples: tuple[str, ...] = ()


CORE_PATTERNS: tuple[PatternDefinition, ...] = (
    PatternDefinition(
        name="orchestrator",
        category="core",
        use_when="Coordinates multiple agents or workflows",
        characteristics="High-level control, delegates tasks, manages state",
        examples=("Service Desk Coordinator", "Incident Commander", "Change Manager"),
    ),
    PatternDefinition(
        name="specialist",
        category="core",
        use_when="Deep domain expertise needed",
        characteristics="Focused scope, expert knowledge, handles specific tasks",
        examples=("Network Troubleshooter", "Security Analyst", "Database Expert"),
    ),
    PatternDefinition(
        name="coordinator",
        category="core",
        use_when="Manages handoffs between teams or systems",
        characteristics="Routing, load balancing, ensures continuity",
        examples=("Team Handoff Agent", "Shift Coordinator", "Escalation Manager"),
    ),
    PatternDefinition(
        name="gateway",
        category="core",
        use_when="External system integration",
        characteristics="API facade, protocol translation, security boundary",
        examples=("ServiceNow Gateway", "Jira Gateway", "Email Gateway"),
    ),
    PatternDefinition(
        name="monitor",
        category="core",
        use_when="Observes and alerts on conditions",
        characteristics="Passive, threshold-based triggers, escalation",
        examples=("SLA Monitor", "Queue Monitor", "System Health Monitor"),
    ),
    PatternDefinition(
        name="executor",
        category="core",
        use_when="Performs automated actions",
        characteristics="Task execution, scripted workflows, idempotent",
        examples=("Password Reset Agent", "Provisioning Agent", "Cleanup Agent"),
    ),
    PatternDefinition(
        name="analyzer",
        category="core",
        use_when="Processes data for insights",
        characteristics="Pattern detection, analytics, reporting",
        examples=("Trend Analyzer", "Root Cause Analyzer", "Capacity Planner"),
    ),
    PatternDefinition(
        name="aggregator",
        category="core",
        use_when="Combines data from multiple sources",
        characteristics="Data fusion, normalization, single view",
        examples=("CMDB Aggregator", "Asset Consolidator", "Report Generator"),
    ),
    PatternDefinition(
        name="router",
        category="core",
        use_when="Directs work to the appropriate handler",
        characteristics="Rule-based routing, load distribution",
        examples=("Ticket Router", "Request Dispatcher", "Priority Classifier"),
    ),
)

REASONING_PATTERNS: tuple[PatternDefinition, ...] = (
    PatternDefinition(
        name="routing",
        category="reasoning",
        use_when="Routes work to the appropriate specialist",
        characteristics="Intelligent classification, dynamic routing",
        examples=("Intent Classifier", "Skill-Based Router"),
    ),
    PatternDefinition(
        name="planning",
        category="reasoning",
        use_when="Breaks down complex tasks into steps",
        characteristics="Task decomposition, dependency management",
        examples=("Project Planner", "Change Sequencer"),
    ),
    PatternDefinition(
        name="tool-use",
        category="reasoning",
        use_when="Integrates with external systems or APIs",
        characteristics="Function calling, API orchestration",
        examples=("Integration Agent", "API Orchestrator"),
    ),
    PatternDefinition(
        name="human-in-loop",
        category="reasoning",
        use_when="Requires human approval for decisions",
        characteristics="Approval workflows, escalation, oversight",
        examples=("Approval Agent", "Review Agent", "Exception Handler"),
    ),
    PatternDefinition(
        name="rag",
        category="reasoning",
        use_when="Retrieves information from knowledge bases",
        characteristics="Knowledge retrieval, context augmentation",
        examples=("Knowledge Agent", "FAQ Agent", "Documentation Helper"),
    ),
    PatternDefinition(
        name="reflection",
        category="reasoning",
        use_when="Evaluates and improves its own output",
        characteristics="Self-evaluation, quality improvement",
        examples=("Quality Checker", "Response Validator"),
    ),
    PatternDefinition(
        name="guardrails",
        category="reasoning",
        use_when="Validates input and output, enforces policy",
        characteristics="Policy enforcement, safety checks",
        examples=("Policy Enforcer", "Compliance Agent", "Input Validator"),
    ),
)

ALL_PATTERNS: tuple[PatternDefinition, ...] = CORE_PATTERNS + REASONING_PATTERNS

# First match wins; order matters ("coordinate" must beat "route").
_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("coordinate", "orchestrate", "manage agents"), "orchestrator"),
    (("integrate", "gateway", "external"), "gateway"),
    (("monitor", "alert", "watch"), "monitor"),
    (("execute", "automate", "run"), "executor"),
    (("analyze", "insight", "report"), "analyzer"),
    (("aggregate", "combine", "consolidate"), "aggregator"),
    (("route", "dispatch", "classify"), "router"),
    (("handoff", "transfer", "between teams"), "coordinator"),
    (("knowledge", "faq", "documentation"), "rag"),
    (("approval", "human", "review"), "human-in-loop"),
)


def get_pattern(name: str) -> PatternDefinition | None:
    wanted = name.strip().lower()
    for pattern in ALL_PATTERNS:
        if pattern.name == wanted:
            return pattern
    return None


def suggest_pattern(purpose: str) -> str:
    """Guess a pattern name from an agent's purpose; ``specialist`` when nothing matches."""
    lowered = purpose.lower()
    for keywords, name in _KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return name
    return "specialist"


def _table(patterns: tuple[PatternDefinition, ...]) -> str:
    rows = [f"| **{p.name}** | {p.use_when} | {p.characteristics} |" for p in patterns]
    return "\n".join(
        [
            "| Pattern | Use When | Characteristics |",
            "|---------|----------|-----------------|",
            *rows,
        ]
    )


def pattern_reference() -> str:
    """Markdown reference of every pattern, embedded in the pattern assignment prompt."""
    return f"""## AGENTIC DESIGN PATTERNS

### Core Patterns
{_table(CORE_PATTERNS)}

### Reasoning Patterns
{_table(REASONING_PATTERNS)}

PATTERN SELECTION CRITERIA:
- Manages other agents: orchestrator
- Talks to external systems: gateway
- Watches and alerts: monitor
- Deep domain knowledge: specialist
- Executes automated actions: executor
- Analyzes data: analyzer
- Combines multiple data sources: aggregator
- Routes requests to handlers: router (reasoning pattern routing)
"""
