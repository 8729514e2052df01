"""Step 3: propose agents for the classified elements, then optimize the proposal.

Optimization is an enrichment: when the optimize call fails, or returns a network
with no surviving agent, the stage still succeeds with the unoptimized proposal
and records why in ``optimization``.
"""

from __future__ import annotations

import logging
import math

from pydantic import BaseModel

from agent_wizard.generation.templates import OptimizeInput, ProposeInput
from agent_wizard.models.agents import (
    AgentTool,
    OptimizationReport,
    OptimizeAgentsOutput,
    ProposeAgentsOutput,
    ProposedAgent,
)
from agent_wizard.models.elements import ClassifiedElement
from agent_wizard.models.enums import OptimizationStatus
from agent_wizard.models.session import Step3Data, StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter, failed

logger = logging.getLogger(__name__)

_SURVIVING = {OptimizationStatus.KEEP, OptimizationStatus.MERGE, OptimizationStatus.NEW}


class ProposeStageInput(BaseModel):
    elements: list[ClassifiedElement]
    target_agent_count: int | None = None
    organization_context: str | None = None
    optimize: bool = True


def default_agent_count(element_count: int, upper: int = 15) -> int:
    return max(1, min(upper, math.ceil(element_count / 3)))


def reconcile_ownership(
    agents: list[ProposedAgent], known_ids: list[str]
) -> tuple[list[ProposedAgent], list[str]]:
    """Drop owned-element references to unknown elements and recompute orphans.

    Returns the cleaned agents and the known element ids no agent owns, in
    element order; the model's own orphan list is not trusted. Duplicate agent
    ids keep their first occurrence.
    """
    known = set(known_ids)
    cleaned: list[ProposedAgent] = []
    seen_agents: set[str] = set()
    for agent in agents:
        if agent.id in seen_agents:
            logger.warning("Dropping duplicate agent id %s", agent.id)
            continue
        seen_agents.add(agent.id)
        owned = list(dict.fromkeys(e for e in agent.owned_elements if e in known))
        if len(owned) != len(agent.owned_elements):
            logger.info(
                "Agent %s: dropped %d unresolved owned element reference(s)",
                agent.id,
                len(agent.owned_elements) - len(owned),
            )
        cleaned.append(agent.model_copy(update={"owned_elements": owned}))

    owned_anywhere = {e for agent in cleaned for e in agent.owned_elements}
    return cleaned, [e for e in known_ids if e not in owned_anywhere]


def apply_optimization(
    proposal: list[ProposedAgent], output: OptimizeAgentsOutput
) -> tuple[list[ProposedAgent], OptimizationReport]:
    """Fold an optimize reply into the proposal.

    Survivors are the keep, merge and new entries not absorbed by a merge or
    demoted to a tool. Each demoted agent becomes a tool on its assignee, or on
    the first surviving orchestrator (else the first survivor) when the
    assignee did not survive. Raises ValueError when nothing survives.
    """
    absorbed = {
        agent_id
        for merge in output.merged_agents
        for agent_id in merge.merged_agent_ids
        if agent_id != merge.into_agent_id
    }
    demoted = {d.original_agent_id for d in output.demoted_to_tools}

    survivors: list[ProposedAgent] = []
    seen: set[str] = set()
    for candidate in output.optimized_agents:
        if candidate.status not in _SURVIVING:
            continue
        if candidate.id in absorbed or candidate.id in demoted or candidate.id in seen:
            continue
        seen.add(candidate.id)
        survivors.append(
            ProposedAgent.model_validate(candidate.model_dump(exclude={"status", "reasoning"}))
        )
    if not survivors:
        raise ValueError("optimization left no surviving agents")

    by_id = {agent.id: agent for agent in survivors}
    originals = {agent.id: agent for agent in proposal}

    # Owned elements follow absorbed agents into the agent they merged into.
    for merge in output.merged_agents:
        target = by_id.get(merge.into_agent_id)
        if target is None:
            continue
        extra = [
            element
            for agent_id in merge.merged_agent_ids
            if agent_id in originals
            for element in originals[agent_id].owned_elements
        ]
        owned = list(dict.fromkeys([*target.owned_elements, *extra]))
        by_id[target.id] = target.model_copy(update={"owned_elements": owned})

    fallback = next((a.id for a in survivors if a.is_orchestrator), survivors[0].id)
    for tool in output.demoted_to_tools:
        owner_id = tool.assigned_to_agent_id if tool.assigned_to_agent_id in by_id else fallback
        if owner_id != tool.assigned_to_agent_id:
            logger.info(
                "Demoted tool %s: assignee %s did not survive, attaching to %s",
                tool.tool_name,
                tool.assigned_to_agent_id,
                owner_id,
            )
        owner = by_id[owner_id]
        tools = [
            *owner.tools,
            AgentTool(
                name=tool.tool_name,
                description=tool.tool_description,
                original_agent=tool.original_agent_id,
            ),
        ]
        by_id[owner_id] = owner.model_copy(update={"tools": tools})

    optimized = [by_id[agent.id] for agent in survivors]
    report = OptimizationReport(
        applied=True,
        original_agent_count=len(proposal),
        optimized_agent_count=len(optimized),
        demoted_to_tools=output.demoted_to_tools,
        moved_to_async=output.moved_to_async,
        merged_agents=output.merged_agents,
        added_hitl_points=output.added_hitl_points,
        summary=output.optimization_summary,
    )
    return optimized, report


class ProposeExecutor(StageExecutor[ProposeStageInput, Step3Data]):
    name = "propose"

    async def _run(self, stage_input: ProposeStageInput) -> StepResult[Step3Data]:
        elements = stage_input.elements
        if not elements:
            return StepResult(
                success=False, error="No classified elements", error_kind="invalid_input"
            )
        element_ids = [e.id for e in elements]
        target = stage_input.target_agent_count or default_agent_count(
            len(elements), self.settings.max_target_agents
        )

        meter = UsageMeter()
        result = await self._generate(
            "propose-agents",
            ProposeInput(
                elements=elements,
                target_agent_count=target,
                organization_context=stage_input.organization_context,
            ),
            meter,
        )
        if not result.success:
            return failed("Propose agents", result, meter)

        proposal: ProposeAgentsOutput = result.data
        agents, orphans = reconcile_ownership(proposal.agents, element_ids)
        if not agents:
            return StepResult(
                success=False,
                error="Propose agents returned no agents",
                error_kind="schema_mismatch",
                usage=meter.total,
            )

        report = OptimizationReport(
            applied=False, original_agent_count=len(agents), optimized_agent_count=len(agents)
        )
        if stage_input.optimize:
            agents, orphans, report = await self._optimize(agents, orphans, elements, meter)

        return StepResult(
            success=True,
            data=Step3Data(agents=agents, orphaned_elements=orphans, optimization=report),
            usage=meter.total,
            metadata={
                "targetAgentCount": target,
                "optimization": {"applied": report.applied, "error": report.error},
            },
        )

    async def _optimize(
        self,
        agents: list[ProposedAgent],
        orphans: list[str],
        elements: list[ClassifiedElement],
        meter: UsageMeter,
    ) -> tuple[list[ProposedAgent], list[str], OptimizationReport]:
        unoptimized = OptimizationReport(
            applied=False, original_agent_count=len(agents), optimized_agent_count=len(agents)
        )
        try:
            result = await self._generate(
                "optimize-agents", OptimizeInput(agents=agents, elements=elements), meter
            )
        except Exception as exc:
            logger.exception("Optimize call raised, keeping the unoptimized proposal")
            return agents, orphans, unoptimized.model_copy(update={"error": str(exc)})
        if not result.success:
            logger.warning(
                "Optimization skipped, keeping the unoptimized proposal: %s", result.error
            )
            return agents, orphans, unoptimized.model_copy(update={"error": str(result.error)})
        try:
            optimized, report = apply_optimization(agents, result.data)
        except ValueError as exc:
            logger.warning("Optimization discarded, keeping the unoptimized proposal: %s", exc)
            return agents, orphans, unoptimized.model_copy(update={"error": str(exc)})

        optimized, optimized_orphans = reconcile_ownership(optimized, [e.id for e in elements])
        return optimized, optimized_orphans, report
