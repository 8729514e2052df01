"""Step 4: assign behavioral patterns, then define skills shaped by those patterns."""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from agent_wizard.generation.templates import PatternsInput, SkillsInput
from agent_wizard.models.agents import (
    AgentPattern,
    AgentSkillSet,
    AssignPatternsOutput,
    DefineSkillsOutput,
    ProposedAgent,
)
from agent_wizard.models.session import Step4Data, StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter, failed

logger = logging.getLogger(__name__)


class ConfigureStageInput(BaseModel):
    agents: list[ProposedAgent]
    risk_tolerance: str | None = None
    compliance_requirements: list[str] = Field(default_factory=list)


def keep_known(entries: list, known_ids: set[str], label: str) -> list:
    """Entries keyed (``agent_id``) to a known agent, first occurrence per agent."""
    kept = []
    seen: set[str] = set()
    for entry in entries:
        if entry.agent_id not in known_ids or entry.agent_id in seen:
            logger.warning("Dropping %s for unknown or duplicate agent %s", label, entry.agent_id)
            continue
        seen.add(entry.agent_id)
        kept.append(entry)
    return kept


class ConfigureExecutor(StageExecutor[ConfigureStageInput, Step4Data]):
    name = "configure"

    async def _run(self, stage_input: ConfigureStageInput) -> StepResult[Step4Data]:
        agents = stage_input.agents
        known = {a.id for a in agents}
        meter = UsageMeter()

        patterns_result = await self._generate(
            "assign-patterns",
            PatternsInput(
                agents=agents,
                risk_tolerance=stage_input.risk_tolerance,
                compliance_requirements=stage_input.compliance_requirements,
            ),
            meter,
        )
        if not patterns_result.success:
            return failed("Assign patterns", patterns_result, meter)
        patterns_output: AssignPatternsOutput = patterns_result.data
        patterns: list[AgentPattern] = keep_known(patterns_output.agent_patterns, known, "pattern")

        skills_result = await self._generate(
            "define-skills", SkillsInput(agents=agents, patterns=patterns), meter
        )
        if not skills_result.success:
            return failed("Define skills", skills_result, meter)
        skills_output: DefineSkillsOutput = skills_result.data
        skills: list[AgentSkillSet] = keep_known(skills_output.agent_skills, known, "skill set")

        return StepResult(
            success=True,
            data=Step4Data(agent_patterns=patterns, agent_skills=skills),
            usage=meter.total,
            metadata={
                "patterns": len(patterns),
                "skills": sum(len(s.skills) for s in skills),
            },
        )
