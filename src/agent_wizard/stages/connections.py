"""Step 6: relationships between agents and integrations with external systems.

Both calls run concurrently and fail independently; the stage succeeds only
when both do, and each failure is reported with its own message.
"""

from __future__ import annotations

import asyncio

from pydantic import BaseModel, Field

from agent_wizard.generation.templates import IntegrationsInput, RelationshipsInput
from agent_wizard.models.agents import AgentPattern, ProposedAgent
from agent_wizard.models.network import IntegrationsOutput, RelationshipsOutput
from agent_wizard.models.session import Step6Data, StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter


class ConnectStageInput(BaseModel):
    agents: list[ProposedAgent]
    patterns: list[AgentPattern] = Field(default_factory=list)
    industry: str | None = None
    known_systems: list[str] = Field(default_factory=list)


class ConnectExecutor(StageExecutor[ConnectStageInput, Step6Data]):
    name = "connect"

    async def _run(self, stage_input: ConnectStageInput) -> StepResult[Step6Data]:
        meter = UsageMeter()
        relationships_result, integrations_result = await asyncio.gather(
            self._generate(
                "relationships",
                RelationshipsInput(agents=stage_input.agents, patterns=stage_input.patterns),
                meter,
            ),
            self._generate(
                "integrations",
                IntegrationsInput(
                    agents=stage_input.agents,
                    patterns=stage_input.patterns,
                    industry=stage_input.industry,
                    known_systems=stage_input.known_systems,
                ),
                meter,
            ),
        )

        outcome = {
            "relationships": {"success": relationships_result.success},
            "integrations": {"success": integrations_result.success},
        }
        errors: list[str] = []
        kinds: list[str] = []
        for label, key, result in (
            ("Relationships", "relationships", relationships_result),
            ("Integrations", "integrations", integrations_result),
        ):
            if not result.success:
                outcome[key]["error"] = str(result.error)
                errors.append(f"{label} failed: {result.error}")
                kinds.append(result.error.kind if result.error else "generation_failure")
        if errors:
            return StepResult(
                success=False,
                error="; ".join(errors),
                error_kind=kinds[0],
                usage=meter.total,
                metadata=outcome,
            )

        relationships_output: RelationshipsOutput = relationships_result.data
        integrations_output: IntegrationsOutput = integrations_result.data
        relationships = [
            rel if rel.id else rel.model_copy(update={"id": f"rel-{n:03d}"})
            for n, rel in enumerate(relationships_output.relationships, start=1)
        ]
        return StepResult(
            success=True,
            data=Step6Data(
                relationships=relationships, integrations=integrations_output.integrations
            ),
            usage=meter.total,
            metadata=outcome,
        )
