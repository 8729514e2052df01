"""Step 5 (optional): generate a BPMN process flow for one element."""

from __future__ import annotations

from pydantic import BaseModel, Field

from agent_wizard.generation.templates import ProcessFlowInput
from agent_wizard.models.agents import ProposedAgent
from agent_wizard.models.elements import ClassifiedElement
from agent_wizard.models.network import BPMNFlow, GenerateProcessFlowOutput
from agent_wizard.models.session import StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter, failed


class ProcessFlowStageInput(BaseModel):
    element: ClassifiedElement
    agents: list[ProposedAgent] = Field(default_factory=list)
    custom_context: str | None = None


class ProcessFlowExecutor(StageExecutor[ProcessFlowStageInput, BPMNFlow]):
    name = "process-flow"

    async def _run(self, stage_input: ProcessFlowStageInput) -> StepResult[BPMNFlow]:
        element = stage_input.element
        owner = next((a for a in stage_input.agents if element.id in a.owned_elements), None)
        related: list[ProposedAgent] = []
        if owner is not None:
            lanes = set(owner.boundaries.delegates) | set(owner.boundaries.escalates)
            related = [
                a
                for a in stage_input.agents
                if a.id != owner.id and (a.id in lanes or a.name in lanes)
            ]

        meter = UsageMeter()
        result = await self._generate(
            "generate-process-flow",
            ProcessFlowInput(
                element=element,
                owner=owner,
                related_agents=related,
                custom_context=stage_input.custom_context,
            ),
            meter,
        )
        if not result.success:
            return failed("Generate process flow", result, meter, elementId=element.id)

        output: GenerateProcessFlowOutput = result.data
        flow = BPMNFlow(
            element_id=element.id,
            process_id=output.process_id or f"process-{element.id}",
            process_name=output.process_name or element.name,
            bpmn_xml=output.bpmn_xml,
            summary=output.summary,
        )
        return StepResult(
            success=True,
            data=flow,
            usage=meter.total,
            metadata={"elementId": element.id, "ownerAgentId": owner.id if owner else None},
        )
