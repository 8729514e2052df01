"""Step 1: extract a flat capability list from an organization description."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from agent_wizard.generation.templates import ExtractInput
from agent_wizard.models.elements import ExtractCapabilitiesOutput
from agent_wizard.models.enums import SourceType
from agent_wizard.models.session import Step1Data, StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter, failed

logger = logging.getLogger(__name__)


class ExtractStageInput(BaseModel):
    description: str
    source_type: SourceType = SourceType.TEXT
    custom_context: str | None = None
    industry: str | None = None


class ExtractExecutor(StageExecutor[ExtractStageInput, Step1Data]):
    name = "extract"

    async def _run(self, stage_input: ExtractStageInput) -> StepResult[Step1Data]:
        if not stage_input.description.strip():
            return StepResult(
                success=False, error="Description is empty", error_kind="invalid_input"
            )

        meter = UsageMeter()
        result = await self._generate(
            "extract-capabilities",
            ExtractInput(
                description=stage_input.description,
                custom_context=stage_input.custom_context,
                industry=stage_input.industry,
            ),
            meter,
        )
        if not result.success:
            return failed("Extract capabilities", result, meter)

        output: ExtractCapabilitiesOutput = result.data
        capabilities = []
        seen: set[str] = set()
        for capability in output.capabilities:
            if capability.id in seen:
                logger.warning("Dropping duplicate capability id %s", capability.id)
                continue
            seen.add(capability.id)
            capabilities.append(capability)

        metadata = output.metadata.model_copy(
            update={
                "source_type": stage_input.source_type.value,
                "total_extracted": len(capabilities),
            }
        )
        return StepResult(
            success=True,
            data=Step1Data(capabilities=capabilities, metadata=metadata),
            usage=meter.total,
            metadata={"model": result.model, "templateVersion": result.template_version},
        )
