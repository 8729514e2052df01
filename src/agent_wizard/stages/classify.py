"""Step 2: classify the (optionally user-selected) capabilities into element types."""

from __future__ import annotations

import logging

from pydantic import BaseModel

from agent_wizard.generation.templates import ClassifyInput
from agent_wizard.models.elements import (
    Capability,
    ClassificationSummary,
    ClassifiedElement,
    ClassifyElementsOutput,
)
from agent_wizard.models.session import Step2Data, StepResult
from agent_wizard.stages.base import StageExecutor, UsageMeter, failed

logger = logging.getLogger(__name__)


class ClassifyStageInput(BaseModel):
    capabilities: list[Capability]
    selected_capability_ids: list[str] | None = None
    custom_context: str | None = None


def select_capabilities(
    capabilities: list[Capability], selected_ids: list[str] | None, limit: int
) -> list[Capability]:
    """Apply the user's selection (keeping extraction order) and the classify cap."""
    if selected_ids is not None:
        wanted = set(selected_ids)
        capabilities = [c for c in capabilities if c.id in wanted]
    if len(capabilities) > limit:
        logger.warning(
            "Classifying the first %d of %d capabilities; the rest are ignored",
            limit,
            len(capabilities),
        )
        capabilities = capabilities[:limit]
    return capabilities


class ClassifyExecutor(StageExecutor[ClassifyStageInput, Step2Data]):
    name = "classify"

    async def _run(self, stage_input: ClassifyStageInput) -> StepResult[Step2Data]:
        submitted = select_capabilities(
            stage_input.capabilities,
            stage_input.selected_capability_ids,
            self.settings.classify_limit,
        )
        if not submitted:
            return StepResult(
                success=False,
                error="No capabilities selected for classification",
                error_kind="invalid_input",
            )

        meter = UsageMeter()
        result = await self._generate(
            "classify-elements",
            ClassifyInput(capabilities=submitted, custom_context=stage_input.custom_context),
            meter,
        )
        if not result.success:
            return failed("Classify elements", result, meter)

        output: ClassifyElementsOutput = result.data
        submitted_ids = {c.id for c in submitted}
        elements: list[ClassifiedElement] = []
        seen: set[str] = set()
        for element in output.elements:
            if element.id not in submitted_ids or element.id in seen:
                logger.warning(
                    "Dropping classified element with unknown or duplicate id %s", element.id
                )
                continue
            seen.add(element.id)
            elements.append(element)

        return StepResult(
            success=True,
            data=Step2Data(
                elements=elements,
                selected_capability_ids=[c.id for c in submitted],
                summary=ClassificationSummary.count(elements),
            ),
            usage=meter.total,
            metadata={"submitted": len(submitted), "classified": len(elements)},
        )
