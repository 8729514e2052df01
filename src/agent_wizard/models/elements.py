"""Capabilities (step1) and classified elements (step2)."""

from __future__ import annotations

from pydantic import Field

from agent_wizard.models.base import WizardModel
from agent_wizard.models.enums import ElementType


class Capability(WizardModel):
    """A candidate unit of organizational function, identified by a temporary ID."""

    id: str
    name: str
    description: str = ""
    level: int = Field(default=0, ge=0, le=2)  # 0 = top-level, 1 = child, 2 = grandchild
    parent_id: str | None = None
    domain: str = ""
    keywords: list[str] = Field(default_factory=list)


class ExtractionMetadata(WizardModel):
    source_type: str = "text"
    total_extracted: int = 0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    domains: list[str] = Field(default_factory=list)


class ExtractCapabilitiesOutput(WizardModel):
    capabilities: list[Capability]
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)


class ClassifiedElement(WizardModel):
    """A Capability annotated with the element type that steers agent design."""

    id: str
    name: str
    element_type: ElementType
    rationale: str = ""
    archimate_type: str | None = Field(default=None, alias="archiMateType")


class ClassificationSummary(WizardModel):
    agents: int = 0
    capabilities: int = 0
    data_objects: int = 0
    processes: int = 0

    @classmethod
    def count(cls, elements: list[ClassifiedElement]) -> ClassificationSummary:
        summary = cls()
        for element in elements:
            if element.element_type == ElementType.AGENT:
                summary.agents += 1
            elif element.element_type == ElementType.CAPABILITY:
                summary.capabilities += 1
            elif element.element_type == ElementType.DATA_OBJECT:
                summary.data_objects += 1
            elif element.element_type == ElementType.PROCESS:
                summary.processes += 1
        return summary


class ClassifyElementsOutput(WizardModel):
    elements: list[ClassifiedElement]
    summary: ClassificationSummary = Field(default_factory=ClassificationSummary)
