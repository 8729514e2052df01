"""Session document, per-stage data and the stage result envelope."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from agent_wizard.models.agents import (
    AgentPattern,
    AgentSkillSet,
    OptimizationReport,
    ProposedAgent,
)
from agent_wizard.models.base import WizardModel
from agent_wizard.models.elements import (
    Capability,
    ClassificationSummary,
    ClassifiedElement,
    ExtractionMetadata,
)
from agent_wizard.models.enums import SessionStatus, SourceType
from agent_wizard.models.network import BPMNFlow, Integration, Relationship

T = TypeVar("T")

STAGE_KEYS: tuple[str, ...] = ("step1", "step2", "step3", "step4", "step5", "step6")
FINAL_STAGE = 6


def stage_key(stage: int) -> str:
    if not 1 <= stage <= FINAL_STAGE:
        raise ValueError(f"Unknown stage {stage}")
    return STAGE_KEYS[stage - 1]


# ---------------------------------------------------------------------------
# Stage documents
# ---------------------------------------------------------------------------


class Step1Data(WizardModel):
    capabilities: list[Capability] = Field(default_factory=list)
    metadata: ExtractionMetadata = Field(default_factory=ExtractionMetadata)


class Step2Data(WizardModel):
    elements: list[ClassifiedElement] = Field(default_factory=list)
    selected_capability_ids: list[str] = Field(default_factory=list)
    summary: ClassificationSummary = Field(default_factory=ClassificationSummary)


class Step3Data(WizardModel):
    agents: list[ProposedAgent] = Field(default_factory=list)
    orphaned_elements: list[str] = Field(default_factory=list)
    optimization: OptimizationReport | None = None


class Step4Data(WizardModel):
    agent_patterns: list[AgentPattern] = Field(default_factory=list)
    agent_skills: list[AgentSkillSet] = Field(default_factory=list)


class Step5Data(WizardModel):
    process_flows: dict[str, BPMNFlow] = Field(default_factory=dict)

    def with_flow(self, flow: BPMNFlow) -> Step5Data:
        """Return a copy where ``flow`` replaces any prior flow for the same element."""
        flows = dict(self.process_flows)
        flows[flow.element_id] = flow
        return Step5Data(process_flows=flows)


class Step6Data(WizardModel):
    relationships: list[Relationship] = Field(default_factory=list)
    integrations: list[Integration] = Field(default_factory=list)


STAGE_MODELS: dict[str, type[WizardModel]] = {
    "step1": Step1Data,
    "step2": Step2Data,
    "step3": Step3Data,
    "step4": Step4Data,
    "step5": Step5Data,
    "step6": Step6Data,
}


class StageData(BaseModel):
    """The persisted ``stage_data`` column: one optional document per stage key.

    Upserts go through ``with_stage`` so that writing one key never touches the
    others.
    """

    step1: Step1Data | None = None
    step2: Step2Data | None = None
    step3: Step3Data | None = None
    step4: Step4Data | None = None
    step5: Step5Data | None = None
    step6: Step6Data | None = None

    def with_stage(self, key: str, value: WizardModel) -> StageData:
        model = STAGE_MODELS.get(key)
        if model is None:
            raise KeyError(f"Unknown stage key {key!r}")
        if not isinstance(value, model):
            raise TypeError(f"{key} expects {model.__name__}, got {type(value).__name__}")
        return self.model_copy(update={key: value})

    def to_document(self) -> dict[str, Any]:
        return {
            key: doc.to_document()
            for key in STAGE_KEYS
            if (doc := getattr(self, key)) is not None
        }

    @classmethod
    def from_document(cls, raw: str | dict | None) -> StageData:
        if raw is None:
            return cls()
        data = json.loads(raw) if isinstance(raw, str) else raw
        return cls.model_validate(data)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class WizardSession(BaseModel):
    id: str
    tenant_id: str
    session_name: str
    source_type: SourceType = SourceType.TEXT
    current_stage: int = Field(default=0, ge=0, le=FINAL_STAGE)
    status: SessionStatus = SessionStatus.DRAFT
    stage_data: StageData = Field(default_factory=StageData)
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    applied_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict) -> WizardSession:
        return cls(
            id=row["id"],
            tenant_id=row["tenant_id"],
            session_name=row["session_name"],
            source_type=row["source_type"],
            current_stage=row["current_stage"],
            status=row["status"],
            stage_data=StageData.from_document(row["stage_data"]),
            error_message=row.get("error_message"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            applied_at=row.get("applied_at"),
        )


class SessionState(BaseModel):
    """Read model returned to the boundary: ``{currentStage, stageData, status}``."""

    current_stage: int
    stage_data: StageData
    status: SessionStatus

    def to_document(self) -> dict[str, Any]:
        return {
            "currentStage": self.current_stage,
            "stageData": self.stage_data.to_document(),
            "status": self.status.value,
        }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


class StepResult(BaseModel, Generic[T]):
    """Outcome of one stage executor run.

    ``data`` is set exactly when ``success`` is true; ``error`` and
    ``error_kind`` otherwise.
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_kind: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    usage: TokenUsage | None = None
    execution_time_ms: int = 0

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = {"success": self.success, "executionTimeMs": self.execution_time_ms}
        if self.success and self.data is not None:
            data = self.data
            doc["data"] = data.to_document() if hasattr(data, "to_document") else data
        else:
            doc["error"] = self.error
            if self.error_kind:
                doc["errorKind"] = self.error_kind
        if self.usage is not None:
            doc["usage"] = {
                "inputTokens": self.usage.input_tokens,
                "outputTokens": self.usage.output_tokens,
            }
        if self.metadata:
            doc["metadata"] = self.metadata
        return doc
