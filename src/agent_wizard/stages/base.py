"""Common machinery for stage executors.

An executor turns one stage input into a ``StepResult``. It never raises:
generation failures come back inside ``GenerationResult`` and are reported
through ``StepResult.error``; anything unexpected is logged and reported as an
``internal_error`` result.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pydantic import BaseModel

from agent_wizard.config import Settings
from agent_wizard.generation.backend import GenerationBackend, GenerationResult
from agent_wizard.models.session import StepResult, TokenUsage

logger = logging.getLogger(__name__)

I = TypeVar("I", bound=BaseModel)  # noqa: E741
O = TypeVar("O")  # noqa: E741


class UsageMeter:
    """Sums token usage across the sub-calls of one stage."""

    def __init__(self) -> None:
        self.total: TokenUsage | None = None

    def add(self, result: GenerationResult) -> None:
        self.total = result.usage if self.total is None else self.total + result.usage


class StageExecutor(ABC, Generic[I, O]):
    name: str = "stage"

    def __init__(self, backend: GenerationBackend, settings: Settings | None = None) -> None:
        self.backend = backend
        self.settings = settings or Settings()

    async def execute(self, stage_input: I) -> StepResult[O]:
        started = time.monotonic()
        logger.info("Running %s stage", self.name)
        try:
            result = await self._run(stage_input)
        except Exception as exc:
            logger.exception("%s stage raised unexpectedly", self.name)
            result = StepResult(
                success=False, error=f"{self.name} failed: {exc}", error_kind="internal_error"
            )
        result.execution_time_ms = int((time.monotonic() - started) * 1000)
        if not result.success:
            logger.warning("%s stage failed: %s", self.name, result.error)
        return result

    @abstractmethod
    async def _run(self, stage_input: I) -> StepResult[O]: ...

    async def _generate(
        self, template_name: str, typed_input: BaseModel, meter: UsageMeter
    ) -> GenerationResult:
        result = await self.backend.invoke(template_name, typed_input)
        meter.add(result)
        return result


def failed(label: str, result: GenerationResult, meter: UsageMeter, **metadata) -> StepResult:
    """Failed StepResult for a generation call, prefixed with the call's label."""
    return StepResult(
        success=False,
        error=f"{label} failed: {result.error}",
        error_kind=result.error.kind if result.error else "generation_failure",
        usage=meter.total,
        metadata=metadata,
    )
