"""Stage orchestrator: ordering, execution and persistence of wizard stages.

The orchestrator owns no session state of its own. Each stage request loads the
session, checks the stage prerequisites, runs the executor outside any lock and,
only when the executor succeeded, merges the result into the session document.
Merges are serialized per session and run as one store transaction, so
concurrent stages for the same session never lose each other's writes.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable

from pydantic import BaseModel

from agent_wizard.config import Settings
from agent_wizard.errors import InvalidState, PrerequisiteNotMet, SessionNotFound
from agent_wizard.generation.backend import GenerationBackend
from agent_wizard.models.enums import SessionStatus, SourceType
from agent_wizard.models.network import BPMNFlow
from agent_wizard.models.session import (
    FINAL_STAGE,
    SessionState,
    StageData,
    Step1Data,
    Step2Data,
    Step3Data,
    Step4Data,
    Step5Data,
    Step6Data,
    StepResult,
    WizardSession,
    stage_key,
)
from agent_wizard.stages.agents import ProposeExecutor, ProposeStageInput
from agent_wizard.stages.base import StageExecutor
from agent_wizard.stages.classify import ClassifyExecutor, ClassifyStageInput
from agent_wizard.stages.configure import ConfigureExecutor, ConfigureStageInput
from agent_wizard.stages.connections import ConnectExecutor, ConnectStageInput
from agent_wizard.stages.extract import ExtractExecutor, ExtractStageInput
from agent_wizard.stages.process_flow import ProcessFlowExecutor, ProcessFlowStageInput
from agent_wizard.storage.sqlite import StorageEngine

logger = logging.getLogger(__name__)

# Stage 5 (process flows) is optional: stage 6 only needs stage 4.
_REQUIRED_STAGE = {1: 0, 2: 1, 3: 2, 4: 3, 5: 4, 6: 4}


def required_stage(stage: int) -> int:
    return _REQUIRED_STAGE[stage]


class StageOrchestrator:
    def __init__(
        self,
        storage: StorageEngine,
        backend: GenerationBackend,
        settings: Settings | None = None,
    ) -> None:
        self.storage = storage
        self.settings = settings or Settings()
        self.extract = ExtractExecutor(backend, self.settings)
        self.classify = ClassifyExecutor(backend, self.settings)
        self.propose = ProposeExecutor(backend, self.settings)
        self.configure = ConfigureExecutor(backend, self.settings)
        self.process_flow = ProcessFlowExecutor(backend, self.settings)
        self.connect = ConnectExecutor(backend, self.settings)
        # Entries vanish once no task holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _get_lock(self, session_id: str) -> asyncio.Lock:
        """Get or create the merge lock for a session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    # ----- Session administration -----

    async def create_session(
        self,
        tenant_id: str,
        session_name: str,
        source_type: SourceType = SourceType.TEXT,
    ) -> WizardSession:
        session_id = await self.storage.create_session(
            tenant_id=tenant_id, session_name=session_name, source_type=source_type.value
        )
        logger.info("Created wizard session %s for tenant %s", session_id, tenant_id)
        return await self.get_session(session_id, tenant_id)

    async def get_session(self, session_id: str, tenant_id: str) -> WizardSession:
        row = await self.storage.get_session(session_id, tenant_id)
        if row is None:
            raise SessionNotFound(session_id, tenant_id)
        return WizardSession.from_row(row)

    async def list_sessions(self, tenant_id: str, limit: int = 50) -> list[dict]:
        return await self.storage.list_sessions(tenant_id, limit=limit)

    async def delete_session(self, session_id: str, tenant_id: str) -> None:
        async with self._get_lock(session_id):
            if not await self.storage.delete_session(session_id, tenant_id):
                raise SessionNotFound(session_id, tenant_id)
        logger.info("Deleted wizard session %s", session_id)

    async def get_state(self, session_id: str, tenant_id: str) -> SessionState:
        session = await self.get_session(session_id, tenant_id)
        return SessionState(
            current_stage=session.current_stage,
            stage_data=session.stage_data,
            status=session.status,
        )

    # ----- Stages -----

    async def run_extract(
        self,
        session_id: str,
        tenant_id: str,
        description: str,
        *,
        custom_context: str | None = None,
        industry: str | None = None,
        source_type: SourceType | None = None,
    ) -> StepResult[Step1Data]:
        def build(session: WizardSession) -> ExtractStageInput:
            return ExtractStageInput(
                description=description,
                source_type=source_type or session.source_type,
                custom_context=custom_context,
                industry=industry,
            )

        return await self._run_stage(session_id, tenant_id, 1, self.extract, build)

    async def run_classify(
        self,
        session_id: str,
        tenant_id: str,
        *,
        selected_capability_ids: list[str] | None = None,
        custom_context: str | None = None,
    ) -> StepResult[Step2Data]:
        def build(session: WizardSession) -> ClassifyStageInput:
            step1 = session.stage_data.step1
            if step1 is None or not step1.capabilities:
                raise _missing(2, session, "no extracted capabilities")
            return ClassifyStageInput(
                capabilities=step1.capabilities,
                selected_capability_ids=selected_capability_ids,
                custom_context=custom_context,
            )

        return await self._run_stage(session_id, tenant_id, 2, self.classify, build)

    async def run_propose(
        self,
        session_id: str,
        tenant_id: str,
        *,
        target_agent_count: int | None = None,
        organization_context: str | None = None,
        optimize: bool = True,
    ) -> StepResult[Step3Data]:
        def build(session: WizardSession) -> ProposeStageInput:
            step2 = session.stage_data.step2
            if step2 is None or not step2.elements:
                raise _missing(3, session, "no classified elements")
            return ProposeStageInput(
                elements=step2.elements,
                target_agent_count=target_agent_count,
                organization_context=organization_context,
                optimize=optimize,
            )

        return await self._run_stage(session_id, tenant_id, 3, self.propose, build)

    async def run_configure(
        self,
        session_id: str,
        tenant_id: str,
        *,
        risk_tolerance: str | None = None,
        compliance_requirements: list[str] | None = None,
    ) -> StepResult[Step4Data]:
        def build(session: WizardSession) -> ConfigureStageInput:
            return ConfigureStageInput(
                agents=_agents(session, 4),
                risk_tolerance=risk_tolerance,
                compliance_requirements=compliance_requirements or [],
            )

        return await self._run_stage(session_id, tenant_id, 4, self.configure, build)

    async def run_process_flow(
        self,
        session_id: str,
        tenant_id: str,
        element_id: str,
        *,
        custom_context: str | None = None,
    ) -> StepResult[BPMNFlow]:
        def build(session: WizardSession) -> ProcessFlowStageInput:
            elements = session.stage_data.step2.elements if session.stage_data.step2 else []
            element = next((e for e in elements if e.id == element_id), None)
            if element is None:
                raise _missing(5, session, f"element {element_id} is not a classified element")
            return ProcessFlowStageInput(
                element=element, agents=_agents(session, 5), custom_context=custom_context
            )

        return await self._run_stage(session_id, tenant_id, 5, self.process_flow, build)

    async def run_connect(
        self,
        session_id: str,
        tenant_id: str,
        *,
        industry: str | None = None,
        known_systems: list[str] | None = None,
    ) -> StepResult[Step6Data]:
        def build(session: WizardSession) -> ConnectStageInput:
            step4 = session.stage_data.step4
            if step4 is None:
                raise _missing(6, session, "no pattern assignments")
            return ConnectStageInput(
                agents=_agents(session, 6),
                patterns=step4.agent_patterns,
                industry=industry,
                known_systems=known_systems or [],
            )

        return await self._run_stage(session_id, tenant_id, 6, self.connect, build)

    # ----- Internals -----

    async def _run_stage(
        self,
        session_id: str,
        tenant_id: str,
        stage: int,
        executor: StageExecutor,
        build_input: Callable[[WizardSession], BaseModel],
    ) -> StepResult:
        session = await self.get_session(session_id, tenant_id)
        _check_can_run(session, stage)
        stage_input = build_input(session)

        result = await executor.execute(stage_input)
        if not result.success:
            logger.info(
                "Stage %d failed for session %s; session left unchanged", stage, session_id
            )
            return result

        await self._merge(session_id, tenant_id, stage, result.data)
        return result

    async def _merge(self, session_id: str, tenant_id: str, stage: int, data: BaseModel) -> None:
        """Upsert one stage document and advance the stage counter, atomically."""
        async with self._get_lock(session_id):
            async with self.storage.transaction():
                row = await self.storage.get_session(session_id, tenant_id)
                if row is None:
                    raise SessionNotFound(session_id, tenant_id)
                session = WizardSession.from_row(row)
                if session.status == SessionStatus.APPLIED:
                    raise InvalidState(f"Session {session_id} was applied while stage {stage} ran")

                stage_data = _upsert(session.stage_data, stage, data)
                current_stage = max(session.current_stage, stage)
                status = session.status
                if stage == FINAL_STAGE:
                    status = SessionStatus.ANALYZED
                await self.storage.save_stage_data(
                    session_id,
                    stage_data=stage_data.to_document(),
                    current_stage=current_stage,
                    status=status.value,
                )
        logger.info(
            "Session %s: stored %s (current stage %d)", session_id, stage_key(stage), current_stage
        )


def _upsert(stage_data: StageData, stage: int, data: BaseModel) -> StageData:
    if stage == 5:
        flows = stage_data.step5 or Step5Data()
        return stage_data.with_stage("step5", flows.with_flow(data))
    return stage_data.with_stage(stage_key(stage), data)


def _check_can_run(session: WizardSession, stage: int) -> None:
    if session.status == SessionStatus.APPLIED:
        raise InvalidState(f"Session {session.id} is already applied")
    needed = required_stage(stage)
    if session.current_stage < needed:
        raise PrerequisiteNotMet(
            f"Stage {stage} requires stage {needed} to be complete "
            f"(session is at stage {session.current_stage})",
            stage=stage,
            current_stage=session.current_stage,
        )


def _missing(stage: int, session: WizardSession, what: str) -> PrerequisiteNotMet:
    return PrerequisiteNotMet(
        f"Stage {stage} cannot run: {what}", stage=stage, current_stage=session.current_stage
    )


def _agents(session: WizardSession, stage: int) -> list:
    step3: Step3Data | None = session.stage_data.step3
    if step3 is None or not step3.agents:
        raise _missing(stage, session, "no proposed agents")
    return step3.agents
