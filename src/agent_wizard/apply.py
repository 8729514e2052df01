"""Apply: commit a completed session as permanent, tenant-scoped agent records."""

from __future__ import annotations

import logging
from collections.abc import Callable

import aiosqlite
from pydantic import Field

from agent_wizard.assembly import DroppedReferences, assign_permanent_ids, plan_commit
from agent_wizard.errors import ApplyFailed, InvalidState, SessionNotFound
from agent_wizard.models.base import WizardModel
from agent_wizard.models.enums import SessionStatus
from agent_wizard.models.session import WizardSession
from agent_wizard.storage.sqlite import StorageEngine

logger = logging.getLogger(__name__)

APPLY_ACTION = "WIZARD_APPLY"
MIN_APPLY_STAGE = 3


class AppliedAgent(WizardModel):
    id: str
    name: str
    pattern: str


class ApplyResult(WizardModel):
    success: bool
    session_id: str
    agents_created: int = 0
    skills_created: int = 0
    relationships_created: int = 0
    integrations_created: int = 0
    agents: list[AppliedAgent] = Field(default_factory=list)
    dropped: DroppedReferences = Field(default_factory=DroppedReferences)


def _check_applicable(session: WizardSession) -> None:
    if session.status == SessionStatus.APPLIED:
        raise InvalidState(f"Session {session.id} has already been applied")
    if session.current_stage < MIN_APPLY_STAGE:
        raise InvalidState(
            f"Session {session.id} is at stage {session.current_stage}; "
            f"apply needs stage {MIN_APPLY_STAGE} or later"
        )
    step3 = session.stage_data.step3
    if step3 is None or not step3.agents:
        raise InvalidState(f"Session {session.id} has no proposed agents to apply")


class ApplyEngine:
    """Commits a session in one transaction.

    Either every agent, skill, relationship and integration row is written
    together with the session's ``applied`` mark and the audit entry, or none
    is; a store error rolls back, marks the session ``failed`` and raises
    ApplyFailed.
    """

    def __init__(
        self, storage: StorageEngine, id_factory: Callable[[], str] | None = None
    ) -> None:
        self.storage = storage
        self._id_factory = id_factory

    async def apply(self, session_id: str, tenant_id: str) -> ApplyResult:
        session = await self._load(session_id, tenant_id)
        _check_applicable(session)

        try:
            async with self.storage.transaction():
                # Re-checked under the write lock.
                session = await self._load(session_id, tenant_id)
                _check_applicable(session)
                result = await self._commit(session, tenant_id)
        except aiosqlite.Error as exc:
            logger.exception("Apply of session %s rolled back", session_id)
            await self.storage.mark_session_failed(session_id, str(exc))
            raise ApplyFailed(f"Apply of session {session_id} failed: {exc}") from exc

        if result.dropped.total:
            logger.warning(
                "Session %s applied with unresolved references dropped: %s",
                session_id,
                result.dropped.to_document(),
            )
        logger.info("Applied session %s: %d agent(s) created", session_id, result.agents_created)
        return result

    async def _load(self, session_id: str, tenant_id: str) -> WizardSession:
        row = await self.storage.get_session(session_id, tenant_id)
        if row is None:
            raise SessionNotFound(session_id, tenant_id)
        return WizardSession.from_row(row)

    async def _commit(self, session: WizardSession, tenant_id: str) -> ApplyResult:
        """Requires an open transaction."""
        id_map = assign_permanent_ids(session.stage_data.step3.agents, self._id_factory)
        plan = plan_commit(session.stage_data, id_map)
        result = ApplyResult(success=True, session_id=session.id, dropped=plan.dropped)

        for agent in plan.agents:
            await self.storage.insert_agent(
                agent_id=agent.id,
                tenant_id=tenant_id,
                name=agent.name,
                agent_type=agent.pattern.value,
                description=agent.description,
                config=agent.config,
            )
            for skill in agent.skills:
                await self.storage.insert_skill(
                    tenant_id=tenant_id,
                    agent_id=agent.id,
                    name=skill.skill_id,
                    display_name=skill.name,
                    description=skill.description,
                    input_schema=skill.input_schema,
                    output_schema=skill.output_schema,
                    tags=skill.tags,
                    examples=[example.to_document() for example in skill.examples],
                )
                result.skills_created += 1
            result.agents.append(
                AppliedAgent(id=agent.id, name=agent.name, pattern=agent.pattern.value)
            )
        result.agents_created = len(plan.agents)

        for rel in plan.relationships:
            await self.storage.insert_relationship(
                tenant_id=tenant_id,
                source_agent_id=rel.source_agent_id,
                target_agent_id=rel.target_agent_id,
                relationship_type=rel.relationship_type,
                message_type=rel.message_type,
                description=rel.description,
                config=rel.config,
            )
        result.relationships_created = len(plan.relationships)

        for integration in plan.integrations:
            await self.storage.insert_integration(
                tenant_id=tenant_id,
                agent_id=integration.agent_id,
                integration_name=integration.name,
                integration_type=integration.integration_type,
                config=integration.config,
            )
        result.integrations_created = len(plan.integrations)

        await self.storage.mark_session_applied(session.id)
        await self.storage.append_audit(
            tenant_id=tenant_id,
            action=APPLY_ACTION,
            entity_type="wizard_session",
            entity_id=session.id,
            new_values={
                "agentsCreated": result.agents_created,
                "skillsCreated": result.skills_created,
                "relationshipsCreated": result.relationships_created,
                "integrationsCreated": result.integrations_created,
                "agentIds": [agent.id for agent in result.agents],
            },
        )
        return result
