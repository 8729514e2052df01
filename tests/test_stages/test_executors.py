"""Tests for the stage executors, driven by a scripted generation backend."""

from __future__ import annotations

import pytest

from agent_wizard.config import Settings
from agent_wizard.errors import ProviderError
from agent_wizard.generation.backend import GenerationBackend
from agent_wizard.models.agents import AgentBoundaries, ProposedAgent
from agent_wizard.models.elements import Capability, ClassifiedElement
from agent_wizard.models.enums import ElementType, SourceType
from agent_wizard.stages.agents import (
    ProposeExecutor,
    ProposeStageInput,
    default_agent_count,
)
from agent_wizard.stages.classify import ClassifyExecutor, ClassifyStageInput
from agent_wizard.stages.configure import ConfigureExecutor, ConfigureStageInput
from agent_wizard.stages.connections import ConnectExecutor, ConnectStageInput
from agent_wizard.stages.extract import ExtractExecutor, ExtractStageInput
from agent_wizard.stages.process_flow import ProcessFlowExecutor, ProcessFlowStageInput


def _capabilities(count: int) -> list[Capability]:
    return [Capability(id=f"c{n}", name=f"Capability {n}") for n in range(1, count + 1)]


def _elements() -> list[ClassifiedElement]:
    return [
        ClassifiedElement(id="c1", name="Handle Incidents", element_type=ElementType.PROCESS),
        ClassifiedElement(id="c2", name="Notify Customers", element_type=ElementType.CAPABILITY),
    ]


def _agent(agent_id: str, name: str, owned: list[str], **extra) -> dict:
    return {"id": agent_id, "name": name, "purpose": f"{name} work", "ownedElements": owned, **extra}


def _two_agent_proposal() -> dict:
    return {
        "agents": [
            _agent("a1", "Incident Handler", ["c1"]),
            _agent("a2", "Customer Notifier", ["c2"]),
        ]
    }


class _ExplodingBackend(GenerationBackend):
    async def invoke(self, template_name, typed_input):
        raise RuntimeError("socket closed")


# ----- Extract -----


@pytest.mark.asyncio
async def test_extract_rejects_empty_description(backend) -> None:
    result = await ExtractExecutor(backend).execute(ExtractStageInput(description="   "))
    assert not result.success
    assert result.error_kind == "invalid_input"
    assert backend.calls == []


@pytest.mark.asyncio
async def test_extract_dedupes_capabilities_and_sets_metadata(backend) -> None:
    backend.script(
        "extract-capabilities",
        {
            "capabilities": [
                {"id": "c1", "name": "Handle Incidents"},
                {"id": "c1", "name": "Handle Incidents again"},
                {"id": "c2", "name": "Track SLAs", "level": 1, "parentId": "c1"},
            ],
            "metadata": {"confidence": 0.8, "domains": ["IT Operations"]},
        },
    )
    result = await ExtractExecutor(backend).execute(
        ExtractStageInput(description="We run a service desk.", source_type=SourceType.WEB)
    )

    assert result.success
    assert [c.id for c in result.data.capabilities] == ["c1", "c2"]
    assert result.data.capabilities[0].name == "Handle Incidents"
    assert result.data.metadata.source_type == "web"
    assert result.data.metadata.total_extracted == 2
    assert result.data.metadata.domains == ["IT Operations"]
    assert result.usage.input_tokens == 100


@pytest.mark.asyncio
async def test_extract_reports_provider_error(backend) -> None:
    backend.script("extract-capabilities", ProviderError("RateLimitError: slow down"))
    result = await ExtractExecutor(backend).execute(ExtractStageInput(description="Ops"))

    assert not result.success
    assert result.data is None
    assert result.error_kind == "provider_error"
    assert result.error.startswith("Extract capabilities failed")


@pytest.mark.asyncio
async def test_extract_reports_reply_without_json(backend) -> None:
    backend.script("extract-capabilities", "Sorry, I cannot help with that.")
    result = await ExtractExecutor(backend).execute(ExtractStageInput(description="Ops"))
    assert not result.success
    assert result.error_kind == "no_structured_content"


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error() -> None:
    result = await ExtractExecutor(_ExplodingBackend()).execute(
        ExtractStageInput(description="Ops")
    )
    assert not result.success
    assert result.error_kind == "internal_error"
    assert "socket closed" in result.error


# ----- Classify -----


@pytest.mark.asyncio
async def test_classify_caps_submitted_capabilities(backend) -> None:
    backend.script(
        "classify-elements",
        {
            "elements": [
                {"id": "c1", "name": "Capability 1", "elementType": "Agent"},
                {"id": "c2", "name": "Capability 2", "elementType": "Process"},
                {"id": "c9", "name": "Invented", "elementType": "Process"},
            ]
        },
    )
    executor = ClassifyExecutor(backend, Settings(classify_limit=2))
    result = await executor.execute(ClassifyStageInput(capabilities=_capabilities(3)))

    assert result.success
    submitted = backend.calls_to("classify-elements")[0]
    assert [c.id for c in submitted.capabilities] == ["c1", "c2"]
    assert [e.id for e in result.data.elements] == ["c1", "c2"]
    assert result.data.selected_capability_ids == ["c1", "c2"]
    assert result.data.summary.agents == 1
    assert result.data.summary.processes == 1


@pytest.mark.asyncio
async def test_classify_honors_selection(backend) -> None:
    backend.script(
        "classify-elements",
        {"elements": [{"id": "c3", "name": "Capability 3", "elementType": "DataObject"}]},
    )
    result = await ClassifyExecutor(backend).execute(
        ClassifyStageInput(capabilities=_capabilities(3), selected_capability_ids=["c3"])
    )
    assert result.success
    assert [c.id for c in backend.calls_to("classify-elements")[0].capabilities] == ["c3"]


@pytest.mark.asyncio
async def test_classify_with_empty_selection_fails_without_calling(backend) -> None:
    result = await ClassifyExecutor(backend).execute(
        ClassifyStageInput(capabilities=_capabilities(2), selected_capability_ids=[])
    )
    assert not result.success
    assert result.error_kind == "invalid_input"
    assert backend.calls == []


# ----- Propose / optimize -----


def test_default_agent_count() -> None:
    assert default_agent_count(1) == 1
    assert default_agent_count(7) == 3
    assert default_agent_count(100) == 15
    assert default_agent_count(100, upper=5) == 5


@pytest.mark.asyncio
async def test_propose_without_optimize_reconciles_ownership(backend) -> None:
    backend.script(
        "propose-agents",
        {"agents": [_agent("a1", "Incident Handler", ["c1", "c404"])], "orphanedElements": []},
    )
    result = await ProposeExecutor(backend).execute(
        ProposeStageInput(elements=_elements(), optimize=False)
    )

    assert result.success
    assert result.data.agents[0].owned_elements == ["c1"]
    assert result.data.orphaned_elements == ["c2"]
    assert result.data.optimization.applied is False
    assert backend.calls_to("optimize-agents") == []
    assert backend.calls_to("propose-agents")[0].target_agent_count == 1


@pytest.mark.asyncio
async def test_optimize_failure_keeps_unoptimized_proposal(backend) -> None:
    backend.script("propose-agents", _two_agent_proposal())
    backend.script("optimize-agents", ProviderError("APITimeoutError: timed out"))
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))

    assert result.success
    assert [a.id for a in result.data.agents] == ["a1", "a2"]
    assert result.data.optimization.applied is False
    assert "timed out" in result.data.optimization.error
    assert result.metadata["optimization"]["applied"] is False
    assert result.usage.input_tokens == 200


@pytest.mark.asyncio
async def test_optimize_call_that_raises_keeps_unoptimized_proposal(backend) -> None:
    backend.script("propose-agents", _two_agent_proposal())
    backend.script("optimize-agents", TimeoutError("provider hung up"))
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))

    assert result.success
    assert [a.id for a in result.data.agents] == ["a1", "a2"]
    assert result.data.optimization.applied is False
    assert result.data.optimization.error == "provider hung up"
    assert result.metadata["optimization"]["error"] == "provider hung up"


@pytest.mark.asyncio
async def test_optimize_demotes_agent_to_tool(backend) -> None:
    backend.script("propose-agents", _two_agent_proposal())
    backend.script(
        "optimize-agents",
        {
            "optimizedAgents": [
                {**_agent("a1", "Incident Handler", ["c1"]), "status": "keep"},
                {**_agent("a2", "Customer Notifier", ["c2"]), "status": "demote-to-tool"},
            ],
            "demotedToTools": [
                {
                    "originalAgentId": "a2",
                    "toolName": "notify-customer",
                    "toolDescription": "Send a status update",
                    "assignedToAgentId": "a1",
                }
            ],
            "optimizationSummary": "Notifier is a single deterministic action",
        },
    )
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))

    assert result.success
    (agent,) = result.data.agents
    assert agent.id == "a1"
    assert [(t.name, t.original_agent) for t in agent.tools] == [("notify-customer", "a2")]
    report = result.data.optimization
    assert report.applied
    assert (report.original_agent_count, report.optimized_agent_count) == (2, 1)


@pytest.mark.asyncio
async def test_optimize_merge_moves_owned_elements(backend) -> None:
    backend.script("propose-agents", _two_agent_proposal())
    backend.script(
        "optimize-agents",
        {
            "optimizedAgents": [
                {**_agent("a1", "Incident Handler", ["c1"]), "status": "merge"},
                {**_agent("a2", "Customer Notifier", ["c2"]), "status": "keep"},
            ],
            "mergedAgents": [{"mergedAgentIds": ["a1", "a2"], "intoAgentId": "a1"}],
        },
    )
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))

    assert result.success
    (agent,) = result.data.agents
    assert agent.owned_elements == ["c1", "c2"]
    assert result.data.orphaned_elements == []


@pytest.mark.asyncio
async def test_optimize_with_no_survivors_is_discarded(backend) -> None:
    backend.script("propose-agents", _two_agent_proposal())
    backend.script(
        "optimize-agents",
        {"optimizedAgents": [{**_agent("a1", "Incident Handler", ["c1"]), "status": "move-to-async"}]},
    )
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))

    assert result.success
    assert [a.id for a in result.data.agents] == ["a1", "a2"]
    assert "no surviving agents" in result.data.optimization.error


@pytest.mark.asyncio
async def test_propose_failure_fails_stage(backend) -> None:
    backend.script("propose-agents", '{"agents": [{"name": "No id"}]}')
    result = await ProposeExecutor(backend).execute(ProposeStageInput(elements=_elements()))
    assert not result.success
    assert result.error_kind == "schema_mismatch"
    assert backend.calls_to("optimize-agents") == []


# ----- Configure -----


def _proposed() -> list[ProposedAgent]:
    return [
        ProposedAgent(id="a1", name="Incident Handler", owned_elements=["c1"]),
        ProposedAgent(id="a2", name="Customer Notifier", owned_elements=["c2"]),
    ]


@pytest.mark.asyncio
async def test_configure_runs_patterns_then_skills(backend) -> None:
    backend.script(
        "assign-patterns",
        {
            "agentPatterns": [
                {"agentId": "a1", "pattern": "specialist", "autonomyLevel": "supervised"},
                {"agentId": "ghost", "pattern": "monitor"},
            ]
        },
    )
    backend.script(
        "define-skills",
        {
            "agentSkills": [
                {"agentId": "a1", "skills": [{"skillId": "triage-incident", "name": "Triage"}]}
            ]
        },
    )
    result = await ConfigureExecutor(backend).execute(
        ConfigureStageInput(agents=_proposed(), compliance_requirements=["SOX"])
    )

    assert result.success
    assert [p.agent_id for p in result.data.agent_patterns] == ["a1"]
    skills_input = backend.calls_to("define-skills")[0]
    assert [p.agent_id for p in skills_input.patterns] == ["a1"]
    assert result.metadata == {"patterns": 1, "skills": 1}


@pytest.mark.asyncio
async def test_configure_fails_when_skills_fail(backend) -> None:
    backend.script("assign-patterns", {"agentPatterns": []})
    backend.script("define-skills", "no json")
    result = await ConfigureExecutor(backend).execute(ConfigureStageInput(agents=_proposed()))
    assert not result.success
    assert result.error.startswith("Define skills failed")


# ----- Process flow -----


@pytest.mark.asyncio
async def test_process_flow_uses_owner_and_related_agents(backend) -> None:
    agents = [
        ProposedAgent(
            id="a1",
            name="Incident Handler",
            owned_elements=["c1"],
            boundaries=AgentBoundaries(delegates=["a2"]),
        ),
        ProposedAgent(id="a2", name="Customer Notifier"),
        ProposedAgent(id="a3", name="Unrelated"),
    ]
    backend.script("generate-process-flow", {"bpmnXml": "<definitions/>"})
    result = await ProcessFlowExecutor(backend).execute(
        ProcessFlowStageInput(element=_elements()[0], agents=agents)
    )

    assert result.success
    assert result.data.element_id == "c1"
    assert result.data.process_id == "process-c1"
    assert result.data.process_name == "Handle Incidents"
    flow_input = backend.calls_to("generate-process-flow")[0]
    assert flow_input.owner.id == "a1"
    assert [a.id for a in flow_input.related_agents] == ["a2"]
    assert result.metadata["ownerAgentId"] == "a1"


# ----- Connect -----


@pytest.mark.asyncio
async def test_connect_reports_both_failures(backend) -> None:
    backend.script("relationships", ProviderError("APIConnectionError: refused"))
    backend.script("integrations", '{"integrations": [{"name": "missing agent id"}]}')
    result = await ConnectExecutor(backend).execute(ConnectStageInput(agents=_proposed()))

    assert not result.success
    assert "Relationships failed" in result.error
    assert "Integrations failed" in result.error
    assert "; " in result.error
    assert result.metadata["relationships"]["success"] is False
    assert result.metadata["integrations"]["success"] is False
    assert result.error_kind == "provider_error"


@pytest.mark.asyncio
async def test_connect_fails_when_one_call_fails(backend) -> None:
    backend.script("relationships", {"relationships": []})
    backend.script("integrations", ProviderError("InternalServerError: 500"))
    result = await ConnectExecutor(backend).execute(ConnectStageInput(agents=_proposed()))

    assert not result.success
    assert result.metadata["relationships"] == {"success": True}
    assert "Relationships" not in result.error


@pytest.mark.asyncio
async def test_connect_assigns_missing_relationship_ids(backend) -> None:
    backend.script(
        "relationships",
        {
            "relationships": [
                {"sourceAgentId": "a1", "targetAgentId": "a2", "relationshipType": "delegates"},
                {"id": "custom", "sourceAgentId": "a2", "targetAgentId": "a1"},
            ]
        },
    )
    backend.script(
        "integrations",
        {"integrations": [{"agentId": "a1", "name": "ServiceNow", "type": "api"}]},
    )
    result = await ConnectExecutor(backend).execute(
        ConnectStageInput(agents=_proposed(), known_systems=["ServiceNow"])
    )

    assert result.success
    assert [r.id for r in result.data.relationships] == ["rel-001", "custom"]
    assert result.data.integrations[0].type == "API"
