"""Tests for JSON and YAML export."""

from __future__ import annotations

import json
from pathlib import Path

import yaml

from agent_wizard.apply import AppliedAgent, ApplyResult
from agent_wizard.export.json import export_apply_result_json, export_state_json
from agent_wizard.export.yaml import export_apply_result_yaml, export_state_yaml
from agent_wizard.models.elements import Capability
from agent_wizard.models.enums import SessionStatus
from agent_wizard.models.session import SessionState, StageData, Step1Data


def _state() -> SessionState:
    step1 = Step1Data(capabilities=[Capability(id="c1", name="Handle Incidents")])
    return SessionState(
        current_stage=1, stage_data=StageData(step1=step1), status=SessionStatus.DRAFT
    )


def _result() -> ApplyResult:
    return ApplyResult(
        success=True,
        session_id="s1",
        agents_created=1,
        agents=[AppliedAgent(id="p1", name="Incident Handler", pattern="specialist")],
    )


def test_export_state_json(tmp_path: Path) -> None:
    output = tmp_path / "state.json"
    export_state_json(_state(), output)
    data = json.loads(output.read_text())
    assert data["currentStage"] == 1
    assert data["status"] == "draft"
    assert data["stageData"]["step1"]["capabilities"][0]["name"] == "Handle Incidents"


def test_export_state_yaml_keeps_key_order(tmp_path: Path) -> None:
    output = tmp_path / "state.yaml"
    export_state_yaml(_state(), output)
    data = yaml.safe_load(output.read_text())
    assert list(data) == ["currentStage", "stageData", "status"]
    assert data["stageData"]["step1"]["capabilities"][0]["id"] == "c1"


def test_export_apply_result(tmp_path: Path) -> None:
    json_path = tmp_path / "result.json"
    yaml_path = tmp_path / "result.yaml"
    export_apply_result_json(_result(), json_path)
    export_apply_result_yaml(_result(), yaml_path)

    for data in (json.loads(json_path.read_text()), yaml.safe_load(yaml_path.read_text())):
        assert data["sessionId"] == "s1"
        assert data["agentsCreated"] == 1
        assert data["agents"][0]["pattern"] == "specialist"
        assert data["dropped"]["relationships"] == 0
