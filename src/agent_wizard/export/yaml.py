"""YAML export of session state and apply results."""

from __future__ import annotations

from pathlib import Path

import yaml

from agent_wizard.apply import ApplyResult
from agent_wizard.models.session import SessionState


def export_state_yaml(state: SessionState, output_path: Path) -> None:
    """Export a session's ``{currentStage, stageData, status}`` as YAML."""
    data = state.to_document()
    output_path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


def export_apply_result_yaml(result: ApplyResult, output_path: Path) -> None:
    data = result.to_document()
    output_path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))
