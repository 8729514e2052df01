"""JSON export of session state and apply results."""

from __future__ import annotations

import json
from pathlib import Path

from agent_wizard.apply import ApplyResult
from agent_wizard.models.session import SessionState


def export_state_json(state: SessionState, output_path: Path) -> None:
    """Export a session's ``{currentStage, stageData, status}`` as JSON."""
    output_path.write_text(json.dumps(state.to_document(), indent=2))


def export_apply_result_json(result: ApplyResult, output_path: Path) -> None:
    output_path.write_text(json.dumps(result.to_document(), indent=2))
