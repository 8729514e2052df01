"""Tests for structured-output recovery from generative replies."""

from __future__ import annotations

import pytest

from agent_wizard.errors import NoStructuredContent, SchemaMismatch
from agent_wizard.generation.parsing import (
    find_json_structure,
    parse_structured,
    strip_code_fences,
)
from agent_wizard.models.elements import ClassifyElementsOutput, ExtractCapabilitiesOutput

_CAPABILITIES = '{"capabilities": [{"id": "c1", "name": "Handle Incidents"}]}'


def test_strict_json_parses() -> None:
    output = parse_structured(_CAPABILITIES, ExtractCapabilitiesOutput)
    assert [c.id for c in output.capabilities] == ["c1"]
    assert output.capabilities[0].name == "Handle Incidents"


def test_fenced_reply_with_prose_recovers() -> None:
    text = f"Here is the result:\n```json\n{_CAPABILITIES}\n```\nLet me know if you need more."
    output = parse_structured(text, ExtractCapabilitiesOutput)
    assert output.capabilities[0].id == "c1"


def test_prose_wrapped_object_recovers() -> None:
    text = f"Sure. {_CAPABILITIES} Those are all the capabilities I found."
    output = parse_structured(text, ExtractCapabilitiesOutput)
    assert len(output.capabilities) == 1


def test_reply_without_json_is_no_structured_content() -> None:
    with pytest.raises(NoStructuredContent) as exc_info:
        parse_structured("I could not find any capabilities.", ExtractCapabilitiesOutput)
    assert exc_info.value.raw_response == "I could not find any capabilities."
    assert exc_info.value.kind == "no_structured_content"


def test_empty_reply_is_no_structured_content() -> None:
    with pytest.raises(NoStructuredContent):
        parse_structured("", ExtractCapabilitiesOutput)


def test_truncated_json_is_no_structured_content() -> None:
    with pytest.raises(NoStructuredContent):
        parse_structured('{"capabilities": [{"id": "c1", "name": "Hand', ExtractCapabilitiesOutput)


def test_wrong_shape_is_schema_mismatch() -> None:
    text = '{"capabilities": [{"name": "Missing id"}]}'
    with pytest.raises(SchemaMismatch) as exc_info:
        parse_structured(text, ExtractCapabilitiesOutput)
    assert exc_info.value.kind == "schema_mismatch"
    assert "capabilities.0.id" in str(exc_info.value)
    assert exc_info.value.raw_response == text


def test_unknown_element_type_is_schema_mismatch() -> None:
    text = '{"elements": [{"id": "c1", "name": "X", "elementType": "Robot"}]}'
    with pytest.raises(SchemaMismatch):
        parse_structured(text, ClassifyElementsOutput)


def test_lenient_enum_accepts_other_casings() -> None:
    text = '{"elements": [{"id": "c1", "name": "X", "elementType": "data_object"}]}'
    output = parse_structured(text, ClassifyElementsOutput)
    assert output.elements[0].element_type == "DataObject"


def test_find_json_structure_ignores_brackets_in_strings() -> None:
    text = 'prefix {"a": "x } y", "b": "q\\"}"} suffix'
    assert find_json_structure(text) == '{"a": "x } y", "b": "q\\"}"}'


def test_find_json_structure_returns_first_structure() -> None:
    assert find_json_structure('[1, [2, 3]] {"a": 1}') == "[1, [2, 3]]"


def test_find_json_structure_rejects_mismatched_brackets() -> None:
    assert find_json_structure('{"a": [1}') is None


def test_find_json_structure_without_opener() -> None:
    assert find_json_structure("no json here") is None


def test_strip_code_fences_handles_unterminated_fence() -> None:
    assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'


def test_strip_code_fences_leaves_plain_text() -> None:
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
