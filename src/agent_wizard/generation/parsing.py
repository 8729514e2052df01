"""Structured-output recovery for generative replies.

A reply is first parsed strictly: the whole text as JSON, validated against the
template's output model. If that fails, exactly one lenient pass runs: markdown
fences and stray backticks are stripped, the first balanced ``{...}`` or
``[...]`` structure is located, and that is parsed and validated instead.
"""

from __future__ import annotations

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from agent_wizard.errors import NoStructuredContent, SchemaMismatch

M = TypeVar("M", bound=BaseModel)

_FENCE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL)
_OPENERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` without wrapping backticks."""
    stripped = text.strip()
    match = _FENCE.search(stripped)
    if match:
        return match.group(1).strip()
    # Unterminated fence: keep everything after the opener.
    if stripped.startswith("```"):
        stripped = re.sub(r"^```(?:json)?\s*", "", stripped)
    return stripped.strip("`").strip()


def find_json_structure(text: str) -> str | None:
    """Locate the first balanced JSON object or array in ``text``.

    Brackets inside string literals (including escaped quotes) are ignored.
    Returns None when no opener exists or the first structure never closes.
    """
    start = next((i for i, ch in enumerate(text) if ch in _OPENERS), None)
    if start is None:
        return None

    stack: list[str] = []
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None
            if not stack:
                return text[start : i + 1]
    return None


def parse_structured(text: str, model: type[M]) -> M:
    """Parse ``text`` into ``model``, strictly and then leniently once.

    Raises NoStructuredContent when no JSON can be recovered and SchemaMismatch
    when the recovered JSON does not validate.
    """
    try:
        return model.model_validate_json(text)
    except ValidationError:
        # Strict pass failed; fall through to the single lenient pass.
        pass

    candidate = find_json_structure(strip_code_fences(text))
    if candidate is None:
        raise NoStructuredContent("Reply contains no JSON structure", raw_response=text)
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise NoStructuredContent(f"Failed to parse JSON: {exc}", raw_response=text) from exc
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise SchemaMismatch(
            f"Validation failed: {exc.error_count()} error(s): {_summarize(exc)}",
            raw_response=text,
        ) from exc


def _summarize(exc: ValidationError, limit: int = 3) -> str:
    parts = []
    for err in exc.errors()[:limit]:
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
