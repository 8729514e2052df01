"""Shared test fixtures.

``ScriptedBackend`` stands in for the model provider: each template gets a queue
of canned replies (dicts, raw reply text, or a GenerationFailure to return as an
error). Any other exception is raised from ``invoke``, and a ``Stall`` blocks the
call until it is cancelled. Replies go through the real template registry and
the real structured output parser, so a scripted reply must satisfy the
template's output model.
"""

from __future__ import annotations

import asyncio
import json
from collections import defaultdict, deque
from typing import Any

import pytest
from pydantic import BaseModel

from agent_wizard.errors import GenerationFailure
from agent_wizard.generation.backend import GenerationBackend, GenerationResult
from agent_wizard.generation.parsing import parse_structured
from agent_wizard.generation.templates import get_template
from agent_wizard.models.session import TokenUsage


class Stall:
    """Scripted reply that never arrives; ``reached`` is set once the call is waiting."""

    def __init__(self) -> None:
        self.reached = asyncio.Event()

    async def wait_forever(self) -> None:
        self.reached.set()
        await asyncio.Event().wait()


class ScriptedBackend(GenerationBackend):
    def __init__(self) -> None:
        self.replies: dict[str, deque[Any]] = defaultdict(deque)
        self.calls: list[tuple[str, BaseModel]] = []

    def script(self, template_name: str, *replies: Any) -> ScriptedBackend:
        get_template(template_name)
        self.replies[template_name].extend(replies)
        return self

    def calls_to(self, template_name: str) -> list[BaseModel]:
        return [typed_input for name, typed_input in self.calls if name == template_name]

    async def invoke(self, template_name: str, typed_input: BaseModel) -> GenerationResult:
        template = get_template(template_name)
        assert isinstance(typed_input, template.input_model)
        self.calls.append((template_name, typed_input))

        queue = self.replies[template_name]
        if not queue:
            raise AssertionError(f"No scripted reply left for {template_name}")
        reply = queue.popleft()
        if isinstance(reply, Stall):
            await reply.wait_forever()
        if isinstance(reply, Exception) and not isinstance(reply, GenerationFailure):
            raise reply

        usage = TokenUsage(input_tokens=100, output_tokens=50)
        base = {"usage": usage, "model": "scripted", "template_version": template.version}
        if isinstance(reply, GenerationFailure):
            return GenerationResult(error=reply, **base)

        text = reply if isinstance(reply, str) else json.dumps(reply)
        try:
            data = parse_structured(text, template.output_model)
        except GenerationFailure as exc:
            return GenerationResult(error=exc, **base)
        return GenerationResult(data=data, **base)


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def stall() -> Stall:
    return Stall()
