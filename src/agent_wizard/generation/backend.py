"""Generation backend: typed prompt in, validated structured output out.

The backend is the only component that talks to the model provider. Every
failure (transport, reply without JSON, JSON of the wrong shape) is returned
inside ``GenerationResult`` rather than raised, so stage executors can report
it per call.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import anthropic
from anthropic import AsyncAnthropic
from pydantic import BaseModel, ConfigDict, Field

from agent_wizard.config import DEFAULT_MODEL
from agent_wizard.errors import GenerationFailure, ProviderError
from agent_wizard.generation.parsing import parse_structured
from agent_wizard.generation.templates import PromptTemplate, get_template
from agent_wizard.models.session import TokenUsage

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationResult(BaseModel, Generic[T]):
    """Outcome of one backend call; exactly one of ``data`` and ``error`` is set."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: T | None = None
    error: GenerationFailure | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    template_version: str = ""
    elapsed_ms: int = 0

    @property
    def success(self) -> bool:
        return self.error is None and self.data is not None


class GenerationBackend(ABC):
    @abstractmethod
    async def invoke(self, template_name: str, typed_input: BaseModel) -> GenerationResult:
        """Run one template against ``typed_input`` and return the validated output."""
        ...


class AnthropicBackend(GenerationBackend):
    """Generation backend on the Anthropic Messages API.

    The client is created lazily on first use. Retries are disabled: a failed
    call is reported once and the caller decides whether to rerun the stage.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        timeout: float = 120.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client: AsyncAnthropic | None = None

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            kwargs: dict = {"timeout": self._timeout, "max_retries": 0}
            if self._api_key:
                kwargs["api_key"] = self._api_key
            self._client = AsyncAnthropic(**kwargs)
        return self._client

    async def invoke(self, template_name: str, typed_input: BaseModel) -> GenerationResult:
        template = get_template(template_name)
        model = template.model or self._model
        started = time.monotonic()

        def _result(**kwargs) -> GenerationResult:
            return GenerationResult(
                model=model,
                template_version=template.version,
                elapsed_ms=int((time.monotonic() - started) * 1000),
                **kwargs,
            )

        try:
            text, usage = await self._complete(template, typed_input, model)
        except ProviderError as exc:
            logger.warning("Provider call for %s failed: %s", template_name, exc)
            return _result(error=exc)

        try:
            data = parse_structured(text, template.output_model)
        except GenerationFailure as exc:
            logger.warning("Template %s returned unusable output: %s", template_name, exc)
            return _result(error=exc, usage=usage)

        logger.debug(
            "Template %s v%s: %d in / %d out tokens",
            template_name,
            template.version,
            usage.input_tokens,
            usage.output_tokens,
        )
        return _result(data=data, usage=usage)

    async def _complete(
        self, template: PromptTemplate, typed_input: BaseModel, model: str
    ) -> tuple[str, TokenUsage]:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=model,
                max_tokens=template.max_tokens,
                temperature=template.temperature,
                system=template.render_system(),
                messages=[{"role": "user", "content": template.build_user_message(typed_input)}],
            )
        except anthropic.APIError as exc:
            raise ProviderError(f"{type(exc).__name__}: {exc}") from exc

        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        # An empty reply parses to NoStructuredContent downstream.
        text = "".join(block.text for block in response.content if block.type == "text")
        return text, usage
