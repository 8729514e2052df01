"""Exception hierarchy for the agent wizard pipeline.

Generation failures are carried inside ``GenerationResult`` and surfaced to
callers through ``StepResult.error``; they never escape the backend adapter.
The remaining types are raised by the orchestrator and the apply engine and
always leave the session untouched.
"""

from __future__ import annotations


class WizardError(Exception):
    """Base class for every error raised by the wizard engine."""


class GenerationFailure(WizardError):
    """The generative backend could not produce a usable structured output."""

    kind = "generation_failure"

    def __init__(self, message: str, *, raw_response: str | None = None) -> None:
        self.raw_response = raw_response
        super().__init__(message)


class ProviderError(GenerationFailure):
    """Transport, authentication, rate-limit or timeout failure of the provider call."""

    kind = "provider_error"


class SchemaMismatch(GenerationFailure):
    """The provider answered with JSON that does not satisfy the output contract."""

    kind = "schema_mismatch"


class NoStructuredContent(GenerationFailure):
    """The provider answered without any parseable JSON structure."""

    kind = "no_structured_content"


class SessionNotFound(WizardError):
    def __init__(self, session_id: str, tenant_id: str | None = None) -> None:
        self.session_id = session_id
        self.tenant_id = tenant_id
        msg = f"Wizard session {session_id} not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class PrerequisiteNotMet(WizardError):
    """A stage was requested before the stages it depends on completed."""

    def __init__(self, message: str, *, stage: int, current_stage: int) -> None:
        self.stage = stage
        self.current_stage = current_stage
        super().__init__(message)


class InvalidState(WizardError):
    """The session's status or stored data does not allow the requested operation."""


class ApplyFailed(WizardError):
    """A store-level write failed while committing a session; nothing was committed."""
