"""Generation backend adapter and prompt templates."""

from agent_wizard.generation.backend import AnthropicBackend, GenerationBackend, GenerationResult
from agent_wizard.generation.templates import TEMPLATES, PromptTemplate, get_template

__all__ = [
    "AnthropicBackend",
    "GenerationBackend",
    "GenerationResult",
    "PromptTemplate",
    "TEMPLATES",
    "get_template",
]
