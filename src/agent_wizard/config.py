"""Runtime settings, read from ``AGENT_WIZARD_*`` environment variables.

Usage:
    settings = Settings.from_env()
    backend = AnthropicBackend(model=settings.model, timeout=settings.provider_timeout)

The Anthropic SDK reads ``ANTHROPIC_API_KEY`` itself; it is not duplicated here.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel

DEFAULT_MODEL = "claude-sonnet-4-20250514"


class Settings(BaseModel):
    db_path: Path = Path.cwd() / ".wizard" / "wizard.db"
    model: str = DEFAULT_MODEL
    # Seconds per provider call; a timeout surfaces as ProviderError.
    provider_timeout: float = 120.0
    classify_limit: int = 50
    max_target_agents: int = 15
    tenant_id: str = "local"

    @classmethod
    def from_env(cls) -> Settings:
        values: dict[str, object] = {}
        if db := os.getenv("AGENT_WIZARD_DB"):
            values["db_path"] = Path(db)
        if model := os.getenv("AGENT_WIZARD_MODEL"):
            values["model"] = model
        if timeout := os.getenv("AGENT_WIZARD_PROVIDER_TIMEOUT"):
            values["provider_timeout"] = float(timeout)
        if limit := os.getenv("AGENT_WIZARD_CLASSIFY_LIMIT"):
            values["classify_limit"] = int(limit)
        if max_agents := os.getenv("AGENT_WIZARD_MAX_AGENTS"):
            values["max_target_agents"] = int(max_agents)
        if tenant := os.getenv("AGENT_WIZARD_TENANT"):
            values["tenant_id"] = tenant
        return cls(**values)
