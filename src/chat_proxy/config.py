"""Configuration models for the chat proxy."""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, Field

_ENV_FIELDS = {
    "model": "OPENAI_MODEL",
    "temperature": "CHAT_PROXY_TEMPERATURE",
    "max_tokens": "CHAT_PROXY_MAX_TOKENS",
    "moderated": "CHAT_PROXY_MODERATED",
    "deserializer_retries": "CHAT_PROXY_RETRIES",
    "validation": "CHAT_PROXY_VALIDATION",
    "verbose": "CHAT_PROXY_VERBOSE",
}


class ProxyConfig(BaseModel):
    """Configures model parameters and the deserialization retry budget."""

    model: str = Field(default="gpt-4o-mini", min_length=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8192, ge=1)
    moderated: bool = True
    deserializer_retries: int = Field(default=5, ge=0)
    validation: bool = True
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """Build a config from environment variables, keeping defaults for unset ones."""
        values: dict[str, Any] = {}
        for name, env_var in _ENV_FIELDS.items():
            raw = os.getenv(env_var)
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls.model_validate(values)


class DescriberConfig(BaseModel):
    """Configures schema rendering depth and member selection."""

    max_depth: int = Field(default=10, ge=1)
    include_methods: bool = False
    abbreviated: frozenset[str] = Field(default=frozenset({"builtins.object"}))
