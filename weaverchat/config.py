"""
Chat configuration for WeaverChat.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .providers import ProviderConfig, get_provider_config, resolve_provider


def _env_float(name: str, default: Optional[float]) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    if raw.lower() in ("none", "off"):
        return None
    return float(raw)


@dataclass
class ChatConfig:
    """Configuration for one chat conversation.

    ``provider`` is inferred from ``model`` when left unset, and
    ``base_url`` falls back to the provider's default endpoint.
    """

    model: str = ""
    provider: Optional[str] = None
    api_key: str = ""
    base_url: Optional[str] = None
    max_tokens: int = 4096
    system_prompt: Optional[str] = None
    max_turns: int = 10
    connect_timeout: float = 10.0
    read_timeout: Optional[float] = 120.0
    tool_timeout: Optional[float] = 60.0

    def __post_init__(self) -> None:
        if not self.provider:
            self.provider = resolve_provider(self.model) if self.model else "openai"
        provider_config = get_provider_config(self.provider)
        if not self.base_url:
            self.base_url = provider_config.default_base_url
        self.base_url = self.base_url.rstrip("/")
        if self.max_turns < 1:
            raise ValueError("max_turns must be at least 1")

    @property
    def provider_config(self) -> ProviderConfig:
        return get_provider_config(self.provider or "openai")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ChatConfig":
        """Load configuration from a YAML mapping."""
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> "ChatConfig":
        """Create configuration from environment variables."""
        return cls(
            model=os.environ.get("WEAVERCHAT_MODEL", ""),
            provider=os.environ.get("WEAVERCHAT_PROVIDER") or None,
            api_key=os.environ.get("WEAVERCHAT_API_KEY", ""),
            base_url=os.environ.get("WEAVERCHAT_BASE_URL") or None,
            max_tokens=int(os.environ.get("WEAVERCHAT_MAX_TOKENS", "4096")),
            system_prompt=os.environ.get("WEAVERCHAT_SYSTEM_PROMPT") or None,
            max_turns=int(os.environ.get("WEAVERCHAT_MAX_TURNS", "10")),
            read_timeout=_env_float("WEAVERCHAT_READ_TIMEOUT", 120.0),
            tool_timeout=_env_float("WEAVERCHAT_TOOL_TIMEOUT", 60.0),
        )
