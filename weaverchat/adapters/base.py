"""Base adapter for LLM provider wire protocols.

An adapter knows two things about its vendor: how to turn the canonical
message list into an HTTP request, and how to turn one decoded stream
frame into canonical events. The agent loop only ever talks to this
interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
from urllib.parse import urlencode

import httpx

from weaverchat.config import ChatConfig
from weaverchat.models import ChatMessage, MessageRole, ToolDefinition
from weaverchat.providers import AuthScheme, ProviderConfig
from weaverchat.streaming import StreamEvent

logger = logging.getLogger("weaverchat.adapters")


@dataclass
class ProviderRequest:
    """A fully built, vendor-specific streaming request."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    payload: dict[str, Any] = field(default_factory=dict)
    method: str = "POST"

    @property
    def body(self) -> str:
        """The serialized JSON request body."""
        return json.dumps(self.payload)


class FrameNormalizer(ABC):
    """Turn-scoped mapping from decoded frame payloads to canonical events."""

    @abstractmethod
    def normalize(self, data: dict[str, Any]) -> list[StreamEvent]:
        """Map one frame payload to zero or more canonical events."""

    def finish(self) -> list[StreamEvent]:
        """Return completions for tool calls still open when the stream ends."""
        return []


def auth_headers(provider: ProviderConfig, api_key: str) -> dict[str, str]:
    """Headers carrying the API key, empty for query-parameter auth."""
    if provider.auth_scheme == AuthScheme.BEARER:
        return {"Authorization": f"Bearer {api_key}"}
    if provider.auth_scheme == AuthScheme.CUSTOM_HEADER and provider.auth_header_name:
        return {provider.auth_header_name: api_key}
    return {}


def with_query_auth(url: str, provider: ProviderConfig, api_key: str) -> str:
    """Append the ``key`` query parameter for query-parameter auth."""
    if provider.auth_scheme != AuthScheme.QUERY_PARAM:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode({'key': api_key})}"


def redact_url(url: str) -> str:
    """Hide a ``key=`` query value for logging."""
    head, sep, query = url.partition("?")
    if not sep:
        return url
    parts = [
        "key=***" if part.startswith("key=") else part for part in query.split("&")
    ]
    return f"{head}?{'&'.join(parts)}"


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort human-readable message from a failed provider response.

    Preference order: the nested ``error.message`` (or a top-level
    ``message``) of a JSON body, then the raw body text, then the HTTP
    status line.
    """
    status_line = f"HTTP {response.status_code}: {response.reason_phrase}"
    text = response.text
    try:
        data = json.loads(text)
    except ValueError:
        return text.strip() or status_line

    if isinstance(data, list) and data:
        data = data[0]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        if data.get("message"):
            return str(data["message"])
    return status_line


class ProviderAdapter(ABC):
    """Base class for provider adapters.

    Subclasses implement the vendor payload shape and stream normalizer;
    this class handles endpoint, authentication, and the common request
    envelope.
    """

    extra_headers: dict[str, str] = {}

    def __init__(self, config: ChatConfig, provider: Optional[ProviderConfig] = None):
        """Initialize the adapter.

        Args:
            config: Chat configuration (model, key, base URL, limits).
            provider: Provider metadata. Defaults to the registry entry for
                ``config.provider``.
        """
        self._config = config
        self._provider = provider or config.provider_config

    @property
    def config(self) -> ChatConfig:
        return self._config

    @property
    def provider(self) -> ProviderConfig:
        return self._provider

    def endpoint(self) -> str:
        url = f"{self._config.base_url}{self._provider.stream_path(self._config.model)}"
        return with_query_auth(url, self._provider, self._config.api_key)

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        headers.update(auth_headers(self._provider, self._config.api_key))
        headers.update(self.extra_headers)
        return headers

    def build_request(
        self,
        messages: Iterable[ChatMessage],
        tools: Optional[list[ToolDefinition]] = None,
    ) -> ProviderRequest:
        """Build the streaming request for the given conversation."""
        sendable = [m for m in messages if _is_sendable(m)]
        request = ProviderRequest(
            url=self.endpoint(),
            headers=self.headers(),
            payload=self.build_payload(sendable, tools or []),
        )
        logger.debug(
            "Built %s request to %s (%d messages, %d tools)",
            self._provider.id,
            redact_url(request.url),
            len(sendable),
            len(tools or []),
        )
        return request

    @abstractmethod
    def build_payload(
        self, messages: list[ChatMessage], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        """Return the vendor-specific JSON body."""

    @abstractmethod
    def create_normalizer(self) -> FrameNormalizer:
        """Return a fresh normalizer for one turn."""


def _is_sendable(message: ChatMessage) -> bool:
    if message.role != MessageRole.ASSISTANT:
        return True
    return bool(message.content) or bool(message.tool_calls)
