"""Anthropic Messages API adapter.

Request:
    POST {base}/v1/messages
    x-api-key: <key>
    anthropic-version: 2023-06-01
    {"model": ..., "max_tokens": ..., "messages": [...], "stream": true,
     "tools": [...]}

Anthropic has no ``tool`` role. Tool calls are ``tool_use`` content
blocks inside assistant messages, and tool results are ``tool_result``
blocks inside user messages.

The stream is a sequence of typed events. At most one content block is
open at a time, so a tool call is tracked as the single open call between
its ``content_block_start`` and ``content_block_stop``.
"""

import logging
from typing import Any, Optional

from weaverchat.adapters.base import FrameNormalizer, ProviderAdapter
from weaverchat.models import ChatMessage, MessageRole, ToolDefinition
from weaverchat.streaming import StreamEvent

logger = logging.getLogger("weaverchat.adapters.anthropic")

ANTHROPIC_VERSION = "2023-06-01"


def format_anthropic_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert canonical messages to Anthropic messages with typed content blocks.

    Tool results are folded into the preceding user message when it already
    holds content blocks, otherwise into a new user message.
    """
    formatted: list[dict[str, Any]] = []

    for msg in messages:
        if msg.role == MessageRole.TOOL:
            block = {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id or "",
                "content": msg.content,
            }
            last = formatted[-1] if formatted else None
            if last and last["role"] == "user" and isinstance(last["content"], list):
                last["content"].append(block)
            else:
                formatted.append({"role": "user", "content": [block]})
        elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            content: list[dict[str, Any]] = []
            if msg.content:
                content.append({"type": "text", "text": msg.content})
            for tc in msg.tool_calls:
                content.append(
                    {
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": dict(tc.arguments),
                    }
                )
            formatted.append({"role": "assistant", "content": content})
        else:
            formatted.append({"role": msg.role.value, "content": msg.content})

    return formatted


class AnthropicNormalizer(FrameNormalizer):
    """Normalizer for Messages API stream events."""

    def __init__(self) -> None:
        self._open_call: Optional[int] = None

    def normalize(self, data: dict[str, Any]) -> list[StreamEvent]:
        event_type = data.get("type")

        if event_type == "content_block_start":
            block = data.get("content_block") or {}
            if block.get("type") == "tool_use":
                key = data.get("index", 0)
                self._open_call = key
                return [StreamEvent.tool_start(key, block.get("id") or "", block.get("name") or "")]
            return []

        if event_type == "content_block_delta":
            delta = data.get("delta") or {}
            delta_type = delta.get("type")
            if delta_type == "text_delta" and delta.get("text"):
                return [StreamEvent.token(delta["text"])]
            if delta_type == "input_json_delta" and self._open_call is not None:
                fragment = delta.get("partial_json") or ""
                if fragment:
                    return [StreamEvent.tool_arguments(self._open_call, fragment)]
            return []

        if event_type == "content_block_stop":
            if self._open_call is None:
                return []
            key, self._open_call = self._open_call, None
            return [StreamEvent.tool_complete(key)]

        if event_type == "error":
            error = data.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else str(error)
            return [StreamEvent.turn_error(message or "Anthropic stream error")]

        return []

    def finish(self) -> list[StreamEvent]:
        if self._open_call is None:
            return []
        logger.debug("Stream ended with tool call %s still open", self._open_call)
        key, self._open_call = self._open_call, None
        return [StreamEvent.tool_complete(key)]


class AnthropicAdapter(ProviderAdapter):
    """Adapter for the Anthropic Messages streaming API."""

    extra_headers = {
        "anthropic-version": ANTHROPIC_VERSION,
        "anthropic-dangerous-direct-browser-access": "true",
    }

    def build_payload(
        self, messages: list[ChatMessage], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "messages": format_anthropic_messages(messages),
            "stream": True,
        }
        if self._config.system_prompt:
            payload["system"] = self._config.system_prompt
        if tools:
            payload["tools"] = [t.to_anthropic_tool() for t in tools]
        return payload

    def create_normalizer(self) -> AnthropicNormalizer:
        return AnthropicNormalizer()
