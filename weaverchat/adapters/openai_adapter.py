"""OpenAI-compatible chat completions adapter.

Used by OpenAI itself and by every provider that exposes an
OpenAI-compatible ``/v1/chat/completions`` endpoint (Azure OpenAI,
DeepSeek, Qwen, Zhipu, Moonshot, Minimax, Baichuan, Yi).

Request:
    POST {base}/v1/chat/completions
    {"model": ..., "messages": [...], "stream": true,
     "tools": [...], "tool_choice": "auto"}

Stream frames carry ``choices[0].delta``. Text arrives in
``delta.content``; tool calls arrive in ``delta.tool_calls[i]`` keyed by a
per-turn ``index``, with the id and name in the first fragment and the
JSON arguments spread over later fragments.
"""

import json
from typing import Any, Optional

from weaverchat.adapters.base import FrameNormalizer, ProviderAdapter
from weaverchat.models import ChatMessage, MessageRole, ToolDefinition
from weaverchat.streaming import StreamEvent


def format_openai_messages(
    messages: list[ChatMessage], system_prompt: Optional[str] = None
) -> list[dict[str, Any]]:
    """Convert canonical messages to OpenAI chat messages."""
    formatted: list[dict[str, Any]] = []
    if system_prompt:
        formatted.append({"role": "system", "content": system_prompt})

    for msg in messages:
        if msg.role == MessageRole.TOOL:
            formatted.append(
                {
                    "role": "tool",
                    "content": msg.content,
                    "tool_call_id": msg.tool_call_id,
                }
            )
        elif msg.role == MessageRole.ASSISTANT and msg.tool_calls:
            formatted.append(
                {
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {
                                "name": tc.name,
                                "arguments": json.dumps(dict(tc.arguments)),
                            },
                        }
                        for tc in msg.tool_calls
                    ],
                }
            )
        else:
            formatted.append({"role": msg.role.value, "content": msg.content})

    return formatted


class OpenAINormalizer(FrameNormalizer):
    """Normalizer for ``chat.completion.chunk`` frames."""

    def __init__(self) -> None:
        self._open_indices: list[int] = []

    def normalize(self, data: dict[str, Any]) -> list[StreamEvent]:
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return []
        delta = choices[0].get("delta") or {}

        events: list[StreamEvent] = []
        content = delta.get("content")
        if content:
            events.append(StreamEvent.token(content))

        for tc in delta.get("tool_calls") or []:
            index = tc.get("index", 0)
            function = tc.get("function") or {}
            call_id = tc.get("id") or ""
            name = function.get("name") or ""
            if index not in self._open_indices:
                self._open_indices.append(index)
                events.append(StreamEvent.tool_start(index, call_id, name))
            elif call_id or name:
                events.append(StreamEvent.tool_start(index, call_id, name))
            arguments = function.get("arguments")
            if arguments:
                events.append(StreamEvent.tool_arguments(index, arguments))

        return events

    def finish(self) -> list[StreamEvent]:
        # The vendor never closes a call explicitly; every call completes at stream end.
        events = [StreamEvent.tool_complete(index) for index in self._open_indices]
        self._open_indices = []
        return events


class OpenAIAdapter(ProviderAdapter):
    """Adapter for OpenAI-compatible streaming chat completions."""

    def build_payload(
        self, messages: list[ChatMessage], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": format_openai_messages(messages, self._config.system_prompt),
            "stream": True,
        }
        if tools:
            payload["tools"] = [t.to_openai_tool() for t in tools]
            payload["tool_choice"] = "auto"
        return payload

    def create_normalizer(self) -> OpenAINormalizer:
        return OpenAINormalizer()
