"""Google Gemini ``streamGenerateContent`` adapter.

Request:
    POST {base}/v1beta/models/{model}:streamGenerateContent?alt=sse&key=<key>
    {"contents": [{"role": "user" | "model", "parts": [{"text": ...}]}],
     "generationConfig": {"maxOutputTokens": ...}}

Known limitation: tool-role messages are left out of the request and no
tool declarations are sent, so this provider only ever streams text.
"""

from typing import Any

from weaverchat.adapters.base import FrameNormalizer, ProviderAdapter
from weaverchat.models import ChatMessage, MessageRole, ToolDefinition
from weaverchat.streaming import StreamEvent


def format_gemini_contents(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Convert canonical messages to Gemini ``contents``, dropping tool results."""
    return [
        {
            "role": "model" if msg.role == MessageRole.ASSISTANT else "user",
            "parts": [{"text": msg.content}],
        }
        for msg in messages
        if msg.role != MessageRole.TOOL
    ]


class GeminiNormalizer(FrameNormalizer):
    """Normalizer for ``GenerateContentResponse`` frames (text only)."""

    def normalize(self, data: dict[str, Any]) -> list[StreamEvent]:
        candidates = data.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return []
        parts = (candidates[0].get("content") or {}).get("parts") or []
        if not parts or not isinstance(parts[0], dict):
            return []
        text = parts[0].get("text")
        return [StreamEvent.token(text)] if text else []


class GeminiAdapter(ProviderAdapter):
    """Adapter for the Gemini streaming generate-content API."""

    def build_payload(
        self, messages: list[ChatMessage], tools: list[ToolDefinition]
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": format_gemini_contents(messages),
            "generationConfig": {"maxOutputTokens": self._config.max_tokens},
        }
        if self._config.system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": self._config.system_prompt}]}
        return payload

    def create_normalizer(self) -> GeminiNormalizer:
        return GeminiNormalizer()
