"""Provider adapters for the WeaverChat streaming agent loop.

Each adapter implements one vendor wire protocol behind the same two
capabilities: ``build_request`` (canonical messages -> HTTP request) and
``create_normalizer`` (stream frames -> canonical events).

Supported wire formats:
- OpenAI-compatible chat completions (OpenAI, Azure OpenAI, DeepSeek,
  Qwen, Zhipu, Moonshot, Minimax, Baichuan, Yi)
- Anthropic Messages
- Google Gemini streamGenerateContent

Example usage:

    from weaverchat import ChatConfig
    from weaverchat.adapters import get_adapter

    config = ChatConfig(provider="anthropic", model="claude-sonnet-4-20250514", api_key="...")
    adapter = get_adapter(config)

    request = adapter.build_request(messages, tools)
    normalizer = adapter.create_normalizer()
"""

from weaverchat.adapters.anthropic_adapter import AnthropicAdapter
from weaverchat.adapters.base import (
    FrameNormalizer,
    ProviderAdapter,
    ProviderRequest,
    auth_headers,
    extract_error_message,
)
from weaverchat.adapters.gemini_adapter import GeminiAdapter
from weaverchat.adapters.openai_adapter import OpenAIAdapter
from weaverchat.config import ChatConfig
from weaverchat.providers import WireFormat

ADAPTERS: dict[WireFormat, type[ProviderAdapter]] = {
    WireFormat.OPENAI: OpenAIAdapter,
    WireFormat.ANTHROPIC: AnthropicAdapter,
    WireFormat.GOOGLE: GeminiAdapter,
}


def get_adapter(config: ChatConfig) -> ProviderAdapter:
    """Return the adapter that speaks ``config.provider``'s wire format."""
    provider = config.provider_config
    return ADAPTERS[provider.wire_format](config, provider)


__all__ = [
    "ADAPTERS",
    "ProviderAdapter",
    "ProviderRequest",
    "FrameNormalizer",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "auth_headers",
    "extract_error_message",
    "get_adapter",
]
