"""
WeaverChat - Streaming multi-provider chat with tool calling.

Speaks the OpenAI, Anthropic and Gemini streaming wire formats over raw
HTTP, normalizes their streams into one event vocabulary, and drives the
tool-calling loop until the model produces a final answer.
"""

from .accumulator import ToolCallAccumulator
from .adapters import (
    AnthropicAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    ProviderAdapter,
    ProviderRequest,
    get_adapter,
)
from .agent import AgentLoop, ChatSession, LoopState, StreamCallbacks
from .config import ChatConfig
from .discovery import fetch_models, fetch_models_direct
from .exceptions import (
    AuthenticationError,
    InvalidStateError,
    MaxTurnsExceededError,
    ProviderError,
    ToolInvocationError,
    ToolNotFoundError,
    TransportError,
    TurnCancelledError,
    WeaverChatError,
)
from .models import (
    ChatMessage,
    LocalTool,
    MessageRole,
    ToolCall,
    ToolCallStatus,
    ToolDefinition,
    ToolParameter,
    define_tool,
)
from .providers import (
    PROVIDERS,
    AuthScheme,
    ModelInfo,
    ProviderConfig,
    WireFormat,
    get_default_base_url,
    get_provider_config,
    resolve_provider,
    supports_model_list,
)
from .streaming import EventStream, EventType, SSEDecoder, StreamEvent
from .tools import HttpToolCatalog, LocalToolCatalog, ToolCatalog, ToolExecutor

__version__ = "0.1.0"

__all__ = [
    # Agent loop
    "AgentLoop",
    "ChatSession",
    "LoopState",
    "StreamCallbacks",
    # Config
    "ChatConfig",
    # Models
    "ChatMessage",
    "MessageRole",
    "ToolCall",
    "ToolCallStatus",
    "ToolDefinition",
    "ToolParameter",
    "LocalTool",
    "define_tool",
    # Providers
    "PROVIDERS",
    "AuthScheme",
    "ModelInfo",
    "ProviderConfig",
    "WireFormat",
    "get_default_base_url",
    "get_provider_config",
    "resolve_provider",
    "supports_model_list",
    "fetch_models",
    "fetch_models_direct",
    # Adapters
    "ProviderAdapter",
    "ProviderRequest",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "get_adapter",
    # Streaming
    "SSEDecoder",
    "EventStream",
    "EventType",
    "StreamEvent",
    "ToolCallAccumulator",
    # Tools
    "ToolCatalog",
    "LocalToolCatalog",
    "HttpToolCatalog",
    "ToolExecutor",
    # Exceptions
    "WeaverChatError",
    "ProviderError",
    "AuthenticationError",
    "TransportError",
    "InvalidStateError",
    "ToolNotFoundError",
    "ToolInvocationError",
    "MaxTurnsExceededError",
    "TurnCancelledError",
]
