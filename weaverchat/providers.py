"""
WeaverChat - Provider registry.

Static, process-wide metadata for every supported LLM vendor: how to
authenticate, where the streaming endpoint lives, which wire format the
vendor speaks, and whether it can list its models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class AuthScheme(str, Enum):
    """How the API key is presented to the provider."""

    BEARER = "bearer"
    QUERY_PARAM = "query-param"
    CUSTOM_HEADER = "custom-header"


class WireFormat(str, Enum):
    """Streaming chat protocol family spoken by a provider."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"


@dataclass(frozen=True)
class ModelInfo:
    """A model a provider offers."""

    id: str
    name: str


OPENAI_CHAT_ENDPOINT = "/v1/chat/completions"
ANTHROPIC_MESSAGES_ENDPOINT = "/v1/messages"
GOOGLE_STREAM_ENDPOINT = "/v1beta/models/{model}:streamGenerateContent?alt=sse"


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable description of one provider.

    Attributes:
        id: Registry key (``"openai"``, ``"anthropic"``, ...).
        name: Human-readable provider name.
        default_base_url: Base URL used when the caller does not supply one.
        auth_scheme: How the API key is sent.
        wire_format: Which adapter speaks to this provider.
        stream_endpoint_template: Path appended to the base URL for streaming
            chat; may contain a ``{model}`` placeholder.
        model_list_endpoint: Path for model listing, empty if unsupported.
        auth_header_name: Header carrying the key for ``custom-header`` auth.
        hardcoded_models: Models offered when listing is unsupported or fails.
    """

    id: str
    name: str
    default_base_url: str
    auth_scheme: AuthScheme
    wire_format: WireFormat = WireFormat.OPENAI
    stream_endpoint_template: str = OPENAI_CHAT_ENDPOINT
    model_list_endpoint: str = ""
    auth_header_name: Optional[str] = None
    hardcoded_models: tuple[ModelInfo, ...] = field(default_factory=tuple)

    @property
    def supports_model_list(self) -> bool:
        return self.model_list_endpoint != ""

    def stream_path(self, model: str) -> str:
        return self.stream_endpoint_template.format(model=model)


PROVIDERS: dict[str, ProviderConfig] = {
    "openai": ProviderConfig(
        id="openai",
        name="OpenAI",
        default_base_url="https://api.openai.com",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
    "anthropic": ProviderConfig(
        id="anthropic",
        name="Anthropic",
        default_base_url="https://api.anthropic.com",
        auth_scheme=AuthScheme.CUSTOM_HEADER,
        auth_header_name="x-api-key",
        wire_format=WireFormat.ANTHROPIC,
        stream_endpoint_template=ANTHROPIC_MESSAGES_ENDPOINT,
        hardcoded_models=(
            ModelInfo("claude-opus-4-20250514", "Claude Opus 4"),
            ModelInfo("claude-sonnet-4-20250514", "Claude Sonnet 4"),
            ModelInfo("claude-3-7-sonnet-20250219", "Claude 3.7 Sonnet"),
            ModelInfo("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
            ModelInfo("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
        ),
    ),
    "google": ProviderConfig(
        id="google",
        name="Google Gemini",
        default_base_url="https://generativelanguage.googleapis.com",
        auth_scheme=AuthScheme.QUERY_PARAM,
        wire_format=WireFormat.GOOGLE,
        stream_endpoint_template=GOOGLE_STREAM_ENDPOINT,
        model_list_endpoint="/v1beta/models",
    ),
    "azure": ProviderConfig(
        id="azure",
        name="Azure OpenAI",
        default_base_url="https://<your-resource>.openai.azure.com",
        auth_scheme=AuthScheme.CUSTOM_HEADER,
        auth_header_name="api-key",
        hardcoded_models=(
            ModelInfo("gpt-4o", "GPT-4o"),
            ModelInfo("gpt-4o-mini", "GPT-4o Mini"),
            ModelInfo("gpt-4-turbo", "GPT-4 Turbo"),
            ModelInfo("gpt-4", "GPT-4"),
            ModelInfo("gpt-35-turbo", "GPT-3.5 Turbo"),
        ),
    ),
    "deepseek": ProviderConfig(
        id="deepseek",
        name="DeepSeek",
        default_base_url="https://api.deepseek.com",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
    "qwen": ProviderConfig(
        id="qwen",
        name="Qwen (DashScope)",
        default_base_url="https://dashscope.aliyuncs.com/compatible-mode",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
    "zhipu": ProviderConfig(
        id="zhipu",
        name="Zhipu AI (GLM)",
        default_base_url="https://open.bigmodel.cn/api/paas",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v4/models",
    ),
    "moonshot": ProviderConfig(
        id="moonshot",
        name="Moonshot (Kimi)",
        default_base_url="https://api.moonshot.cn",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
    "minimax": ProviderConfig(
        id="minimax",
        name="Minimax",
        default_base_url="https://api.minimax.chat",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
    "baichuan": ProviderConfig(
        id="baichuan",
        name="Baichuan",
        default_base_url="https://api.baichuan-ai.com",
        auth_scheme=AuthScheme.BEARER,
        hardcoded_models=(
            ModelInfo("Baichuan4", "Baichuan 4"),
            ModelInfo("Baichuan3-Turbo", "Baichuan 3 Turbo"),
            ModelInfo("Baichuan3-Turbo-128k", "Baichuan 3 Turbo 128K"),
            ModelInfo("Baichuan2-Turbo", "Baichuan 2 Turbo"),
        ),
    ),
    "yi": ProviderConfig(
        id="yi",
        name="Yi (01.AI)",
        default_base_url="https://api.lingyiwanwu.com",
        auth_scheme=AuthScheme.BEARER,
        model_list_endpoint="/v1/models",
    ),
}


def get_provider_config(provider: str) -> ProviderConfig:
    """Look up a provider, raising ``ValueError`` for unknown ids."""
    try:
        return PROVIDERS[provider]
    except KeyError:
        raise ValueError(
            f"Unknown provider: {provider!r}. Known providers: {', '.join(PROVIDERS)}"
        ) from None


def get_default_base_url(provider: str) -> str:
    return get_provider_config(provider).default_base_url


def supports_model_list(provider: str) -> bool:
    return get_provider_config(provider).supports_model_list


def resolve_provider(model: str) -> str:
    """Infer a provider id from a model name."""
    m = model.lower()
    if m.startswith("claude"):
        return "anthropic"
    if m.startswith("gemini"):
        return "google"
    if m.startswith("deepseek"):
        return "deepseek"
    if m.startswith("qwen"):
        return "qwen"
    if m.startswith("glm"):
        return "zhipu"
    if m.startswith("moonshot") or m.startswith("kimi"):
        return "moonshot"
    if m.startswith("baichuan"):
        return "baichuan"
    if m.startswith("yi-"):
        return "yi"
    return "openai"
