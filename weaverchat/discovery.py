"""
WeaverChat - Model discovery.

Lists the models a provider offers by calling its model-list endpoint
directly. Providers without a listing endpoint, or whose listing fails,
fall back to the registry's hard-coded models.
"""

import logging
from typing import Any, Optional

import httpx

from .adapters import auth_headers
from .adapters.base import with_query_auth
from .exceptions import ProviderError
from .providers import ModelInfo, ProviderConfig, WireFormat, get_provider_config

logger = logging.getLogger("weaverchat.discovery")


def _parse_google_models(data: dict[str, Any]) -> list[ModelInfo]:
    models = []
    for record in data.get("models") or []:
        full_name = record.get("name") or ""
        if not full_name.startswith("models/gemini"):
            continue
        model_id = full_name[len("models/"):]
        models.append(ModelInfo(id=model_id, name=record.get("displayName") or model_id))
    return models


def _parse_openai_models(data: dict[str, Any]) -> list[ModelInfo]:
    return [
        ModelInfo(id=record["id"], name=record["id"])
        for record in data.get("data") or []
        if isinstance(record, dict) and record.get("id")
    ]


async def fetch_models_direct(
    provider: str,
    api_key: str,
    base_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0,
) -> list[ModelInfo]:
    """Query a provider's model-list endpoint.

    Args:
        provider: Provider id from the registry.
        api_key: Key sent with the provider's auth scheme.
        base_url: Override for the provider's default base URL.
        client: Optional shared ``httpx.AsyncClient``.
        timeout: Request timeout in seconds.

    Returns:
        The listed models; hard-coded models if the provider has no
        listing endpoint.

    Raises:
        ProviderError: The endpoint answered with a non-2xx status.
    """
    config = get_provider_config(provider)
    if not config.supports_model_list:
        return list(config.hardcoded_models)

    url = _model_list_url(config, api_key, base_url)
    headers = auth_headers(config, api_key)

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=timeout)
    try:
        response = await http.get(url, headers=headers)
    finally:
        if owns_client:
            await http.aclose()

    if not response.is_success:
        raise ProviderError(
            f"Failed to fetch models: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    data = response.json()
    if not isinstance(data, dict):
        return []
    if config.wire_format == WireFormat.GOOGLE:
        return _parse_google_models(data)
    return _parse_openai_models(data)


async def fetch_models(
    provider: str,
    api_key: str,
    base_url: Optional[str] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> list[ModelInfo]:
    """List models, falling back to the hard-coded list on any failure."""
    config = get_provider_config(provider)
    try:
        models = await fetch_models_direct(provider, api_key, base_url, client=client)
    except (ProviderError, httpx.HTTPError, ValueError) as e:
        logger.warning("Model listing for %s failed, using defaults: %s", provider, e)
        return list(config.hardcoded_models)
    return models or list(config.hardcoded_models)


def _model_list_url(config: ProviderConfig, api_key: str, base_url: Optional[str]) -> str:
    base = (base_url or config.default_base_url).rstrip("/")
    return with_query_auth(f"{base}{config.model_list_endpoint}", config, api_key)
