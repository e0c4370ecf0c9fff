from typing import Any

from ..config import DEFAULT_MODEL, TOGETHER_BASE_URL
from .base import LLMProvider
from .providers import OpenAIProvider

# Hosts reached through the OpenAI-compatible client: name -> (base_url, default model)
_COMPATIBLE_HOSTS: dict[str, tuple[str | None, str | None]] = {
    "together": (TOGETHER_BASE_URL, DEFAULT_MODEL),
    "openai": (None, None),
}


def create_llm_provider(provider: str, **config: Any) -> LLMProvider:
    """Create an LLM provider by name.

    Hides that every supported host is reached through the same
    OpenAI-compatible client, differing only in endpoint and default model.

    Args:
        provider: 'together' (Mixtral 8x7B Instruct by default) or 'openai'
        **config: api_key (required), plus optional model, base_url and any
            AsyncOpenAI client option

    Returns:
        Initialized LLM provider

    Raises:
        ValueError: If the provider name is unknown
        TypeError: If api_key is missing

    Examples:
        >>> provider = create_llm_provider("together", api_key="...")
        >>> provider = create_llm_provider("openai", api_key="sk-...", model="gpt-4o")
    """
    name = provider.lower()
    if name not in _COMPATIBLE_HOSTS:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {', '.join(repr(p) for p in _COMPATIBLE_HOSTS)}"
        )
    if "api_key" not in config:
        raise TypeError(f"{name} provider requires 'api_key' in config")

    base_url, default_model = _COMPATIBLE_HOSTS[name]
    if base_url is not None:
        config.setdefault("base_url", base_url)
    if default_model is not None:
        config.setdefault("model", default_model)
    return OpenAIProvider(**config)
