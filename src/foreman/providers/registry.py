"""Provider factory and model aliases."""

from __future__ import annotations

from foreman.errors import ConfigurationError
from foreman.providers.base import BaseProvider

DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-sonnet-4-6",
    "openai": "gpt-4o",
    "stub": "dev-stub",
}

ALIASES: dict[str, str] = {
    "sonnet": "claude-sonnet-4-6",
    "opus": "claude-opus-4-6",
    "haiku": "claude-haiku-4-5",
    "gpt4o": "gpt-4o",
    "gpt4o-mini": "gpt-4o-mini",
}


def resolve_model(provider: str, model: str | None = None) -> str:
    """Expand an alias, or pick the provider's default model."""
    if not model:
        return DEFAULT_MODELS.get(provider, "")
    return ALIASES.get(model, model)


def create_provider(
    provider: str,
    model: str | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
) -> BaseProvider:
    """Instantiate the provider named *provider*.

    Raises
    ------
    ConfigurationError
        When *provider* is not one of :data:`DEFAULT_MODELS`.
    """
    name = provider.lower()
    model_id = resolve_model(name, model)

    if name == "anthropic":
        from foreman.providers.anthropic import AnthropicProvider

        return AnthropicProvider(api_key=api_key, model=model_id, base_url=base_url)

    if name == "openai":
        from foreman.providers.openai import OpenAIProvider

        return OpenAIProvider(api_key=api_key, model=model_id, base_url=base_url)

    if name == "stub":
        from foreman.providers.stub import DevStubProvider

        return DevStubProvider(model=model_id)

    raise ConfigurationError(
        f"Unknown provider {provider!r}. Known providers: {sorted(DEFAULT_MODELS)}"
    )
