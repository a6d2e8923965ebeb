"""LLM providers for Foreman.

Public surface
--------------
- :class:`BaseProvider`      -- abstract base with retry and schema helpers
- :class:`AnthropicProvider` -- Claude (anthropic SDK)
- :class:`OpenAIProvider`    -- OpenAI / compatible endpoints (openai SDK)
- :class:`DevStubProvider`   -- explicit development stub
- :func:`create_provider`    -- factory that returns the right provider
"""

from __future__ import annotations

from foreman.providers.anthropic import AnthropicProvider
from foreman.providers.base import BaseProvider
from foreman.providers.openai import OpenAIProvider
from foreman.providers.registry import ALIASES, DEFAULT_MODELS, create_provider
from foreman.providers.stub import DevStubProvider

__all__ = [
    "ALIASES",
    "AnthropicProvider",
    "BaseProvider",
    "DEFAULT_MODELS",
    "DevStubProvider",
    "OpenAIProvider",
    "create_provider",
]
