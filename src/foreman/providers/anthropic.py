"""Anthropic/Claude provider."""

from __future__ import annotations

import logging
from typing import Any

from foreman.providers.base import BaseProvider, merge_messages
from foreman.types.messages import ToolCall
from foreman.types.providers import ChatMessage, Completion
from foreman.types.tools import ToolDef

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-6"


class AnthropicProvider(BaseProvider):
    """Provider for Anthropic's Claude models.

    Uses the official ``anthropic`` Python SDK.  Native ``tool_use`` blocks
    in the response become structured :class:`ToolCall` objects; text blocks
    are concatenated into the completion text.

    Parameters
    ----------
    api_key:
        Anthropic API key.  When *None* the SDK will fall back to the
        ``ANTHROPIC_API_KEY`` environment variable.
    model:
        Model ID to use for completions.
    base_url:
        Optional proxy or gateway URL.
    client:
        A pre-built ``AsyncAnthropic`` (or compatible) client.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        base_url: str | None = None,
        *,
        max_tokens: int = 8192,
        client: Any | None = None,
    ) -> None:
        super().__init__(model, max_tokens)
        if client is None:
            from anthropic import AsyncAnthropic

            kwargs: dict[str, Any] = {}
            if api_key is not None:
                kwargs["api_key"] = api_key
            if base_url is not None:
                kwargs["base_url"] = base_url
            client = AsyncAnthropic(**kwargs)
        self._client = client

    async def _complete(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
    ) -> Completion:
        system, turns = merge_messages(messages)
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in turns],
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = self._make_tool_defs(tools)

        response = await self._client.messages.create(**kwargs)
        return self._to_completion(response.content)

    @staticmethod
    def _to_completion(blocks: list[Any]) -> Completion:
        texts: list[str] = []
        calls: list[ToolCall] = []
        for block in blocks:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                texts.append(block.text)
            elif block_type == "tool_use":
                calls.append(ToolCall(name=block.name, parameters=dict(block.input or {})))
        return Completion(text="".join(texts), tool_calls=tuple(calls))
