"""OpenAI provider.

Works with OpenAI models and any OpenAI-compatible endpoint (Ollama,
Groq, OpenRouter) by passing a custom ``base_url``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from foreman.providers.base import BaseProvider, merge_messages
from foreman.types.messages import ToolCall
from foreman.types.providers import ChatMessage, Completion
from foreman.types.tools import ToolDef

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"


class OpenAIProvider(BaseProvider):
    """Provider for OpenAI-compatible chat completion APIs.

    Parameters
    ----------
    api_key:
        OpenAI API key.  When *None* the SDK falls back to the
        ``OPENAI_API_KEY`` environment variable.
    model:
        Model ID to use for completions.
    base_url:
        Optional custom base URL for OpenAI-compatible endpoints.
    client:
        A pre-built ``AsyncOpenAI`` (or compatible) client.
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
            from openai import AsyncOpenAI

            kwargs: dict[str, Any] = {}
            if api_key is not None:
                kwargs["api_key"] = api_key
            if base_url is not None:
                kwargs["base_url"] = base_url
            client = AsyncOpenAI(**kwargs)
        self._client = client

    async def _complete(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
    ) -> Completion:
        system, turns = merge_messages(messages)
        wire: list[dict[str, Any]] = []
        if system:
            wire.append({"role": "system", "content": system})
        wire.extend({"role": m.role, "content": m.content} for m in turns)

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": wire,
        }
        if tools:
            kwargs["tools"] = self._to_openai_tools(tools)

        response = await self._client.chat.completions.create(**kwargs)
        message = response.choices[0].message
        return Completion(
            text=message.content or "",
            tool_calls=tuple(self._parse_tool_calls(message)),
        )

    def _to_openai_tools(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t["description"],
                    "parameters": t["input_schema"],
                },
            }
            for t in self._make_tool_defs(tools)
        ]

    @staticmethod
    def _parse_tool_calls(message: Any) -> list[ToolCall]:
        calls: list[ToolCall] = []
        for tc in getattr(message, "tool_calls", None) or ():
            fn = getattr(tc, "function", None)
            if fn is None or not fn.name:
                continue
            try:
                args = json.loads(fn.arguments) if fn.arguments else {}
            except json.JSONDecodeError:
                logger.warning("Dropping %s call with malformed arguments", fn.name)
                continue
            if not isinstance(args, dict):
                logger.warning("Dropping %s call whose arguments are not an object", fn.name)
                continue
            calls.append(ToolCall(name=fn.name, parameters=args))
        return calls
