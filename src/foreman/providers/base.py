"""Shared provider plumbing: retries, turn merging, and tool schemas."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from foreman.errors import ProviderError
from foreman.types.providers import ChatMessage, Completion
from foreman.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

# Rate limited (429) and overloaded (529) responses are retried.
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 529})
_RETRYABLE_ERROR_NAMES: frozenset[str] = frozenset({"RateLimitError", "OverloadedError"})
_MAX_RETRIES: int = 3
_BACKOFF_BASE: float = 1.0  # first delay in seconds


def _is_retryable(exc: BaseException) -> bool:
    if type(exc).__name__ in _RETRYABLE_ERROR_NAMES:
        return True
    return getattr(exc, "status_code", None) in _RETRYABLE_STATUS_CODES


def merge_messages(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Split out system text and merge consecutive same-role messages.

    Vendor chat APIs reject empty turns and (for Anthropic) two turns from
    the same role in a row; the stored conversation can contain both.

    Returns
    -------
    tuple[str, list[ChatMessage]]
        The joined system prompt and the alternating user/assistant turns.
    """
    system_parts: list[str] = []
    merged: list[ChatMessage] = []
    for msg in messages:
        if msg.role == "system":
            system_parts.append(msg.content)
            continue
        if not msg.content.strip():
            continue
        if merged and merged[-1].role == msg.role:
            merged[-1] = ChatMessage(role=msg.role, content=f"{merged[-1].content}\n\n{msg.content}")
        else:
            merged.append(msg)
    return "\n\n".join(system_parts), merged


def tool_input_schema(tool: ToolDef) -> dict[str, Any]:
    """JSON Schema ``object`` describing the parameters of *tool*."""
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {p.name: param_schema(p) for p in tool.parameters},
    }
    required = [p.name for p in tool.parameters if p.required]
    if required:
        schema["required"] = required
    return schema


def param_schema(param: ToolParam) -> dict[str, Any]:
    prop: dict[str, Any] = {"type": param.type, "description": param.description}
    if param.enum is not None:
        prop["enum"] = list(param.enum)
    if param.default is not None:
        prop["default"] = param.default
    if param.type == "array":
        # OpenAI rejects array parameters without an items schema.
        prop["items"] = param.items or {"type": "string"}
    return prop


class BaseProvider(ABC):
    """Common base for the vendor providers.

    Sub-classes implement :meth:`_complete` for a single request.
    :meth:`complete` adds retry with exponential back-off on transient
    errors and turns whatever still fails into
    :class:`~foreman.errors.ProviderError`.

    Parameters
    ----------
    model:
        Vendor model id, e.g. ``"claude-sonnet-4-6"``.
    max_tokens:
        Upper bound on tokens generated per completion.
    """

    def __init__(self, model: str, max_tokens: int = 8192) -> None:
        self._model = model
        self._max_tokens = max_tokens

    @property
    def model_id(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        tools: list[ToolDef] | None = None,
    ) -> Completion | str:
        """Return one completion, retrying transient failures.

        Raises
        ------
        ProviderError
            When the vendor call fails for good.
        """
        try:
            return await self._with_retries(messages, tools or [])
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(
                f"{type(self).__name__} request failed: {exc}",
                status_code=getattr(exc, "status_code", None),
            ) from exc

    @abstractmethod
    async def _complete(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
    ) -> Completion | str:
        """Perform a single vendor request."""
        ...

    # ------------------------------------------------------------------
    # Helpers for sub-classes
    # ------------------------------------------------------------------

    async def _with_retries(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
    ) -> Completion | str:
        delay = _BACKOFF_BASE
        for attempt in range(_MAX_RETRIES + 1):
            try:
                return await self._complete(messages, tools)
            except Exception as exc:
                if attempt == _MAX_RETRIES or not _is_retryable(exc):
                    raise
                logger.warning(
                    "%s: transient %s (attempt %d of %d); retrying in %.1fs",
                    self._model, type(exc).__name__, attempt + 1, _MAX_RETRIES + 1, delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
        raise AssertionError("unreachable")  # pragma: no cover

    def _make_tool_defs(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """``{name, description, input_schema}`` dicts for the vendor request."""
        return [
            {"name": t.name, "description": t.description, "input_schema": tool_input_schema(t)}
            for t in tools
        ]
