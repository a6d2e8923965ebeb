"""Provider protocol and chat message types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from foreman.types.messages import ToolCall
from foreman.types.tools import ToolDef


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A message in the chat history (provider-agnostic format)."""

    role: str  # "user", "assistant", "system"
    content: str


@dataclass(frozen=True, slots=True)
class Completion:
    """A model response: text plus any natively structured tool calls."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol that all providers must implement.

    ``complete`` may return a bare string; tool calls are then only found
    through inline ``<tool_use>`` markers in the text.
    """

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        tools: list[ToolDef] | None = None,
    ) -> Completion | str:
        """Return one completion for the given conversation."""
        ...
