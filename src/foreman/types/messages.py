"""Message and conversation-entry types for the Foreman master loop."""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

ROLES: frozenset[str] = frozenset({"user", "assistant", "system", "tool"})


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ToolCall:
    """Model requests a tool call."""

    name: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "parameters": self.parameters}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        return cls(name=data["name"], parameters=dict(data.get("parameters") or {}))


@dataclass(frozen=True, slots=True)
class ConversationEntry:
    """One immutable record in a session's conversation log."""

    role: str  # "user", "assistant", "system", "tool"
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=utcnow)
    token_count: int = 0
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_results: tuple[Any, ...] | None = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid conversation role: {self.role!r}")

    @classmethod
    def create(
        cls,
        role: str,
        content: str,
        *,
        tool_calls: list[ToolCall] | tuple[ToolCall, ...] | None = None,
        tool_results: list[Any] | tuple[Any, ...] | None = None,
    ) -> ConversationEntry:
        """Build an entry with a fresh id, timestamp, and token estimate."""
        return cls(
            role=role,
            content=content,
            token_count=estimate_tokens(content),
            tool_calls=tuple(tool_calls) if tool_calls else None,
            tool_results=tuple(tool_results) if tool_results is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "role": self.role,
            "content": self.content,
            "tokenCount": self.token_count,
        }
        if self.tool_calls is not None:
            data["toolCalls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_results is not None:
            data["toolResults"] = list(self.tool_results)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationEntry:
        tool_calls = data.get("toolCalls")
        tool_results = data.get("toolResults")
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            role=data["role"],
            content=data.get("content", ""),
            token_count=int(data.get("tokenCount", 0)),
            tool_calls=(
                tuple(ToolCall.from_dict(tc) for tc in tool_calls)
                if tool_calls is not None else None
            ),
            tool_results=tuple(tool_results) if tool_results is not None else None,
        )


@dataclass(frozen=True, slots=True)
class LoopMessage:
    """Projection of a conversation entry handed to the master loop."""

    role: str
    content: str
    timestamp: datetime
    tool_calls: tuple[ToolCall, ...] | None = None
    tool_results: tuple[Any, ...] | None = None


@dataclass(frozen=True, slots=True)
class Result:
    """Summary of one master-loop run."""

    text: str
    session_id: str
    turns: int = 0
    tool_calls: int = 0
    stop_reason: str = "end_turn"
