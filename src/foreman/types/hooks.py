"""Hook types for the Foreman event system."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class HookType(Enum):
    """Lifecycle events that can trigger hooks."""

    PRE_TOOL_USE = "PreToolUse"
    POST_TOOL_USE = "PostToolUse"
    USER_PROMPT_SUBMIT = "UserPromptSubmit"
    NOTIFICATION = "Notification"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"
    PRE_COMPACT = "PreCompact"
    SESSION_START = "SessionStart"
    SESSION_END = "SessionEnd"


@dataclass(frozen=True, slots=True)
class Hook:
    """An external action bound to a hook type.

    ``type`` is ``"command"`` (a shell command line) or ``"script"`` (a path
    to an executable, resolved against the project directory).
    """

    type: str = "command"
    command: str | None = None
    script: str | None = None
    matcher: str | None = None  # Exact tool name for tool events
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hook:
        return cls(
            type=str(data.get("type", "command")),
            command=data.get("command"),
            script=data.get("script"),
            matcher=data.get("matcher"),
            timeout=float(data.get("timeout", 30.0)),
        )


@dataclass(frozen=True, slots=True)
class HookResult:
    """Result from running a hook."""

    success: bool
    output: str = ""
    error: str | None = None
