"""Hook context builder for event data."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from foreman.types.hooks import HookType


@dataclass(slots=True)
class HookContext:
    """Context passed to hooks when they fire."""

    hook_type: HookType
    tool: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    session_id: str = ""
    cwd: str = ""
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "hookType": self.hook_type.value,
            "sessionId": self.session_id,
            "cwd": self.cwd,
        }
        if self.tool is not None:
            data["tool"] = self.tool
            data["parameters"] = self.parameters
        if self.result is not None:
            data["result"] = self.result
        data.update(self.extra)
        return data


def build_hook_context(
    hook_type: HookType,
    *,
    tool: str | None = None,
    parameters: dict[str, Any] | None = None,
    result: Any = None,
    session_id: str = "",
    cwd: str | Path = "",
    **extra: Any,
) -> HookContext:
    """Build a HookContext for a given event."""
    return HookContext(
        hook_type=hook_type,
        tool=tool,
        parameters=parameters or {},
        result=result,
        session_id=session_id,
        cwd=str(cwd),
        extra=extra,
    )
