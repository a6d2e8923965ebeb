"""Tool definition types and protocols."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class ToolParam:
    """A parameter for a tool."""

    name: str
    type: str  # "string", "integer", "boolean", "array", "object"
    description: str
    required: bool = True
    enum: tuple[str, ...] | None = None
    default: Any = None
    items: dict[str, Any] | None = None  # For array types: JSON Schema for items


@dataclass(frozen=True, slots=True)
class ToolDef:
    """Definition of a tool exposed to the model."""

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "description": p.description,
                    "required": p.required,
                }
                for p in self.parameters
            ],
        }


@runtime_checkable
class Tool(Protocol):
    """Protocol that all tools must implement.

    A tool describes itself through ``definition`` and does its work in
    ``execute``.  It returns any JSON-serialisable value on success and
    raises on failure; the dispatcher never inspects either.
    """

    @property
    def definition(self) -> ToolDef:
        """Return the tool definition for the model."""
        ...

    async def execute(self, params: dict[str, Any]) -> Any:
        """Execute the tool with the given parameters."""
        ...
