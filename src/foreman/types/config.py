"""Configuration types for Foreman."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class LoopConfig:
    """Limits applied to a single master loop."""

    max_turns: int = 100
    max_delegation_depth: int = 3


@dataclass(slots=True)
class Settings:
    """Resolved settings for one Foreman invocation."""

    provider: str = "anthropic"
    model: str | None = None
    api_key: str | None = None
    base_url: str | None = None
    max_turns: int = 100
    max_delegation_depth: int = 3
    output_style: str | None = None
    sessions_dir: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def loop(self) -> LoopConfig:
        return LoopConfig(
            max_turns=self.max_turns,
            max_delegation_depth=self.max_delegation_depth,
        )
