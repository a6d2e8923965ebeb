"""Subagent definition types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SubagentType(Enum):
    """The specialised subagents a task can be delegated to."""

    GENERAL_PURPOSE = "general-purpose"
    BUILDER = "builder"
    ARCHITECT = "architect"
    REVIEWER = "reviewer"
    TESTER = "tester"
    OPTIMIZER = "optimizer"
    DATABASE = "database"
    SECURITY = "security"
    API_DESIGNER = "api-designer"
    CI_DIAGNOSTIC = "ci-diagnostic"
    CLEANUP = "cleanup"
    PATTERNS = "patterns"
    PROMPT_WRITER = "prompt-writer"
    ANALYZER = "analyzer"
    INTEGRATION = "integration"
    IMPROVEMENT_WORKFLOW = "improvement-workflow"
    AMBIGUITY = "ambiguity"
    PREFERENCE_REVIEWER = "preference-reviewer"
    PRE_COMMIT_DIAGNOSTIC = "pre-commit-diagnostic"
    OUTPUT_STYLE_SETUP = "output-style-setup"
    STATUSLINE_SETUP = "statusline-setup"


@dataclass(frozen=True, slots=True)
class SubagentConfig:
    """Static definition of a subagent type."""

    type: SubagentType
    name: str
    description: str
    tools: tuple[str, ...] = ("*",)  # "*" = every tool the parent has
    specializations: tuple[str, ...] = ()
    philosophy: str | None = None
    max_turns: int = 50

    @property
    def has_all_tools(self) -> bool:
        return "*" in self.tools


@dataclass(frozen=True, slots=True)
class SubagentTask:
    """A unit of work handed to a subagent."""

    description: str
    prompt: str
    subagent_type: SubagentType | str = SubagentType.GENERAL_PURPOSE


@dataclass(frozen=True, slots=True)
class SubagentResult:
    """Outcome of a delegated task."""

    success: bool
    message: str
    output: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.output is not None:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error
        return data
