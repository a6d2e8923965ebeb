"""Built-in subagent definitions."""

from __future__ import annotations

import logging

from foreman.types.agents import SubagentConfig, SubagentType

logger = logging.getLogger(__name__)


def _config(
    type: SubagentType,
    name: str,
    description: str,
    *,
    tools: tuple[str, ...] = ("*",),
    specializations: tuple[str, ...] = (),
    philosophy: str | None = None,
) -> SubagentConfig:
    return SubagentConfig(
        type=type,
        name=name,
        description=description,
        tools=tools,
        specializations=specializations,
        philosophy=philosophy,
    )


SUBAGENT_CONFIGS: dict[SubagentType, SubagentConfig] = {
    c.type: c
    for c in (
        _config(
            SubagentType.GENERAL_PURPOSE,
            "General Purpose",
            "Researches complex questions and carries out multi-step tasks",
            philosophy="Thorough research and systematic task completion",
        ),
        _config(
            SubagentType.BUILDER,
            "Builder",
            "Primary implementation agent; builds code from specifications",
            philosophy="Self-contained, regeneratable modules kept as simple as possible",
        ),
        _config(
            SubagentType.ARCHITECT,
            "Architect",
            "Designs systems and writes specifications for implementation",
            philosophy="Ruthless simplicity in system design",
        ),
        _config(
            SubagentType.REVIEWER,
            "Reviewer",
            "Reviews and debugs code, finding issues and suggesting improvements",
            philosophy="Systematic issue detection and quality assurance",
        ),
        _config(
            SubagentType.TESTER,
            "Tester",
            "Test coverage expert following the testing pyramid "
            "(60% unit, 30% integration, 10% end-to-end)",
            philosophy="Comprehensive coverage and test-driven development",
        ),
        _config(
            SubagentType.OPTIMIZER,
            "Optimizer",
            "Performance specialist who measures before optimising",
            philosophy="Data-driven performance improvements",
        ),
        _config(
            SubagentType.DATABASE,
            "Database",
            "Database design and optimisation specialist",
            specializations=("schema design", "query optimization", "migrations", "data architecture"),
        ),
        _config(
            SubagentType.SECURITY,
            "Security",
            "Handles authentication, authorization, encryption and vulnerability assessment",
            philosophy="Never compromise on security fundamentals",
        ),
        _config(
            SubagentType.API_DESIGNER,
            "API Designer",
            "Designs minimal, clear REST and GraphQL API contracts",
            philosophy="Small, stable connection points between components",
        ),
        _config(
            SubagentType.CI_DIAGNOSTIC,
            "CI Diagnostic",
            "Runs the full CI diagnose-and-fix cycle",
            specializations=("monitoring", "diagnostics", "fixes", "iteration"),
        ),
        _config(
            SubagentType.CLEANUP,
            "Cleanup",
            "Reviews git status after a task and removes unnecessary complexity",
            philosophy="Leave the codebase cleaner than you found it",
        ),
        _config(
            SubagentType.PATTERNS,
            "Patterns",
            "Looks for emergent patterns across diverse perspectives",
            philosophy="Find unexpected patterns through productive tension",
        ),
        _config(
            SubagentType.PROMPT_WRITER,
            "Prompt Writer",
            "Writes structured, high-quality prompts with a complexity assessment",
            philosophy="Clear, actionable prompts",
        ),
        _config(
            SubagentType.ANALYZER,
            "Analyzer",
            "Chooses triage, deep or synthesis analysis depending on context",
            specializations=("rapid filtering", "thorough analysis", "source synthesis"),
        ),
        _config(
            SubagentType.INTEGRATION,
            "Integration",
            "Connects APIs, services and external systems",
            philosophy="Clean interfaces and reliable communication",
        ),
        _config(
            SubagentType.IMPROVEMENT_WORKFLOW,
            "Improvement Workflow",
            "Validates each stage of an improvement before moving on",
            philosophy="Prevent complexity creep through staged validation",
        ),
        _config(
            SubagentType.AMBIGUITY,
            "Ambiguity",
            "Keeps productive contradictions visible and navigates uncertainty",
            philosophy="Uncertainty is information worth keeping",
        ),
        _config(
            SubagentType.PREFERENCE_REVIEWER,
            "Preference Reviewer",
            "Analyses user preferences for patterns worth contributing upstream",
        ),
        _config(
            SubagentType.PRE_COMMIT_DIAGNOSTIC,
            "Pre-commit Diagnostic",
            "Resolves local pre-commit failures before pushing",
            specializations=("hook failures", "formatting", "linting", "committability"),
        ),
        _config(
            SubagentType.OUTPUT_STYLE_SETUP,
            "Output Style Setup",
            "Creates and manages Foreman output styles",
            tools=("Read", "Write", "Edit", "Glob", "Grep"),
        ),
        _config(
            SubagentType.STATUSLINE_SETUP,
            "Statusline Setup",
            "Configures user statusline settings",
            tools=("Read", "Edit"),
        ),
    )
}


def normalize_subagent_type(value: SubagentType | str | None) -> SubagentType:
    """Map an enum, canonical name, or enum-style name to a SubagentType.

    ``"api-designer"``, ``"API_DESIGNER"`` and ``"Api Designer"`` all resolve
    to :attr:`SubagentType.API_DESIGNER`.  Anything unknown falls back to
    general-purpose.
    """
    if isinstance(value, SubagentType):
        return value
    if not value:
        return SubagentType.GENERAL_PURPOSE
    raw = str(value).strip()
    try:
        return SubagentType(raw.lower())
    except ValueError:
        pass
    key = raw.upper().replace("-", "_").replace(" ", "_")
    try:
        return SubagentType[key]
    except KeyError:
        logger.warning("Unknown subagent type %r; using general-purpose", value)
        return SubagentType.GENERAL_PURPOSE


def get_subagent_config(value: SubagentType | str | None) -> SubagentConfig:
    return SUBAGENT_CONFIGS[normalize_subagent_type(value)]


def list_subagents() -> list[SubagentConfig]:
    return list(SUBAGENT_CONFIGS.values())
