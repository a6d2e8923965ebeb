"""Exception hierarchy for Foreman."""

from __future__ import annotations


class ForemanError(Exception):
    """Base exception for Foreman."""


class ConfigurationError(ForemanError):
    """Invalid or unusable configuration."""


class ProviderError(ForemanError):
    """The LLM provider failed to produce a completion."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ToolError(ForemanError):
    """Base class for tool dispatch and execution errors."""


class ToolNotFoundError(ToolError):
    """No tool is registered under the requested name."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool {tool_name} not found")
        self.tool_name = tool_name


class ToolExecutionError(ToolError):
    """A tool ran but could not complete its work."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class MissingParameterError(ToolExecutionError):
    """A required tool parameter was not supplied."""

    def __init__(self, tool_name: str, parameter: str) -> None:
        super().__init__(tool_name, f"Missing required parameter: {parameter}")
        self.parameter = parameter


class ToolCallParseError(ForemanError):
    """An inline tool-call block could not be decoded."""


class PersistenceError(ForemanError):
    """Session state could not be written to disk."""


class HookError(ForemanError):
    """A hook command failed, timed out, or could not be found."""


class DelegationDepthError(ForemanError):
    """Subagent nesting went past the configured limit."""

    def __init__(self, depth: int, max_depth: int) -> None:
        super().__init__(
            f"Subagent delegation depth limit reached ({depth}/{max_depth})"
        )
        self.depth = depth
        self.max_depth = max_depth
