"""Foreman -- agent orchestration engine.

Usage:
    import foreman

    engine = foreman.build_engine(".", provider="anthropic")
    reply = await engine.loop.process_message("List the Python files here")
"""

from foreman.core.engine import Engine, build_engine, run
from foreman.core.loop import MasterLoop
from foreman.errors import (
    ConfigurationError,
    DelegationDepthError,
    ForemanError,
    PersistenceError,
    ProviderError,
    ToolError,
)
from foreman.types.agents import SubagentResult, SubagentTask, SubagentType
from foreman.types.config import LoopConfig, Settings
from foreman.types.hooks import Hook, HookResult, HookType
from foreman.types.messages import ConversationEntry, LoopMessage, Result, ToolCall
from foreman.types.providers import ChatMessage, Completion, LLMProvider
from foreman.types.session import Session, SessionOptions
from foreman.types.tools import Tool, ToolDef, ToolParam

__version__ = "0.1.0"

__all__ = [
    # Core API
    "Engine",
    "MasterLoop",
    "build_engine",
    "run",
    # Errors
    "ConfigurationError",
    "DelegationDepthError",
    "ForemanError",
    "PersistenceError",
    "ProviderError",
    "ToolError",
    # Conversation types
    "ConversationEntry",
    "LoopMessage",
    "Result",
    "Session",
    "SessionOptions",
    "ToolCall",
    # Configuration
    "Hook",
    "HookResult",
    "HookType",
    "LoopConfig",
    "Settings",
    # Providers
    "ChatMessage",
    "Completion",
    "LLMProvider",
    # Subagents
    "SubagentResult",
    "SubagentTask",
    "SubagentType",
    # Tool types
    "Tool",
    "ToolDef",
    "ToolParam",
]
