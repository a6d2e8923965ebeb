"""Type definitions for Foreman."""

from foreman.types.agents import SubagentConfig, SubagentResult, SubagentTask, SubagentType
from foreman.types.config import LoopConfig, Settings
from foreman.types.hooks import Hook, HookResult, HookType
from foreman.types.messages import ConversationEntry, LoopMessage, Result, ToolCall
from foreman.types.providers import ChatMessage, Completion, LLMProvider
from foreman.types.session import (
    CompressedHistory,
    EnvironmentSnapshot,
    FileSnapshot,
    GitStatus,
    Session,
    SessionIndexEntry,
    SessionMetadata,
    SessionOptions,
)
from foreman.types.tools import Tool, ToolDef, ToolParam

__all__ = [
    "ChatMessage",
    "Completion",
    "CompressedHistory",
    "ConversationEntry",
    "EnvironmentSnapshot",
    "FileSnapshot",
    "GitStatus",
    "Hook",
    "HookResult",
    "HookType",
    "LLMProvider",
    "LoopConfig",
    "LoopMessage",
    "Result",
    "Session",
    "SessionIndexEntry",
    "SessionMetadata",
    "SessionOptions",
    "Settings",
    "SubagentConfig",
    "SubagentResult",
    "SubagentTask",
    "SubagentType",
    "Tool",
    "ToolCall",
    "ToolDef",
    "ToolParam",
]
