"""The master loop: orchestrates provider, tools, hooks, and the conversation log."""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from foreman.core.conversation import ConversationManager
from foreman.core.parsing import extract_tool_calls, response_text
from foreman.errors import PersistenceError, ProviderError
from foreman.hooks.events import build_hook_context
from foreman.hooks.manager import HookManager
from foreman.observability.metrics import (
    record_hook_failures,
    record_tool_call,
    record_turn,
    timed_provider_call,
)
from foreman.output.styles import OutputStyleFormatter
from foreman.tools.manager import ToolManager
from foreman.types.config import LoopConfig
from foreman.types.hooks import HookType
from foreman.types.messages import LoopMessage, Result, ToolCall
from foreman.types.providers import ChatMessage, Completion, LLMProvider
from foreman.types.session import SessionOptions

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are Foreman, an expert software engineering assistant.

Use your tools to read, write, and edit files, run shell commands, and search the \
codebase. Act on the user's request directly; only ask questions when the request is \
genuinely ambiguous.

Available tools:
{tools}

If you cannot call tools natively, request a call by writing a block like:
<tool_use>{{"name": "Read", "parameters": {{"file_path": "README.md"}}}}</tool_use>
You may write several blocks in one reply. Reply without any block when you are done.

Working directory: {cwd}
"""

TASK_FRAMING = (
    "You have been given a task. Work through it with your tools and finish with a "
    "short summary of what you did."
)

QUERY_FRAMING = (
    "You have been asked a question. Gather whatever information you need with your "
    "tools, then answer it."
)

TOOL_RESULTS_PREFIX = "Tool results: "


def default_system_prompt(tools: ToolManager, cwd: str | Path) -> str:
    """The base system prompt listing *tools* and the inline call syntax."""
    listing = "\n".join(f"- {d.name}: {d.description}" for d in tools.get_definitions())
    return SYSTEM_PROMPT.format(tools=listing or "(none)", cwd=cwd)


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILED = "failed"


class MasterLoop:
    """Drives one conversation through provider turns and tool calls.

    Orchestrates: user text -> model -> tool calls -> model -> ... -> final
    response.  Every entry is persisted through the conversation manager
    before the loop moves on.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tools: ToolManager,
        conversation: ConversationManager,
        *,
        hooks: HookManager | None = None,
        formatter: OutputStyleFormatter | None = None,
        config: LoopConfig | None = None,
        session_options: SessionOptions | None = None,
        instructions: str | None = None,
    ) -> None:
        self._provider = provider
        self._tools = tools
        self._conversation = conversation
        self._hooks = hooks
        self._formatter = formatter or OutputStyleFormatter()
        self._config = config or LoopConfig()
        self._session_options = session_options or SessionOptions()
        self._instructions = instructions
        self._cwd = Path(conversation.project_path)
        self._state = LoopState.IDLE
        self._running = False
        self._initialized = False
        self.last_result: Result | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def config(self) -> LoopConfig:
        return self._config

    @property
    def conversation(self) -> ConversationManager:
        return self._conversation

    @property
    def tools(self) -> ToolManager:
        return self._tools

    @property
    def formatter(self) -> OutputStyleFormatter:
        return self._formatter

    @property
    def session_id(self) -> str:
        session = self._conversation.current_session
        return session.id if session is not None else ""

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    async def process_message(self, user_text: str, system_prompt: str | None = None) -> str:
        """Handle one user message and return the styled final response."""
        if not self._initialized:
            await self._ensure_session(system_prompt)
        return await self._handle(user_text)

    async def execute_task(self, task: str) -> None:
        """Run *task* in a fresh session; the final text is only persisted."""
        await self._start_fresh(TASK_FRAMING)
        await self._handle(task)

    async def execute_query(self, query: str) -> str:
        """Answer *query* in a fresh session and return the styled response."""
        await self._start_fresh(QUERY_FRAMING)
        return await self._handle(query)

    async def clear_history(self) -> None:
        """Archive the current session; the next message starts a new one."""
        await self._fire(HookType.SESSION_END)
        await self._conversation.clear_conversation()
        self._initialized = False
        self.last_result = None

    def get_message_history(self) -> list[LoopMessage]:
        return self._conversation.get_conversation_history()

    def stop(self) -> None:
        """Ask the loop to stop before its next turn."""
        self._running = False

    def build_system_prompt(self, system_prompt: str | None = None) -> str:
        """The base prompt (or *system_prompt*) with the active output style applied."""
        base = system_prompt or self._default_prompt()
        return self._formatter.format_system_prompt(base)

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    async def _ensure_session(self, system_prompt: str | None) -> None:
        session = self._conversation.current_session
        if session is None:
            session = await self._conversation.start_session(self._session_options)
            await self._fire(HookType.SESSION_START)
        if not session.conversation:
            await self._conversation.add_system_message(self.build_system_prompt(system_prompt))
        self._initialized = True

    async def _start_fresh(self, framing: str) -> None:
        await self._conversation.start_session(SessionOptions(new_session=True))
        await self._fire(HookType.SESSION_START)
        prompt = f"{self._default_prompt()}\n{framing}"
        await self._conversation.add_system_message(self._formatter.format_system_prompt(prompt))
        self._initialized = True

    def _default_prompt(self) -> str:
        prompt = default_system_prompt(self._tools, self._cwd)
        if self._instructions:
            prompt += f"\n# Project Instructions\n\n{self._instructions}\n"
        return prompt

    # ------------------------------------------------------------------
    # Turn loop
    # ------------------------------------------------------------------

    async def _handle(self, user_text: str) -> str:
        await self._conversation.add_user_message(user_text)
        await self._fire(HookType.USER_PROMPT_SUBMIT, prompt=user_text)
        final = await self._run()
        return self._formatter.apply_style(final)

    async def _run(self) -> str:
        self._state = LoopState.RUNNING
        self._running = True
        turns = 0
        tool_calls = 0
        final_text = ""
        stop_reason = "end_turn"

        try:
            while True:
                if not self._running:
                    stop_reason = "stopped"
                    break
                if turns >= self._config.max_turns:
                    logger.warning(
                        "Session %s hit the %d-turn limit; stopping",
                        self.session_id, self._config.max_turns,
                    )
                    stop_reason = "max_turns"
                    break
                turns += 1

                response = await self._call_provider()
                final_text = response_text(response)
                calls = extract_tool_calls(response)

                if not calls:
                    await self._conversation.add_assistant_message(final_text)
                    break

                # The request is persisted before any tool runs.
                await self._conversation.add_assistant_message(final_text, calls)
                results = [await self._execute_call(call) for call in calls]
                tool_calls += len(calls)
                await self._conversation.add_tool_results(results)
        except (ProviderError, PersistenceError):
            self._state = LoopState.FAILED
            raise
        finally:
            self._running = False

        self._state = LoopState.IDLE
        self.last_result = Result(
            text=final_text,
            session_id=self.session_id,
            turns=turns,
            tool_calls=tool_calls,
            stop_reason=stop_reason,
        )
        await self._fire(HookType.STOP, stopReason=stop_reason)
        return final_text

    async def _call_provider(self) -> Completion | str:
        messages = self._build_messages()
        try:
            with timed_provider_call(model=self._provider.model_id):
                response = await self._provider.complete(
                    messages, tools=self._tools.get_definitions(),
                )
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"Provider call failed: {type(exc).__name__}: {exc}") from exc
        record_turn(model=self._provider.model_id)
        return response

    def _build_messages(self) -> list[ChatMessage]:
        """Project the stored conversation into provider messages."""
        messages: list[ChatMessage] = []
        for entry in self._conversation.get_conversation_history():
            if entry.role == "tool":
                payload = json.dumps(list(entry.tool_results or ()), default=str)
                messages.append(ChatMessage(role="assistant", content=TOOL_RESULTS_PREFIX + payload))
            elif entry.role == "assistant" and entry.tool_calls and "<tool_use>" not in entry.content:
                # Natively requested calls are replayed as inline blocks.
                blocks = "\n".join(
                    f"<tool_use>{json.dumps(c.to_dict(), default=str)}</tool_use>"
                    for c in entry.tool_calls
                )
                content = f"{entry.content}\n{blocks}" if entry.content else blocks
                messages.append(ChatMessage(role="assistant", content=content))
            else:
                messages.append(ChatMessage(role=entry.role, content=entry.content))
        return messages

    async def _execute_call(self, call: ToolCall) -> Any:
        """Run one tool call between its hooks; failures become error results."""
        await self._fire(HookType.PRE_TOOL_USE, tool=call.name, parameters=call.parameters)
        is_error = False
        try:
            result = await self._tools.execute_tool(call.name, call.parameters)
        except Exception as exc:
            logger.warning("Tool %s failed: %s", call.name, exc)
            result = {"error": str(exc)}
            is_error = True
        record_tool_call(call.name, is_error=is_error)
        await self._fire(
            HookType.POST_TOOL_USE,
            tool=call.name,
            parameters=call.parameters,
            result=result,
        )
        return result

    async def _fire(self, hook_type: HookType, **fields: Any) -> None:
        """Fire hooks for an event, if a hook manager is configured."""
        if self._hooks is None:
            return
        ctx = build_hook_context(
            hook_type,
            session_id=self.session_id,
            cwd=self._cwd,
            **fields,
        )
        results = await self._hooks.fire_hook(hook_type, ctx)
        record_hook_failures(hook_type.value, sum(1 for r in results if not r.success))
