"""Subagent lifecycle manager."""

from __future__ import annotations

import logging
from pathlib import Path

from foreman.agents.registry import get_subagent_config
from foreman.core.conversation import ConversationManager
from foreman.core.loop import MasterLoop, default_system_prompt
from foreman.core.storage import SessionStorage
from foreman.errors import DelegationDepthError
from foreman.hooks.events import build_hook_context
from foreman.hooks.manager import HookManager
from foreman.observability.metrics import record_subagent_run
from foreman.tools.manager import ToolManager
from foreman.tools.task import TaskTool
from foreman.types.agents import SubagentConfig, SubagentResult, SubagentTask
from foreman.types.config import LoopConfig
from foreman.types.hooks import HookType
from foreman.types.providers import LLMProvider
from foreman.types.session import SessionOptions

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3


class SubagentManager:
    """Runs delegated tasks in nested master loops.

    Each nested loop shares the parent's provider, hook manager, and tool
    instances, but gets its own conversation and a ``Task`` tool bound to a
    child manager one level deeper.  A manager at ``max_depth`` refuses to
    delegate and reports a failed result instead.
    """

    def __init__(
        self,
        provider: LLMProvider,
        tools: ToolManager,
        storage: SessionStorage,
        project_path: str | Path,
        *,
        hooks: HookManager | None = None,
        depth: int = 0,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._provider = provider
        self._tools = tools
        self._storage = storage
        self._project_path = Path(project_path).resolve()
        self._hooks = hooks
        self._depth = depth
        self._max_depth = max_depth
        self._owner: MasterLoop | None = None

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def max_depth(self) -> int:
        return self._max_depth

    def bind(self, loop: MasterLoop) -> None:
        """Record the loop whose Task tool delegates through this manager."""
        self._owner = loop

    async def execute_task(self, task: SubagentTask) -> SubagentResult:
        """Run *task* in a fresh subagent and report the outcome."""
        config = get_subagent_config(task.subagent_type)

        if self._depth >= self._max_depth:
            exc = DelegationDepthError(self._depth + 1, self._max_depth)
            logger.warning("Refusing to start %s subagent: %s", config.type.value, exc)
            result = SubagentResult(success=False, message=f"Task failed: {exc}", error=str(exc))
            await self._finish(config, task, result)
            return result

        loop = self._build_loop(config)
        logger.info(
            "Starting %s subagent at depth %d: %s",
            config.type.value, self._depth + 1, task.description,
        )
        try:
            output = await loop.process_message(
                build_task_prompt(task, config),
                system_prompt=self._build_system_prompt(config, loop.tools),
            )
            result = SubagentResult(
                success=True,
                message=f"Task completed by {config.name}",
                output=output,
            )
        except Exception as exc:
            logger.warning("%s subagent failed: %s", config.type.value, exc)
            result = SubagentResult(success=False, message=f"Task failed: {exc}", error=str(exc))

        await self._finish(config, task, result)
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_loop(self, config: SubagentConfig) -> MasterLoop:
        child = SubagentManager(
            self._provider,
            self._tools,
            self._storage,
            self._project_path,
            hooks=self._hooks,
            depth=self._depth + 1,
            max_depth=self._max_depth,
        )
        tools = self._tools.copy() if config.has_all_tools else self._tools.filter(config.tools)
        if "Task" in tools:
            tools.register(TaskTool(child))

        parent_id = self._owner.session_id if self._owner is not None else ""
        conversation = ConversationManager(
            self._storage,
            self._project_path,
            parent_id=parent_id or "detached",
        )
        loop = MasterLoop(
            self._provider,
            tools,
            conversation,
            hooks=self._hooks,
            config=LoopConfig(max_turns=config.max_turns, max_delegation_depth=self._max_depth),
            session_options=SessionOptions(new_session=True),
        )
        child.bind(loop)
        return loop

    def _build_system_prompt(self, config: SubagentConfig, tools: ToolManager) -> str:
        lines = [f"You are the {config.name} subagent.", config.description]
        if config.philosophy:
            lines.append(f"Philosophy: {config.philosophy}")
        if config.specializations:
            lines.append("Specializations: " + ", ".join(config.specializations))
        lines.append("")
        lines.append(default_system_prompt(tools, self._project_path))
        return "\n".join(lines)

    async def _finish(
        self,
        config: SubagentConfig,
        task: SubagentTask,
        result: SubagentResult,
    ) -> None:
        record_subagent_run(config.type.value, success=result.success)
        if self._hooks is None:
            return
        ctx = build_hook_context(
            HookType.SUBAGENT_STOP,
            session_id=self._owner.session_id if self._owner is not None else "",
            cwd=self._project_path,
            subagentType=config.type.value,
            description=task.description,
            success=result.success,
        )
        await self._hooks.fire_hook(HookType.SUBAGENT_STOP, ctx)


def build_task_prompt(task: SubagentTask, config: SubagentConfig) -> str:
    """The user message a subagent receives for *task*."""
    notes = [
        f"- You are working as the {config.name} subagent",
        "- Stay within your area of expertise",
        "- Finish the task completely and report clear results",
    ]
    if not config.has_all_tools:
        notes.append("- Your tools are limited to: " + ", ".join(config.tools))
    return (
        f"# Task Description\n{task.description}\n\n"
        f"# Task Instructions\n{task.prompt}\n\n"
        "# Important Notes\n" + "\n".join(notes) + "\n"
    )
