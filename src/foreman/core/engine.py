"""Engine: wires provider, tools, hooks, styles, and sessions into a master loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from foreman.agents.manager import SubagentManager
from foreman.core.config import load_project_instructions, load_settings
from foreman.core.conversation import ConversationManager
from foreman.core.loop import MasterLoop
from foreman.core.storage import SessionStorage
from foreman.hooks.manager import HookManager
from foreman.output.styles import OutputStyleManager
from foreman.providers.registry import create_provider
from foreman.tools.manager import ToolManager
from foreman.tools.processes import BackgroundProcessRegistry
from foreman.tools.task import TaskTool
from foreman.types.config import Settings
from foreman.types.providers import LLMProvider
from foreman.types.session import SessionOptions

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Engine:
    """A ready-to-use master loop plus the resources it owns."""

    loop: MasterLoop
    settings: Settings
    storage: SessionStorage
    processes: BackgroundProcessRegistry
    styles: OutputStyleManager
    hooks: HookManager
    subagents: SubagentManager

    def set_style(self, name: str) -> bool:
        """Switch (and persist) the active output style for new sessions."""
        return self.styles.set_active_style(name)

    async def aclose(self) -> None:
        """Kill background processes started by the Bash tool."""
        await self.processes.shutdown()


def build_engine(
    cwd: str | Path | None = None,
    *,
    llm: LLMProvider | None = None,
    session_options: SessionOptions | None = None,
    style: str | None = None,
    storage: SessionStorage | None = None,
    hooks: HookManager | None = None,
    **overrides: Any,
) -> Engine:
    """Build an :class:`Engine` for the project at *cwd*.

    Args:
        cwd: Project directory. Defaults to the current directory.
        llm: Injected provider (tests, embedding). Otherwise one is
            created from the resolved settings.
        session_options: How the first message picks its session.
        style: Output style name; overrides the project's active style.
        storage: Session storage; defaults to ``settings.sessions_dir``.
        hooks: Hook manager; defaults to hooks from the config files.
        **overrides: Setting overrides (``provider``, ``model``, ...).
    """
    project = Path(cwd).resolve() if cwd else Path.cwd()
    settings = load_settings(project, **{k: v for k, v in overrides.items() if v is not None})

    provider = llm
    if provider is None:
        provider = create_provider(
            settings.provider,
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
        )

    if storage is None:
        storage = SessionStorage(settings.sessions_dir)
    if hooks is None:
        hooks = HookManager.from_config(project)

    styles = OutputStyleManager.for_project(project)
    style_name = style or settings.output_style
    if style_name and not styles.set_active_style(style_name, persist=False):
        logger.warning("Unknown output style %r; keeping %s", style_name, styles.active_style.name)

    processes = BackgroundProcessRegistry()
    tools = ToolManager()
    tools.register_defaults(processes, project)

    subagents = SubagentManager(
        provider,
        tools,
        storage,
        project,
        hooks=hooks,
        max_depth=settings.max_delegation_depth,
    )
    tools.register(TaskTool(subagents))

    loop = MasterLoop(
        provider,
        tools,
        ConversationManager(storage, project),
        hooks=hooks,
        formatter=styles.formatter,
        config=settings.loop,
        session_options=session_options,
        instructions=load_project_instructions(project),
    )
    subagents.bind(loop)

    logger.debug(
        "Engine ready: provider=%s model=%s tools=%s",
        settings.provider, provider.model_id, tools.names(),
    )
    return Engine(
        loop=loop,
        settings=settings,
        storage=storage,
        processes=processes,
        styles=styles,
        hooks=hooks,
        subagents=subagents,
    )


async def run(prompt: str, cwd: str | Path | None = None, **kwargs: Any) -> str:
    """Send one message through a freshly built engine and return the reply."""
    engine = build_engine(cwd, **kwargs)
    try:
        return await engine.loop.process_message(prompt)
    finally:
        await engine.aclose()
