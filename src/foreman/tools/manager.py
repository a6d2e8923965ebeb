"""ToolManager: registry and dispatcher for all tools."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from foreman.errors import ToolNotFoundError
from foreman.tools.bash import BashOutputTool, BashTool, KillBashTool
from foreman.tools.edit import EditTool
from foreman.tools.glob import GlobTool
from foreman.tools.grep import GrepTool
from foreman.tools.multi_edit import MultiEditTool
from foreman.tools.processes import BackgroundProcessRegistry
from foreman.tools.read import ReadTool
from foreman.tools.todo import TodoWriteTool
from foreman.tools.web import WebFetchTool, WebSearchTool
from foreman.tools.write import WriteTool
from foreman.types.tools import Tool, ToolDef

logger = logging.getLogger(__name__)


class ToolManager:
    """Name-to-tool map used by a master loop to run tool calls.

    Usage::

        manager = ToolManager()
        manager.register_defaults(BackgroundProcessRegistry())
        result = await manager.execute_tool("Read", {"file_path": "foo.py"})
    """

    def __init__(self) -> None:
        self._registry: dict[str, Tool] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, tool: Tool) -> None:
        """Add a tool under its definition name, replacing any previous one."""
        self._registry[tool.definition.name] = tool

    def register_defaults(
        self,
        processes: BackgroundProcessRegistry,
        cwd: str | Path | None = None,
    ) -> None:
        """Create and register the built-in file, shell, todo and web tools."""
        for tool in (
            ReadTool(cwd),
            WriteTool(cwd),
            EditTool(cwd),
            MultiEditTool(cwd),
            GlobTool(cwd),
            GrepTool(cwd),
            BashTool(processes, cwd),
            BashOutputTool(processes, cwd),
            KillBashTool(processes, cwd),
            TodoWriteTool(cwd),
            WebFetchTool(),
            WebSearchTool(),
        ):
            self.register(tool)

    def get(self, name: str) -> Tool | None:
        return self._registry.get(name)

    def has(self, name: str) -> bool:
        return name in self._registry

    def names(self) -> list[str]:
        return list(self._registry)

    def get_definitions(self) -> list[ToolDef]:
        """Definitions in registration order, as handed to the provider."""
        return [tool.definition for tool in self._registry.values()]

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def execute_tool(self, name: str, params: dict[str, Any]) -> Any:
        """Run a tool by name.

        Raises :class:`~foreman.errors.ToolNotFoundError` for an unknown
        name; anything the tool raises propagates unchanged.
        """
        tool = self._registry.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        logger.debug("Executing tool %s", name)
        return await tool.execute(params)

    def filter(self, names: Iterable[str]) -> ToolManager:
        """A new manager holding the named tools (same instances); unknown names are skipped."""
        filtered = ToolManager()
        for name in names:
            tool = self._registry.get(name)
            if tool is not None:
                filtered.register(tool)
        return filtered

    def copy(self) -> ToolManager:
        return self.filter(self._registry)

    def __len__(self) -> int:
        return len(self._registry)

    def __contains__(self, name: object) -> bool:
        return name in self._registry

    def __repr__(self) -> str:
        return f"ToolManager(tools={sorted(self._registry)})"
