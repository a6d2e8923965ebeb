"""Built-in tools and the tool dispatcher."""

from foreman.tools.base import BaseTool
from foreman.tools.bash import BashOutputTool, BashTool, KillBashTool
from foreman.tools.edit import EditTool
from foreman.tools.glob import GlobTool
from foreman.tools.grep import GrepTool
from foreman.tools.manager import ToolManager
from foreman.tools.multi_edit import MultiEditTool
from foreman.tools.processes import BackgroundProcessRegistry
from foreman.tools.read import ReadTool
from foreman.tools.task import TaskTool
from foreman.tools.todo import TodoWriteTool
from foreman.tools.web import WebFetchTool, WebSearchTool
from foreman.tools.write import WriteTool

__all__ = [
    "BackgroundProcessRegistry",
    "BaseTool",
    "BashOutputTool",
    "BashTool",
    "EditTool",
    "GlobTool",
    "GrepTool",
    "KillBashTool",
    "MultiEditTool",
    "ReadTool",
    "TaskTool",
    "TodoWriteTool",
    "ToolManager",
    "WebFetchTool",
    "WebSearchTool",
    "WriteTool",
]
