"""Read tool: reads files with optional line range."""

from __future__ import annotations

from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

_MAX_LINE_LENGTH = 2000
_DEFAULT_LIMIT = 2000

_DEFINITION = ToolDef(
    name="Read",
    description=(
        "Read a text file. Optionally pass offset (1-based first line) and "
        "limit (number of lines). Returns the lines numbered like cat -n."
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description="Absolute or cwd-relative path to the file to read.",
        ),
        ToolParam(
            name="offset",
            type="integer",
            description="1-based line number to start reading from.",
            required=False,
        ),
        ToolParam(
            name="limit",
            type="integer",
            description=f"Maximum number of lines to return (default {_DEFAULT_LIMIT}).",
            required=False,
        ),
    ),
)


class ReadTool(BaseTool):
    """Reads a file and returns its content with line numbers."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> str:
        path = self._resolve(self._require(params, "file_path"))
        offset = int(params.get("offset") or 1)
        limit = int(params.get("limit") or _DEFAULT_LIMIT)

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._fail(f"File not found: {path}")
        except IsADirectoryError:
            self._fail(f"Path is a directory, not a file: {path}")
        except PermissionError:
            self._fail(f"Permission denied: {path}")
        except UnicodeDecodeError:
            self._fail(f"Cannot read file as text: {path}")

        lines = text.splitlines()
        start = max(0, offset - 1)
        end = start + limit

        numbered: list[str] = []
        for number, line in enumerate(lines[start:end], start=start + 1):
            if len(line) > _MAX_LINE_LENGTH:
                line = line[:_MAX_LINE_LENGTH] + " [truncated]"
            numbered.append(f"{number:>6}\t{line}")

        content = "\n".join(numbered)
        if end < len(lines):
            content += f"\n[...{len(lines) - end} more lines (offset={end + 1})]"
        return content
