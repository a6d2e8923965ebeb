"""Grep tool: regex search over file contents."""

from __future__ import annotations

import fnmatch
import os
import re
from pathlib import Path
from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

_DEFAULT_MAX_RESULTS = 50
_MAX_FILE_BYTES = 2_000_000

_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv"})

_DEFINITION = ToolDef(
    name="Grep",
    description=(
        "Search file contents for a regular expression. Returns matches as "
        "'path:line: text'. Binary files and cache directories are skipped."
    ),
    parameters=(
        ToolParam(
            name="pattern",
            type="string",
            description="Regular expression (Python syntax).",
        ),
        ToolParam(
            name="path",
            type="string",
            description="File or directory to search. Defaults to the working directory.",
            required=False,
        ),
        ToolParam(
            name="glob",
            type="string",
            description="Only search files whose name matches this glob, e.g. '*.py'.",
            required=False,
        ),
        ToolParam(
            name="case_insensitive",
            type="boolean",
            description="Ignore case when matching.",
            required=False,
            default=False,
        ),
        ToolParam(
            name="max_results",
            type="integer",
            description=f"Max matching lines to return (default {_DEFAULT_MAX_RESULTS}).",
            required=False,
            default=_DEFAULT_MAX_RESULTS,
        ),
    ),
)


def _iter_files(root: Path, glob_filter: str | None):
    if root.is_file():
        yield root
        return
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in _IGNORED_DIRS)
        for name in sorted(filenames):
            if glob_filter and not fnmatch.fnmatch(name, glob_filter):
                continue
            yield Path(dirpath) / name


def _read_text(path: Path) -> str | None:
    try:
        if path.stat().st_size > _MAX_FILE_BYTES:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if b"\x00" in data[:8192]:
        return None
    return data.decode("utf-8", errors="replace")


class GrepTool(BaseTool):
    """Searches file contents with Python regular expressions."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        pattern = self._require(params, "pattern")
        raw_path = params.get("path")
        root = self._resolve(raw_path) if raw_path else self._cwd
        max_results = int(params.get("max_results") or _DEFAULT_MAX_RESULTS)
        flags = re.IGNORECASE if params.get("case_insensitive") else 0

        try:
            regex = re.compile(pattern, flags)
        except re.error as exc:
            self._fail(f"Invalid regex {pattern!r}: {exc}")
        if not root.exists():
            self._fail(f"Search path does not exist: {root}")

        matches: list[str] = []
        truncated = False
        for path in _iter_files(root, params.get("glob")):
            text = _read_text(path)
            if text is None:
                continue
            for number, line in enumerate(text.splitlines(), start=1):
                if regex.search(line):
                    if len(matches) >= max_results:
                        truncated = True
                        break
                    matches.append(f"{path}:{number}: {line.strip()}")
            if truncated:
                break

        return {"matches": matches, "count": len(matches), "truncated": truncated}
