"""Glob tool: finds files matching a glob pattern."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

_MAX_RESULTS = 200

# Directories to skip during glob traversal.
_IGNORED_DIRS = frozenset({".git", "node_modules", "__pycache__", ".venv"})

_DEFINITION = ToolDef(
    name="Glob",
    description=(
        "Find files whose paths match a glob pattern, newest first "
        f"(at most {_MAX_RESULTS})."
    ),
    parameters=(
        ToolParam(
            name="pattern",
            type="string",
            description="Glob pattern, e.g. '**/*.py'.",
        ),
        ToolParam(
            name="path",
            type="string",
            description="Directory to search in. Defaults to the working directory.",
            required=False,
        ),
    ),
)


def _is_ignored(path: Path) -> bool:
    return any(part in _IGNORED_DIRS for part in path.parts)


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


class GlobTool(BaseTool):
    """Finds files by glob pattern, sorted by modification time."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        pattern = self._require(params, "pattern")
        raw_path = params.get("path")
        root = self._resolve(raw_path) if raw_path else self._cwd

        if not root.is_dir():
            self._fail(f"Search path is not a directory: {root}")

        try:
            matched = [
                p for p in root.glob(pattern)
                if p.is_file() and not _is_ignored(p.relative_to(root))
            ]
        except (OSError, ValueError) as exc:
            self._fail(f"Glob error: {exc}")

        matched.sort(key=_mtime, reverse=True)
        shown = matched[:_MAX_RESULTS]
        return {
            "files": [str(p) for p in shown],
            "count": len(matched),
            "truncated": len(matched) > len(shown),
        }
