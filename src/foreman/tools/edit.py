"""Edit tool: exact string replacement in files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

_DEFINITION = ToolDef(
    name="Edit",
    description=(
        "Replace old_string with new_string in a file. old_string must occur "
        "exactly once unless replace_all is true."
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description="Absolute or cwd-relative path to the file to edit.",
        ),
        ToolParam(
            name="old_string",
            type="string",
            description="The exact text to find in the file.",
        ),
        ToolParam(
            name="new_string",
            type="string",
            description="The replacement text.",
        ),
        ToolParam(
            name="replace_all",
            type="boolean",
            description="Replace every occurrence.",
            required=False,
            default=False,
        ),
    ),
)


def apply_replacement(
    text: str,
    old_string: str,
    new_string: str,
    replace_all: bool = False,
) -> tuple[str, int]:
    """Replace *old_string* in *text*; returns the new text and the count.

    Raises ValueError when the strings are equal, *old_string* is absent,
    or it is ambiguous without *replace_all*.
    """
    if old_string == new_string:
        raise ValueError("old_string and new_string must differ")
    count = text.count(old_string)
    if count == 0:
        raise ValueError("old_string not found")
    if count > 1 and not replace_all:
        raise ValueError(
            f"old_string appears {count} times; add more context or set replace_all"
        )
    updated = text.replace(old_string, new_string, -1 if replace_all else 1)
    return updated, count if replace_all else 1


class EditTool(BaseTool):
    """Performs exact string replacement in a file."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self._resolve(self._require(params, "file_path"))
        old_string = self._require(params, "old_string")
        if "new_string" not in params:
            self._require(params, "new_string")
        new_string = str(params["new_string"])
        replace_all = bool(params.get("replace_all", False))

        original = self._read_text(path)
        try:
            updated, count = apply_replacement(original, old_string, new_string, replace_all)
        except ValueError as exc:
            self._fail(f"{exc} in {path}")
        self._write_text(path, updated)

        return {"success": True, "path": str(path), "replacements": count}

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            self._fail(f"File not found: {path}")
        except (OSError, UnicodeDecodeError) as exc:
            self._fail(f"Cannot read {path}: {exc}")

    def _write_text(self, path: Path, text: str) -> None:
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            self._fail(f"Cannot write {path}: {exc}")
