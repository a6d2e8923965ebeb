"""MultiEdit tool: several exact replacements in one file, applied together."""

from __future__ import annotations

from typing import Any

from foreman.tools.edit import EditTool, apply_replacement
from foreman.types.tools import ToolDef, ToolParam

_DEFINITION = ToolDef(
    name="MultiEdit",
    description=(
        "Apply several edits to one file in order. Each edit follows the Edit "
        "rules and sees the result of the previous one. If any edit fails, the "
        "file is left unchanged."
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description="Absolute or cwd-relative path to the file to edit.",
        ),
        ToolParam(
            name="edits",
            type="array",
            description="Edits to apply in order.",
            items={
                "type": "object",
                "properties": {
                    "old_string": {"type": "string", "description": "The text to replace."},
                    "new_string": {"type": "string", "description": "The replacement text."},
                    "replace_all": {
                        "type": "boolean",
                        "description": "Replace every occurrence (default false).",
                    },
                },
                "required": ["old_string", "new_string"],
            },
        ),
    ),
)


class MultiEditTool(EditTool):

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self._resolve(self._require(params, "file_path"))
        edits = self._require(params, "edits")
        if not isinstance(edits, list):
            self._fail("edits must be a list of {old_string, new_string} objects")

        text = self._read_text(path)
        total = 0
        for number, edit in enumerate(edits, start=1):
            if not isinstance(edit, dict) or not edit.get("old_string") or "new_string" not in edit:
                self._fail(f"Edit {number} needs old_string and new_string")
            try:
                text, count = apply_replacement(
                    text,
                    str(edit["old_string"]),
                    str(edit["new_string"]),
                    bool(edit.get("replace_all", False)),
                )
            except ValueError as exc:
                self._fail(f"Edit {number}: {exc} in {path}; no changes were written")
            total += count
        self._write_text(path, text)

        return {
            "success": True,
            "path": str(path),
            "edits": len(edits),
            "replacements": total,
        }
