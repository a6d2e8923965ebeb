"""Write tool: creates or overwrites files."""

from __future__ import annotations

from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

_DEFINITION = ToolDef(
    name="Write",
    description=(
        "Create or overwrite a file. Parent directories are created as needed."
    ),
    parameters=(
        ToolParam(
            name="file_path",
            type="string",
            description="Absolute or cwd-relative path to the file to write.",
        ),
        ToolParam(
            name="content",
            type="string",
            description="The full content to write to the file.",
        ),
    ),
)


class WriteTool(BaseTool):

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        path = self._resolve(self._require(params, "file_path"))
        if "content" not in params:
            self._require(params, "content")
        content = str(params["content"])

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            self._fail(f"Cannot write {path}: {exc}")

        return {
            "success": True,
            "path": str(path),
            "bytes": len(content.encode("utf-8")),
        }
