"""TodoWrite tool: the model's structured task list for the project."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

TODO_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed")

_DEFINITION = ToolDef(
    name="TodoWrite",
    description=(
        "Replace the task list used to track progress on multi-step work. "
        "At most one item may be in_progress."
    ),
    parameters=(
        ToolParam(
            name="todos",
            type="array",
            description="The complete, updated list of todo items.",
            items={
                "type": "object",
                "properties": {
                    "content": {"type": "string", "description": "The task description."},
                    "status": {"type": "string", "enum": list(TODO_STATUSES)},
                    "activeForm": {
                        "type": "string",
                        "description": "Present continuous form, e.g. 'Running tests'.",
                    },
                },
                "required": ["content", "status", "activeForm"],
            },
        ),
    ),
)


def todo_path(project_dir: str | Path) -> Path:
    return Path(project_dir) / ".foreman" / "todos.json"


def load_todos(project_dir: str | Path) -> list[dict[str, Any]]:
    """The saved list for a project; empty when missing or unreadable."""
    path = todo_path(project_dir)
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Cannot read todo list %s: %s", path, exc)
        return []
    return data if isinstance(data, list) else []


class TodoWriteTool(BaseTool):
    """Validates and saves the todo list under ``.foreman/todos.json``."""

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        todos = params.get("todos")
        if todos is None:
            self._require(params, "todos")
        if not isinstance(todos, list):
            self._fail("todos must be a list")

        cleaned: list[dict[str, str]] = []
        for number, todo in enumerate(todos, start=1):
            if not isinstance(todo, dict) or not all(
                todo.get(key) for key in ("content", "status", "activeForm")
            ):
                self._fail(f"Todo {number} must have content, status, and activeForm")
            if todo["status"] not in TODO_STATUSES:
                self._fail(f"Todo {number} has invalid status {todo['status']!r}")
            cleaned.append({
                "content": str(todo["content"]),
                "status": todo["status"],
                "activeForm": str(todo["activeForm"]),
            })

        counts = {status: sum(1 for t in cleaned if t["status"] == status) for status in TODO_STATUSES}
        if counts["in_progress"] > 1:
            self._fail("Only one task can be in_progress at a time")

        path = todo_path(self._cwd)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(cleaned, indent=2), encoding="utf-8")
        except OSError as exc:
            self._fail(f"Cannot save todos to {path}: {exc}")

        return {
            "success": True,
            "message": (
                f"Todos saved. Total: {len(cleaned)}, Pending: {counts['pending']}, "
                f"In Progress: {counts['in_progress']}, Completed: {counts['completed']}"
            ),
            "counts": {"total": len(cleaned), **counts},
        }
