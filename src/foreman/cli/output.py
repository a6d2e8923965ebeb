"""Rich-powered terminal output for the CLI."""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table
from rich.text import Text

from foreman.types.messages import Result
from foreman.types.session import SessionIndexEntry

STYLE_ERROR_LABEL = "bold #f87171"
STYLE_ERROR_BODY = "#f87171"
STYLE_RESULT_LABEL = "bold #94a3b8"
STYLE_RESULT_VALUE = "#e2e8f0"
STYLE_NOTICE = "dim italic #94a3b8"


class Printer:
    """Writes replies to stdout and status lines to stderr."""

    def __init__(self, console: Console | None = None, err_console: Console | None = None) -> None:
        self._stdout = console or Console()
        self._stderr = err_console or Console(stderr=True)

    def reply(self, text: str) -> None:
        if text.strip():
            self._stdout.print(Markdown(text))

    def result(self, result: Result | None) -> None:
        """Print the one-line run summary."""
        if result is None:
            return
        line = Text()
        fields = [
            ("Session", result.session_id),
            ("Turns", str(result.turns)),
            ("Tools", str(result.tool_calls)),
        ]
        if result.stop_reason != "end_turn":
            fields.append(("Stopped", result.stop_reason))
        for i, (label, value) in enumerate(fields):
            if i:
                line.append("  ")
            line.append(f"{label}: ", style=STYLE_RESULT_LABEL)
            line.append(value, style=STYLE_RESULT_VALUE)
        self._stderr.print(line)

    def notice(self, message: str) -> None:
        self._stderr.print(Text(message, style=STYLE_NOTICE))

    def error(self, message: str) -> None:
        line = Text("Error: ", style=STYLE_ERROR_LABEL)
        line.append(message, style=STYLE_ERROR_BODY)
        self._stderr.print(line)

    def sessions(self, entries: list[SessionIndexEntry]) -> None:
        if not entries:
            self._stdout.print("No sessions found.")
            return
        table = Table(show_header=True, header_style=STYLE_RESULT_LABEL, box=None)
        table.add_column("Session ID")
        table.add_column("Messages", justify="right")
        table.add_column("Updated")
        table.add_column("Status")
        for entry in entries:
            status = "archived" if entry.archived else "active"
            if entry.parent_id:
                status += " (subagent)"
            table.add_row(
                entry.id,
                str(entry.message_count),
                entry.updated.strftime("%Y-%m-%d %H:%M"),
                status,
            )
        self._stdout.print(table)
