"""Shell tools: Bash, BashOutput and KillBash."""

from __future__ import annotations

import asyncio
import re
import time
from pathlib import Path
from typing import Any

from foreman.tools.base import BaseTool
from foreman.tools.processes import BackgroundProcessRegistry
from foreman.types.tools import ToolDef, ToolParam

_DEFAULT_TIMEOUT_MS = 120_000
_MAX_TIMEOUT_MS = 600_000
_MAX_OUTPUT_CHARS = 30_000

_DANGEROUS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"rm\s+-rf\s+/(?:\s|$|\*)"),
    re.compile(r"dd\s+.*of=/dev/[sh]d"),
    re.compile(r"\bmkfs"),
    re.compile(r":\(\)\s*\{.*:\s*\|\s*:\s*&.*\}\s*;\s*:"),
    re.compile(r">\s*/dev/[sh]d"),
)

_BASH_DEFINITION = ToolDef(
    name="Bash",
    description=(
        "Run a shell command and return its combined output and exit code. "
        "Timeout is in milliseconds (default 120 000, max 600 000). "
        "Set run_in_background to get a bash_id for BashOutput/KillBash instead."
    ),
    parameters=(
        ToolParam(
            name="command",
            type="string",
            description="The shell command to execute.",
        ),
        ToolParam(
            name="timeout",
            type="integer",
            description=f"Timeout in milliseconds (max {_MAX_TIMEOUT_MS}).",
            required=False,
            default=_DEFAULT_TIMEOUT_MS,
        ),
        ToolParam(
            name="working_directory",
            type="string",
            description="Directory to run in. Defaults to the working directory.",
            required=False,
        ),
        ToolParam(
            name="run_in_background",
            type="boolean",
            description="Start the command in the background and return immediately.",
            required=False,
            default=False,
        ),
    ),
)

_OUTPUT_DEFINITION = ToolDef(
    name="BashOutput",
    description="Fetch new output from a background shell started by Bash.",
    parameters=(
        ToolParam(
            name="bash_id",
            type="string",
            description="The id returned by Bash with run_in_background.",
        ),
        ToolParam(
            name="filter",
            type="string",
            description="Optional regular expression; only matching lines are returned.",
            required=False,
        ),
    ),
)

_KILL_DEFINITION = ToolDef(
    name="KillBash",
    description="Terminate a background shell started by Bash.",
    parameters=(
        ToolParam(
            name="shell_id",
            type="string",
            description="The id of the background shell to kill.",
        ),
    ),
)


def check_command_safety(command: str) -> str | None:
    """Return a reason when *command* matches a blocked pattern."""
    for pattern in _DANGEROUS_PATTERNS:
        if pattern.search(command):
            return "Command blocked for safety reasons"
    return None


def _truncate(output: str) -> tuple[str, bool]:
    if len(output) <= _MAX_OUTPUT_CHARS:
        return output, False
    dropped = len(output) - _MAX_OUTPUT_CHARS
    return output[:_MAX_OUTPUT_CHARS] + f"\n[...{dropped} characters truncated]", True


class BashTool(BaseTool):
    """Executes shell commands, in the foreground or in the background."""

    def __init__(
        self,
        processes: BackgroundProcessRegistry,
        cwd: str | Path | None = None,
    ) -> None:
        super().__init__(cwd)
        self._processes = processes

    @property
    def definition(self) -> ToolDef:
        return _BASH_DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        command = self._require(params, "command")
        if reason := check_command_safety(command):
            self._fail(reason)

        raw_dir = params.get("working_directory")
        workdir = self._resolve(raw_dir) if raw_dir else self._cwd
        if not workdir.is_dir():
            self._fail(f"Working directory does not exist: {workdir}")

        if params.get("run_in_background"):
            bash_id = await self._processes.start(command, workdir)
            return {
                "success": True,
                "background": True,
                "bash_id": bash_id,
                "message": f"Started in background; poll with BashOutput(bash_id={bash_id!r})",
            }

        try:
            timeout_ms = int(params.get("timeout") or _DEFAULT_TIMEOUT_MS)
        except (TypeError, ValueError):
            timeout_ms = _DEFAULT_TIMEOUT_MS
        timeout_ms = max(1, min(timeout_ms, _MAX_TIMEOUT_MS))

        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(workdir),
            )
        except OSError as exc:
            self._fail(f"Failed to start process: {exc}")

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_ms / 1000)
        except TimeoutError:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            self._fail(f"Command timed out after {timeout_ms} ms: {command}")

        output, truncated = _truncate(stdout.decode("utf-8", errors="replace") if stdout else "")
        exit_code = proc.returncode if proc.returncode is not None else 0
        return {
            "success": exit_code == 0,
            "output": output,
            "exit_code": exit_code,
            "truncated": truncated,
            "duration_ms": int((time.monotonic() - started) * 1000),
        }


class BashOutputTool(BaseTool):

    def __init__(
        self,
        processes: BackgroundProcessRegistry,
        cwd: str | Path | None = None,
    ) -> None:
        super().__init__(cwd)
        self._processes = processes

    @property
    def definition(self) -> ToolDef:
        return _OUTPUT_DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        bash_id = self._require(params, "bash_id")
        pattern = params.get("filter")
        regex = None
        if pattern:
            try:
                regex = re.compile(pattern)
            except re.error as exc:
                self._fail(f"Invalid regex filter {pattern!r}: {exc}")

        entry = self._processes.get(bash_id)
        lines = self._processes.read_output(bash_id)
        if entry is None or lines is None:
            self._fail(f"No background shell with id {bash_id}")
        if regex is not None:
            lines = [line for line in lines if regex.search(line)]

        running = entry.running
        if not lines:
            return {"success": True, "output": "", "running": running, "message": "No new output"}
        output, truncated = _truncate("".join(lines))
        return {
            "success": True,
            "output": output,
            "lines": len(lines),
            "running": running,
            "truncated": truncated,
        }


class KillBashTool(BaseTool):

    def __init__(
        self,
        processes: BackgroundProcessRegistry,
        cwd: str | Path | None = None,
    ) -> None:
        super().__init__(cwd)
        self._processes = processes

    @property
    def definition(self) -> ToolDef:
        return _KILL_DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        shell_id = self._require(params, "shell_id")
        if not await self._processes.kill(shell_id):
            self._fail(f"No background shell with id {shell_id}")
        return {"success": True, "message": f"Killed background shell {shell_id}"}
