"""Hook execution engine."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any

from foreman.core.config import load_config_layers
from foreman.errors import HookError
from foreman.hooks.events import HookContext
from foreman.types.hooks import Hook, HookResult, HookType

logger = logging.getLogger(__name__)

CONTEXT_ENV_VAR = "FOREMAN_HOOK_CONTEXT"
TYPE_ENV_VAR = "FOREMAN_HOOK_TYPE"

# Linux rejects a single environment string over 128 KiB, so the env copy of
# the context is capped; hooks read the full JSON from stdin.
MAX_ENV_CONTEXT_CHARS = 32_000
_MAX_ENV_FIELD_CHARS = 4_000


def env_context(payload: dict[str, Any]) -> str:
    """JSON for the context env var, shortening oversized top-level values.

    Values whose JSON is longer than the per-field cap are replaced by a
    truncated string of that JSON and ``"truncated": true`` is added.
    """
    text = json.dumps(payload, default=str)
    if len(text) <= MAX_ENV_CONTEXT_CHARS:
        return text
    capped: dict[str, Any] = {}
    for key, value in payload.items():
        encoded = json.dumps(value, default=str)
        if len(encoded) > _MAX_ENV_FIELD_CHARS:
            capped[key] = encoded[:_MAX_ENV_FIELD_CHARS] + f"...[{len(encoded)} chars]"
        else:
            capped[key] = value
    capped["truncated"] = True
    return json.dumps(capped, default=str)


def parse_hook_table(table: Any) -> dict[HookType, list[Hook]]:
    """Turn a ``[hooks]`` config table into hook lists.

    Unknown hook types and malformed entries are logged and skipped.
    """
    hooks: dict[HookType, list[Hook]] = {}
    if not isinstance(table, dict):
        return hooks
    for key, entries in table.items():
        try:
            hook_type = HookType(key)
        except ValueError:
            logger.warning("Ignoring hooks for unknown hook type %r", key)
            continue
        if not isinstance(entries, list):
            logger.warning("Hooks for %s must be an array of tables", key)
            continue
        for entry in entries:
            if not isinstance(entry, dict) or not (entry.get("command") or entry.get("script")):
                logger.warning("Skipping malformed %s hook: %r", key, entry)
                continue
            try:
                hook = Hook.from_dict(entry)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s hook %r: %s", key, entry, exc)
                continue
            hooks.setdefault(hook_type, []).append(hook)
    return hooks


class HookManager:
    """Registers and executes hooks for lifecycle events.

    Hooks for a type run in registration order.  Failures are logged and
    reported in the returned results; they never propagate to the caller.

    Each command gets the event context as JSON on stdin and, capped for
    size, in ``FOREMAN_HOOK_CONTEXT``.
    """

    def __init__(
        self,
        hooks: dict[HookType, list[Hook]] | None = None,
        project_dir: str | Path | None = None,
    ) -> None:
        self._hooks: dict[HookType, list[Hook]] = {
            t: list(hs) for t, hs in (hooks or {}).items()
        }
        self._project_dir = Path(project_dir) if project_dir is not None else Path.cwd()

    @classmethod
    def from_config(cls, cwd: str | Path) -> HookManager:
        """Load user hooks, then project hooks, concatenated per type."""
        user, project = load_config_layers(cwd)
        manager = cls(project_dir=cwd)
        for layer in (user, project):
            for hook_type, hooks in parse_hook_table(layer.get("hooks")).items():
                for hook in hooks:
                    manager.register(hook_type, hook)
        return manager

    def register(self, hook_type: HookType, hook: Hook) -> None:
        """Append a hook for *hook_type*."""
        self._hooks.setdefault(hook_type, []).append(hook)

    def get_hooks(self, hook_type: HookType) -> list[Hook]:
        return list(self._hooks.get(hook_type, ()))

    def clear(self) -> None:
        self._hooks.clear()

    async def fire_hook(
        self,
        hook_type: HookType,
        context: HookContext | dict[str, Any] | None = None,
    ) -> list[HookResult]:
        """Run every hook registered for *hook_type* whose matcher applies."""
        if isinstance(context, HookContext):
            payload = context.to_dict()
        else:
            payload = {"hookType": hook_type.value, **(context or {})}

        results: list[HookResult] = []
        for hook in self._hooks.get(hook_type, ()):
            if hook.matcher and hook.matcher != payload.get("tool"):
                continue
            try:
                results.append(await self._execute(hook, hook_type, payload))
            except HookError as exc:
                logger.warning("%s hook failed: %s", hook_type.value, exc)
                results.append(HookResult(success=False, error=str(exc)))
        return results

    async def _execute(
        self,
        hook: Hook,
        hook_type: HookType,
        payload: dict[str, Any],
    ) -> HookResult:
        """Execute a single hook; raises HookError on any failure."""
        command = self._command_for(hook)
        env = {
            **os.environ,
            CONTEXT_ENV_VAR: env_context(payload),
            TYPE_ENV_VAR: hook_type.value,
        }
        stdin_data = json.dumps(payload, default=str).encode("utf-8")

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self._project_dir),
                env=env,
            )
        except OSError as exc:
            raise HookError(f"Cannot start hook {command!r}: {exc}") from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input=stdin_data), timeout=hook.timeout,
            )
        except TimeoutError as exc:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
            raise HookError(f"Hook timed out after {hook.timeout}s: {command}") from exc

        output = stdout.decode("utf-8", errors="replace").strip()
        if proc.returncode != 0:
            error = stderr.decode("utf-8", errors="replace").strip()
            raise HookError(
                f"Hook {command!r} exited with code {proc.returncode}"
                + (f": {error}" if error else "")
            )
        return HookResult(success=True, output=output)

    def _command_for(self, hook: Hook) -> str:
        if hook.type == "script":
            if not hook.script:
                raise HookError("Script hook has no script path")
            path = Path(hook.script).expanduser()
            if not path.is_absolute():
                path = self._project_dir / path
            if not path.is_file():
                raise HookError(f"Hook script not found: {path}")
            return shlex.quote(str(path))
        if not hook.command:
            raise HookError("Command hook has no command")
        return hook.command
