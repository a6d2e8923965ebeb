"""Tests for foreman.hooks -- context building, matching, and execution."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

from foreman.core.storage import SessionStorage
from foreman.hooks.events import HookContext, build_hook_context
from foreman.hooks.manager import (
    CONTEXT_ENV_VAR,
    MAX_ENV_CONTEXT_CHARS,
    HookManager,
    env_context,
    parse_hook_table,
)
from foreman.tools.write import WriteTool
from foreman.types.hooks import Hook, HookType
from tests.conftest import RecordingTool, ScriptedProvider, make_loop, tool_use

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="hooks run through a POSIX shell")


def _logging_hook(log: Path, **kwargs) -> Hook:
    """A hook that appends its type and context to *log*."""
    command = f'printf "%s %s\\n" "$FOREMAN_HOOK_TYPE" "${CONTEXT_ENV_VAR}" >> {log}'
    return Hook(command=command, **kwargs)


def _read_log(log: Path) -> list[tuple[str, dict]]:
    if not log.exists():
        return []
    rows = []
    for line in log.read_text().splitlines():
        hook_type, _, payload = line.partition(" ")
        rows.append((hook_type, json.loads(payload)))
    return rows


class TestBuildHookContext:
    def test_basic_context(self):
        ctx = build_hook_context(HookType.PRE_TOOL_USE, tool="Bash")
        assert ctx.hook_type is HookType.PRE_TOOL_USE
        assert ctx.tool == "Bash"
        assert ctx.parameters == {}
        assert ctx.result is None

    def test_to_dict(self):
        ctx = build_hook_context(
            HookType.POST_TOOL_USE,
            tool="Read",
            parameters={"file_path": "/tmp/x.py"},
            result="contents",
            session_id="abc",
            cwd=Path("/tmp/project"),
            extra_key=1,
        )
        assert ctx.to_dict() == {
            "hookType": "PostToolUse",
            "sessionId": "abc",
            "cwd": "/tmp/project",
            "tool": "Read",
            "parameters": {"file_path": "/tmp/x.py"},
            "result": "contents",
            "extra_key": 1,
        }

    def test_non_tool_context_omits_tool_keys(self):
        data = HookContext(hook_type=HookType.STOP, session_id="s").to_dict()
        assert "tool" not in data
        assert "parameters" not in data


class TestParseHookTable:
    def test_parses_known_types(self):
        hooks = parse_hook_table({
            "PreToolUse": [{"command": "echo pre", "matcher": "Write", "timeout": 5}],
            "Stop": [{"type": "script", "script": "hooks/stop.sh"}],
        })
        assert hooks[HookType.PRE_TOOL_USE] == [
            Hook(command="echo pre", matcher="Write", timeout=5.0)
        ]
        assert hooks[HookType.STOP][0].type == "script"

    def test_skips_unknown_and_malformed(self):
        hooks = parse_hook_table({
            "NotAHook": [{"command": "echo"}],
            "Stop": [{"matcher": "x"}, "not a table"],
            "SessionEnd": {"command": "not a list"},
        })
        assert hooks == {}

    def test_non_table(self):
        assert parse_hook_table(None) == {}

    def test_bad_timeout_is_skipped(self):
        hooks = parse_hook_table({
            "Stop": [
                {"command": "echo bad", "timeout": "soon"},
                {"command": "echo list", "timeout": [1]},
                {"command": "echo good", "timeout": 2},
            ],
        })
        assert [h.command for h in hooks[HookType.STOP]] == ["echo good"]

    def test_bad_timeout_in_config_does_not_break_loading(self, tmp_path: Path, isolated_home: Path):
        project = tmp_path / "proj"
        (project / ".foreman").mkdir(parents=True)
        (project / ".foreman" / "config.toml").write_text(
            '[[hooks.Stop]]\ncommand = "echo x"\ntimeout = "thirty"\n'
        )

        assert HookManager.from_config(project).get_hooks(HookType.STOP) == []


class TestEnvContext:
    def test_small_payload_is_unchanged(self):
        payload = {"hookType": "PreToolUse", "tool": "Write", "parameters": {"file_path": "a"}}
        assert json.loads(env_context(payload)) == payload

    def test_large_values_are_capped(self):
        payload = {
            "hookType": "PreToolUse",
            "tool": "Write",
            "parameters": {"file_path": "big.txt", "content": "x" * 200_000},
        }

        text = env_context(payload)

        assert len(text) <= MAX_ENV_CONTEXT_CHARS
        data = json.loads(text)
        assert data["truncated"] is True
        assert data["tool"] == "Write"
        assert isinstance(data["parameters"], str)
        assert data["parameters"].startswith('{"file_path": "big.txt"')


class TestHookManager:
    def test_register_and_get(self):
        mgr = HookManager()
        hook = Hook(command="echo hi")
        mgr.register(HookType.STOP, hook)
        assert mgr.get_hooks(HookType.STOP) == [hook]
        assert mgr.get_hooks(HookType.PRE_TOOL_USE) == []
        mgr.clear()
        assert mgr.get_hooks(HookType.STOP) == []

    @pytest.mark.asyncio
    async def test_command_receives_context(self, tmp_path: Path):
        log = tmp_path / "hooks.log"
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.PRE_TOOL_USE, _logging_hook(log))

        results = await mgr.fire_hook(
            HookType.PRE_TOOL_USE,
            build_hook_context(HookType.PRE_TOOL_USE, tool="Write", parameters={"file_path": "a"}),
        )

        assert [r.success for r in results] == [True]
        [(hook_type, payload)] = _read_log(log)
        assert hook_type == "PreToolUse"
        assert payload["tool"] == "Write"
        assert payload["parameters"] == {"file_path": "a"}

    @pytest.mark.asyncio
    async def test_full_context_on_stdin(self, tmp_path: Path):
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.POST_TOOL_USE, Hook(command="cat > stdin.json"))
        big = "y" * 250_000

        [result] = await mgr.fire_hook(
            HookType.POST_TOOL_USE,
            build_hook_context(HookType.POST_TOOL_USE, tool="Bash", result=big),
        )

        assert result.success is True
        payload = json.loads((tmp_path / "stdin.json").read_text())
        assert payload["result"] == big

    @pytest.mark.asyncio
    async def test_hook_ignoring_stdin_still_runs(self, tmp_path: Path):
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(command="touch ran"))

        [result] = await mgr.fire_hook(HookType.STOP, {"note": "z" * 300_000})

        assert result.success is True
        assert (tmp_path / "ran").exists()

    @pytest.mark.asyncio
    async def test_matcher_is_exact(self, tmp_path: Path):
        log = tmp_path / "hooks.log"
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.PRE_TOOL_USE, _logging_hook(log, matcher="Write"))

        await mgr.fire_hook(HookType.PRE_TOOL_USE, {"tool": "Read"})
        await mgr.fire_hook(HookType.PRE_TOOL_USE, {"tool": "WriteAll"})
        assert _read_log(log) == []

        await mgr.fire_hook(HookType.PRE_TOOL_USE, {"tool": "Write"})
        assert len(_read_log(log)) == 1

    @pytest.mark.asyncio
    async def test_hooks_run_in_registration_order(self, tmp_path: Path):
        log = tmp_path / "order.log"
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(command=f"echo first >> {log}"))
        mgr.register(HookType.STOP, Hook(command=f"echo second >> {log}"))

        await mgr.fire_hook(HookType.STOP)

        assert log.read_text().split() == ["first", "second"]

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, tmp_path: Path):
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(command="echo oops >&2; exit 3"))
        mgr.register(HookType.STOP, Hook(command="echo fine"))

        results = await mgr.fire_hook(HookType.STOP)

        assert results[0].success is False
        assert "exited with code 3" in results[0].error
        assert "oops" in results[0].error
        assert results[1].success is True
        assert results[1].output == "fine"

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, tmp_path: Path):
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(command="sleep 5", timeout=0.2))

        [result] = await mgr.fire_hook(HookType.STOP)

        assert result.success is False
        assert "timed out" in result.error

    @pytest.mark.asyncio
    async def test_missing_script_is_reported(self, tmp_path: Path):
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(type="script", script="hooks/missing.sh"))

        [result] = await mgr.fire_hook(HookType.STOP)

        assert result.success is False
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_script_resolved_against_project(self, tmp_path: Path):
        script = tmp_path / "hooks" / "stop.sh"
        script.parent.mkdir()
        script.write_text("#!/bin/sh\necho from-script\n")
        script.chmod(0o755)
        mgr = HookManager(project_dir=tmp_path)
        mgr.register(HookType.STOP, Hook(type="script", script="hooks/stop.sh"))

        [result] = await mgr.fire_hook(HookType.STOP)

        assert result.success is True
        assert result.output == "from-script"

    def test_from_config_merges_user_then_project(self, tmp_path: Path, isolated_home: Path):
        isolated_home.mkdir()
        (isolated_home / "config.toml").write_text(
            '[[hooks.Stop]]\ncommand = "echo user"\n'
        )
        project = tmp_path / "proj"
        (project / ".foreman").mkdir(parents=True)
        (project / ".foreman" / "config.toml").write_text(
            '[[hooks.Stop]]\ncommand = "echo project"\n'
            '[[hooks.PreToolUse]]\ncommand = "echo pre"\nmatcher = "Write"\n'
        )

        mgr = HookManager.from_config(project)

        assert [h.command for h in mgr.get_hooks(HookType.STOP)] == ["echo user", "echo project"]
        assert mgr.get_hooks(HookType.PRE_TOOL_USE)[0].matcher == "Write"


class TestHooksInLoop:
    @pytest.mark.asyncio
    async def test_write_matcher_fires_for_write_not_read(
        self, tmp_path: Path, project: Path, storage: SessionStorage,
    ):
        log = tmp_path / "pre.log"
        hooks = HookManager(project_dir=project)
        hooks.register(HookType.PRE_TOOL_USE, _logging_hook(log, matcher="Write"))
        provider = ScriptedProvider([
            tool_use("Read", value="r"),
            tool_use("Write", value="w"),
            "done",
        ])
        loop = make_loop(
            project, storage, provider,
            [RecordingTool("Read"), RecordingTool("Write")],
            hooks=hooks,
        )

        await loop.process_message("read then write")

        rows = _read_log(log)
        assert len(rows) == 1
        assert rows[0][1]["tool"] == "Write"
        assert rows[0][1]["parameters"] == {"value": "w"}
        assert rows[0][1]["sessionId"] == loop.session_id

    @pytest.mark.asyncio
    async def test_write_hook_fires_for_large_write(
        self, tmp_path: Path, project: Path, storage: SessionStorage,
    ):
        marker = tmp_path / "guarded"
        hooks = HookManager(project_dir=project)
        hooks.register(HookType.PRE_TOOL_USE, Hook(command=f"touch {marker}", matcher="Write"))
        provider = ScriptedProvider([
            tool_use("Write", file_path="big.txt", content="x" * 200_000),
            "written",
        ])
        loop = make_loop(project, storage, provider, [WriteTool(project)], hooks=hooks)

        assert await loop.process_message("write a big file") == "written"

        assert (project / "big.txt").stat().st_size == 200_000
        assert marker.exists()

    @pytest.mark.asyncio
    async def test_lifecycle_events_fire(self, tmp_path: Path, project: Path, storage: SessionStorage):
        log = tmp_path / "all.log"
        hooks = HookManager(project_dir=project)
        for hook_type in HookType:
            hooks.register(hook_type, _logging_hook(log))
        provider = ScriptedProvider([tool_use("Echo"), "done"])
        loop = make_loop(project, storage, provider, [RecordingTool("Echo", result="r")], hooks=hooks)

        await loop.process_message("hi")

        types = [t for t, _ in _read_log(log)]
        assert types == [
            "SessionStart",
            "UserPromptSubmit",
            "PreToolUse",
            "PostToolUse",
            "Stop",
        ]
        post = _read_log(log)[3][1]
        assert post["result"] == "r"
        stop = _read_log(log)[4][1]
        assert stop["stopReason"] == "end_turn"

    @pytest.mark.asyncio
    async def test_failing_hook_does_not_stop_tool(self, project: Path, storage: SessionStorage):
        hooks = HookManager(project_dir=project)
        hooks.register(HookType.PRE_TOOL_USE, Hook(command="exit 1"))
        echo = RecordingTool("Echo")
        provider = ScriptedProvider([tool_use("Echo"), "done"])
        loop = make_loop(project, storage, provider, [echo], hooks=hooks)

        assert await loop.process_message("go") == "done"
        assert echo.calls == [{}]
