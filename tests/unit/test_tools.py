"""Tests for the built-in tools and the tool manager."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

from foreman.errors import MissingParameterError, ToolExecutionError, ToolNotFoundError
from foreman.tools.bash import BashOutputTool, BashTool, KillBashTool, check_command_safety
from foreman.tools.edit import EditTool
from foreman.tools.glob import GlobTool
from foreman.tools.grep import GrepTool
from foreman.tools.manager import ToolManager
from foreman.tools.multi_edit import MultiEditTool
from foreman.tools.processes import EXIT_MARKER, MAX_BUFFER_CHARS, BackgroundProcessRegistry
from foreman.tools.read import ReadTool
from foreman.tools.todo import TodoWriteTool, load_todos
from foreman.tools.web import WebFetchTool, WebSearchTool
from foreman.tools.write import WriteTool
from tests.conftest import RecordingTool

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


class TestReadTool:
    @pytest.mark.asyncio
    async def test_read_numbers_lines(self, project: Path):
        result = await ReadTool(project).execute({"file_path": "main.py"})
        assert "     1\tdef hello():" in result
        assert "     4\thello()" in result

    @pytest.mark.asyncio
    async def test_read_with_range(self, project: Path):
        result = await ReadTool(project).execute({"file_path": "main.py", "offset": 2, "limit": 1})
        assert result.startswith("     2\t    print(")
        assert "[...2 more lines (offset=3)]" in result

    @pytest.mark.asyncio
    async def test_missing_file(self, project: Path):
        with pytest.raises(ToolExecutionError, match="File not found"):
            await ReadTool(project).execute({"file_path": "nope.txt"})

    @pytest.mark.asyncio
    async def test_missing_parameter(self, project: Path):
        with pytest.raises(MissingParameterError, match="Missing required parameter: file_path"):
            await ReadTool(project).execute({})


class TestWriteTool:
    @pytest.mark.asyncio
    async def test_write_creates_parents(self, project: Path):
        result = await WriteTool(project).execute({"file_path": "deep/dir/new.txt", "content": "hé"})
        target = project.resolve() / "deep" / "dir" / "new.txt"
        assert target.read_text(encoding="utf-8") == "hé"
        assert result == {"success": True, "path": str(target), "bytes": 3}

    @pytest.mark.asyncio
    async def test_empty_content_is_allowed(self, project: Path):
        await WriteTool(project).execute({"file_path": "empty.txt", "content": ""})
        assert (project / "empty.txt").read_text() == ""

    @pytest.mark.asyncio
    async def test_content_required(self, project: Path):
        with pytest.raises(MissingParameterError):
            await WriteTool(project).execute({"file_path": "x.txt"})


class TestEditTool:
    @pytest.mark.asyncio
    async def test_single_replacement(self, project: Path):
        result = await EditTool(project).execute({
            "file_path": "src/utils.py",
            "old_string": "a + b",
            "new_string": "b + a",
        })
        assert result["replacements"] == 1
        assert "return b + a" in (project / "src" / "utils.py").read_text()

    @pytest.mark.asyncio
    async def test_ambiguous_match_fails(self, project: Path):
        (project / "dup.txt").write_text("x\nx\n")
        with pytest.raises(ToolExecutionError, match="appears 2 times"):
            await EditTool(project).execute({"file_path": "dup.txt", "old_string": "x", "new_string": "y"})

    @pytest.mark.asyncio
    async def test_replace_all(self, project: Path):
        (project / "dup.txt").write_text("x\nx\n")
        result = await EditTool(project).execute({
            "file_path": "dup.txt", "old_string": "x", "new_string": "y", "replace_all": True,
        })
        assert result["replacements"] == 2
        assert (project / "dup.txt").read_text() == "y\ny\n"

    @pytest.mark.asyncio
    async def test_not_found(self, project: Path):
        with pytest.raises(ToolExecutionError, match="not found"):
            await EditTool(project).execute({
                "file_path": "main.py", "old_string": "absent", "new_string": "x",
            })


class TestMultiEditTool:
    @pytest.mark.asyncio
    async def test_edits_apply_in_order(self, project: Path):
        result = await MultiEditTool(project).execute({
            "file_path": "src/utils.py",
            "edits": [
                {"old_string": "def add", "new_string": "def plus"},
                {"old_string": "def plus(a, b)", "new_string": "def plus(x, y)"},
                {"old_string": "a + b", "new_string": "x + y"},
            ],
        })

        assert result["edits"] == 3
        assert result["replacements"] == 3
        assert (project / "src" / "utils.py").read_text() == "def plus(x, y):\n    return x + y\n"

    @pytest.mark.asyncio
    async def test_failed_edit_writes_nothing(self, project: Path):
        before = (project / "main.py").read_text()
        with pytest.raises(ToolExecutionError, match="Edit 2: old_string not found"):
            await MultiEditTool(project).execute({
                "file_path": "main.py",
                "edits": [
                    {"old_string": "hello", "new_string": "greet", "replace_all": True},
                    {"old_string": "absent", "new_string": "x"},
                ],
            })
        assert (project / "main.py").read_text() == before

    @pytest.mark.asyncio
    async def test_malformed_edit(self, project: Path):
        with pytest.raises(ToolExecutionError, match="Edit 1 needs old_string and new_string"):
            await MultiEditTool(project).execute({"file_path": "main.py", "edits": [{"old_string": "x"}]})


class TestTodoWriteTool:
    @pytest.mark.asyncio
    async def test_saves_and_counts(self, project: Path):
        todos = [
            {"content": "Write tests", "status": "completed", "activeForm": "Writing tests"},
            {"content": "Fix bug", "status": "in_progress", "activeForm": "Fixing bug"},
            {"content": "Ship", "status": "pending", "activeForm": "Shipping"},
        ]

        result = await TodoWriteTool(project).execute({"todos": todos})

        assert result["counts"] == {"total": 3, "pending": 1, "in_progress": 1, "completed": 1}
        assert load_todos(project) == todos
        assert (project / ".foreman" / "todos.json").exists()

    @pytest.mark.asyncio
    async def test_single_in_progress(self, project: Path):
        todos = [
            {"content": "a", "status": "in_progress", "activeForm": "A-ing"},
            {"content": "b", "status": "in_progress", "activeForm": "B-ing"},
        ]
        with pytest.raises(ToolExecutionError, match="Only one task"):
            await TodoWriteTool(project).execute({"todos": todos})
        assert load_todos(project) == []

    @pytest.mark.asyncio
    async def test_invalid_status(self, project: Path):
        with pytest.raises(ToolExecutionError, match="invalid status 'done'"):
            await TodoWriteTool(project).execute({
                "todos": [{"content": "a", "status": "done", "activeForm": "A-ing"}],
            })

    @pytest.mark.asyncio
    async def test_todos_required(self, project: Path):
        with pytest.raises(MissingParameterError):
            await TodoWriteTool(project).execute({})


class TestWebFetchTool:
    @pytest.mark.asyncio
    async def test_html_is_converted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["user-agent"].startswith("Foreman/")
            return httpx.Response(
                200,
                headers={"content-type": "text/html; charset=utf-8"},
                text="<html><head><title>Docs</title><script>x()</script></head>"
                     "<body><h1>Intro</h1><p>Fish &amp; chips</p></body></html>",
            )

        tool = WebFetchTool(transport=httpx.MockTransport(handler))
        result = await tool.execute({"url": "https://example.com/docs", "prompt": "intro"})

        assert result["status_code"] == 200
        assert result["title"] == "Docs"
        assert "Fish & chips" in result["content"]
        assert "x()" not in result["content"]
        assert result["truncated"] is False
        assert result["prompt"] == "intro"

    @pytest.mark.asyncio
    async def test_truncates_long_bodies(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, headers={"content-type": "text/plain"}, text="z" * 500)
        )
        result = await WebFetchTool(transport=transport).execute({
            "url": "https://example.com/big", "max_length": 100,
        })
        assert result["truncated"] is True
        assert result["content"].startswith("z" * 100 + "\n\n[Truncated; 500 chars total]")

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        with pytest.raises(ToolExecutionError, match="HTTP 404"):
            await WebFetchTool(transport=transport).execute({"url": "https://example.com/missing"})

    @pytest.mark.asyncio
    async def test_rejects_non_http_url(self):
        with pytest.raises(ToolExecutionError, match="must start with http"):
            await WebFetchTool().execute({"url": "file:///etc/passwd"})


class TestWebSearchTool:
    @pytest.mark.asyncio
    async def test_results_are_filtered(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": [
                {"title": "Docs", "link": "https://docs.python.org/3/", "snippet": "Python docs"},
                {"title": "Spam", "link": "https://spam.example.com/x", "snippet": "no"},
            ]})

        tool = WebSearchTool("key", "engine", transport=httpx.MockTransport(handler))
        result = await tool.execute({"query": "asyncio", "blocked_domains": ["example.com"]})

        assert result["count"] == 1
        assert result["results"][0]["domain"] == "docs.python.org"
        assert seen[0].url.params["q"] == "asyncio"
        assert seen[0].url.params["cx"] == "engine"

    @pytest.mark.asyncio
    async def test_allowed_domains(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"items": [
            {"title": "A", "link": "https://a.org/", "snippet": ""},
            {"title": "B", "link": "https://b.org/", "snippet": ""},
        ]}))
        result = await WebSearchTool("k", "e", transport=transport).execute({
            "query": "letters", "allowed_domains": ["b.org"],
        })
        assert [r["url"] for r in result["results"]] == ["https://b.org/"]

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("SEARCH_API_KEY", raising=False)
        monkeypatch.delenv("SEARCH_ENGINE_ID", raising=False)
        with pytest.raises(ToolExecutionError, match="not configured"):
            await WebSearchTool().execute({"query": "anything"})


class TestGlobTool:
    @pytest.mark.asyncio
    async def test_recursive_pattern(self, project: Path):
        result = await GlobTool(project).execute({"pattern": "**/*.py"})
        names = sorted(Path(f).name for f in result["files"])
        assert names == ["main.py", "utils.py"]
        assert result["count"] == 2
        assert result["truncated"] is False

    @pytest.mark.asyncio
    async def test_explicit_path(self, project: Path):
        result = await GlobTool().execute({"pattern": "*", "path": str(project / "src")})
        assert result["files"] == [str(project / "src" / "utils.py")]

    @pytest.mark.asyncio
    async def test_ignores_git_dir(self, project: Path):
        (project / ".git").mkdir()
        (project / ".git" / "config.py").write_text("")
        result = await GlobTool(project).execute({"pattern": "**/*.py"})
        assert all(".git" not in f for f in result["files"])

    @pytest.mark.asyncio
    async def test_bad_path(self, project: Path):
        with pytest.raises(ToolExecutionError, match="not a directory"):
            await GlobTool(project).execute({"pattern": "*", "path": "main.py"})


class TestGrepTool:
    @pytest.mark.asyncio
    async def test_finds_matches(self, project: Path):
        result = await GrepTool(project).execute({"pattern": r"def \w+"})
        assert result["count"] == 2
        assert any(m.endswith("main.py:1: def hello():") for m in result["matches"])

    @pytest.mark.asyncio
    async def test_glob_filter_and_case(self, project: Path):
        result = await GrepTool(project).execute({
            "pattern": "TEST PROJECT", "glob": "*.md", "case_insensitive": True,
        })
        assert result["count"] == 2

    @pytest.mark.asyncio
    async def test_max_results(self, project: Path):
        (project / "many.txt").write_text("hit\n" * 10)
        result = await GrepTool(project).execute({"pattern": "hit", "max_results": 3})
        assert result["count"] == 3
        assert result["truncated"] is True

    @pytest.mark.asyncio
    async def test_invalid_regex(self, project: Path):
        with pytest.raises(ToolExecutionError, match="Invalid regex"):
            await GrepTool(project).execute({"pattern": "("})


class TestCommandSafety:
    @pytest.mark.parametrize("command", [
        "rm -rf /",
        "sudo rm -rf / --no-preserve-root",
        "mkfs.ext4 /dev/sda1",
        "dd if=/dev/zero of=/dev/sda",
    ])
    def test_blocks_dangerous(self, command: str):
        assert check_command_safety(command) is not None

    @pytest.mark.parametrize("command", ["ls -la", "rm -rf ./build", "echo hi > out.txt"])
    def test_allows_ordinary(self, command: str):
        assert check_command_safety(command) is None


@posix_only
class TestBashTool:
    @pytest.mark.asyncio
    async def test_foreground_command(self, project: Path):
        tool = BashTool(BackgroundProcessRegistry(), project)
        result = await tool.execute({"command": "echo hello && pwd"})
        assert result["success"] is True
        assert result["exit_code"] == 0
        assert result["output"].splitlines() == ["hello", str(project.resolve())]

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, project: Path):
        tool = BashTool(BackgroundProcessRegistry(), project)
        result = await tool.execute({"command": "echo bad >&2; exit 2"})
        assert result["success"] is False
        assert result["exit_code"] == 2
        assert "bad" in result["output"]

    @pytest.mark.asyncio
    async def test_timeout(self, project: Path):
        tool = BashTool(BackgroundProcessRegistry(), project)
        with pytest.raises(ToolExecutionError, match="timed out"):
            await tool.execute({"command": "sleep 5", "timeout": 100})

    @pytest.mark.asyncio
    async def test_blocked_command(self, project: Path):
        tool = BashTool(BackgroundProcessRegistry(), project)
        with pytest.raises(ToolExecutionError, match="blocked"):
            await tool.execute({"command": "rm -rf /"})

    @pytest.mark.asyncio
    async def test_working_directory(self, project: Path):
        tool = BashTool(BackgroundProcessRegistry(), project)
        result = await tool.execute({"command": "ls", "working_directory": "src"})
        assert result["output"].strip() == "utils.py"

    @pytest.mark.asyncio
    async def test_background_round_trip(self, project: Path):
        registry = BackgroundProcessRegistry()
        bash = BashTool(registry, project)
        output = BashOutputTool(registry, project)

        started = await bash.execute({
            "command": "echo out; echo err >&2", "run_in_background": True,
        })
        assert started["background"] is True
        bash_id = started["bash_id"]
        assert bash_id.startswith("bash_")

        entry = registry.get(bash_id)
        await asyncio.wait_for(entry.watcher, timeout=5)

        result = await output.execute({"bash_id": bash_id})
        assert "out\n" in result["output"]
        assert "[stderr] err\n" in result["output"]
        assert f"{EXIT_MARKER} (exit code 0)" in result["output"]
        assert result["running"] is False
        assert result["truncated"] is False

        # The finished shell is forgotten once its output is drained.
        assert registry.handles() == []
        with pytest.raises(ToolExecutionError, match="No background shell"):
            await output.execute({"bash_id": bash_id})

    @pytest.mark.asyncio
    async def test_running_shell_reports_no_new_output(self, project: Path):
        registry = BackgroundProcessRegistry()
        handle = await registry.start("sleep 30", project)
        output = BashOutputTool(registry, project)

        result = await output.execute({"bash_id": handle})

        assert result["message"] == "No new output"
        assert result["running"] is True
        assert registry.handles() == [handle]
        await registry.shutdown()
        assert registry.handles() == []

    @pytest.mark.asyncio
    async def test_large_background_output_is_bounded(self, project: Path):
        registry = BackgroundProcessRegistry()
        handle = await registry.start(
            "head -c 300000 /dev/zero | tr '\\0' a | fold -w 100", project,
        )
        entry = registry.get(handle)
        await asyncio.wait_for(entry.watcher, timeout=10)

        assert entry.buffered_chars <= MAX_BUFFER_CHARS
        assert entry.dropped_lines > 0

        result = await BashOutputTool(registry, project).execute({"bash_id": handle})

        assert result["truncated"] is True
        assert len(result["output"]) < 31_000
        assert result["output"].startswith("[...")
        assert "earlier lines dropped" in result["output"]
        assert registry.handles() == []

    @pytest.mark.asyncio
    async def test_output_filter(self, project: Path):
        registry = BackgroundProcessRegistry()
        handle = await registry.start("printf 'keep 1\\ndrop\\nkeep 2\\n'", project)
        await asyncio.wait_for(registry.get(handle).watcher, timeout=5)

        result = await BashOutputTool(registry, project).execute({"bash_id": handle, "filter": "^keep"})

        assert result["output"] == "keep 1\nkeep 2\n"
        assert result["lines"] == 2
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_kill_background_shell(self, project: Path):
        registry = BackgroundProcessRegistry()
        handle = await registry.start("sleep 30", project)
        kill = KillBashTool(registry, project)

        result = await kill.execute({"shell_id": handle})

        assert result["success"] is True
        assert registry.get(handle) is None
        with pytest.raises(ToolExecutionError, match="No background shell"):
            await kill.execute({"shell_id": handle})

    @pytest.mark.asyncio
    async def test_unknown_handle(self, project: Path):
        with pytest.raises(ToolExecutionError, match="No background shell"):
            await BashOutputTool(BackgroundProcessRegistry(), project).execute({"bash_id": "bash_x"})


class TestToolManager:
    def test_register_defaults(self, project: Path):
        mgr = ToolManager()
        mgr.register_defaults(BackgroundProcessRegistry(), project)
        assert mgr.names() == [
            "Read", "Write", "Edit", "MultiEdit", "Glob", "Grep", "Bash", "BashOutput", "KillBash",
            "TodoWrite", "WebFetch", "WebSearch",
        ]
        assert len(mgr) == 12
        assert "Read" in mgr
        assert [d.name for d in mgr.get_definitions()] == mgr.names()

    @pytest.mark.asyncio
    async def test_execute_dispatches_by_name(self):
        mgr = ToolManager()
        tool = RecordingTool("Echo", result={"ok": True})
        mgr.register(tool)

        assert await mgr.execute_tool("Echo", {"value": "v"}) == {"ok": True}
        assert tool.calls == [{"value": "v"}]

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self):
        with pytest.raises(ToolNotFoundError, match="Tool Missing not found"):
            await ToolManager().execute_tool("Missing", {})

    def test_filter_shares_instances(self):
        mgr = ToolManager()
        read, write = RecordingTool("Read"), RecordingTool("Write")
        mgr.register(read)
        mgr.register(write)

        filtered = mgr.filter(["Read", "Unknown"])

        assert filtered.names() == ["Read"]
        assert filtered.get("Read") is read

    def test_copy_is_independent_registry(self):
        mgr = ToolManager()
        mgr.register(RecordingTool("Read"))
        clone = mgr.copy()
        clone.register(RecordingTool("Extra"))

        assert "Extra" not in mgr
        assert clone.get("Read") is mgr.get("Read")
