"""Test fixtures including ScriptedProvider for deterministic testing."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from foreman.core.conversation import ConversationManager
from foreman.core.loop import MasterLoop
from foreman.core.storage import SessionStorage
from foreman.hooks.manager import HookManager
from foreman.tools.manager import ToolManager
from foreman.types.config import LoopConfig
from foreman.types.providers import ChatMessage, Completion
from foreman.types.session import SessionOptions
from foreman.types.tools import ToolDef, ToolParam


class ScriptedProvider:
    """A deterministic provider that replays scripted responses.

    Usage:
        provider = ScriptedProvider([
            '<tool_use>{"name": "Glob", "parameters": {"pattern": "*"}}</tool_use>',
            "Done.",
        ])

    Each entry is returned from one ``complete`` call, either a plain string
    or a :class:`Completion`.  Once the script runs out, ``"(end of script)"``
    is returned.  Every call's messages are recorded in ``calls``.
    """

    def __init__(self, responses: list[Completion | str], model: str = "scripted-model"):
        self._responses = list(responses)
        self._model = model
        self.calls: list[list[ChatMessage]] = []
        self.tool_defs: list[list[ToolDef] | None] = []

    @property
    def model_id(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        tools: list[ToolDef] | None = None,
    ) -> Completion | str:
        self.calls.append(list(messages))
        self.tool_defs.append(tools)
        if not self._responses:
            return "(end of script)"
        return self._responses.pop(0)


class FailingProvider(ScriptedProvider):
    """A provider whose every call raises *exc*."""

    def __init__(self, exc: BaseException):
        super().__init__([])
        self._exc = exc

    async def complete(self, messages, *, tools=None):
        self.calls.append(list(messages))
        raise self._exc


class RecordingTool:
    """A tool that records its invocations and returns a canned result."""

    def __init__(self, name: str, result: Any = "ok", error: Exception | None = None):
        self._definition = ToolDef(
            name=name,
            description=f"Recording stand-in for {name}",
            parameters=(ToolParam(name="value", type="string", description="Any value", required=False),),
        )
        self._result = result
        self._error = error
        self.calls: list[dict[str, Any]] = []

    @property
    def definition(self) -> ToolDef:
        return self._definition

    async def execute(self, params: dict[str, Any]) -> Any:
        self.calls.append(dict(params))
        if self._error is not None:
            raise self._error
        return self._result


def tool_use(name: str, **parameters: Any) -> str:
    """Render one inline tool-call block."""
    return f"<tool_use>{json.dumps({'name': name, 'parameters': parameters})}</tool_use>"


def make_loop(
    project: Path,
    storage: SessionStorage,
    provider: ScriptedProvider,
    tools: list[Any] | ToolManager | None = None,
    *,
    hooks: HookManager | None = None,
    max_turns: int = 100,
    session_options: SessionOptions | None = None,
) -> MasterLoop:
    """Build a MasterLoop over *project* with the given tools."""
    if isinstance(tools, ToolManager):
        manager = tools
    else:
        manager = ToolManager()
        for tool in tools or ():
            manager.register(tool)
    return MasterLoop(
        provider,
        manager,
        ConversationManager(storage, project),
        hooks=hooks,
        config=LoopConfig(max_turns=max_turns),
        session_options=session_options,
    )


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point FOREMAN_HOME at a temp dir so no test touches ~/.foreman."""
    home = tmp_path / "home"
    monkeypatch.setenv("FOREMAN_HOME", str(home))
    monkeypatch.delenv("FOREMAN_PROVIDER", raising=False)
    monkeypatch.delenv("FOREMAN_MODEL", raising=False)
    return home


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A temporary project directory with sample files."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "README.md").write_text("# Test Project\n\nA test project.\n")
    (root / "main.py").write_text("def hello():\n    print('Hello, world!')\n\nhello()\n")
    src = root / "src"
    src.mkdir()
    (src / "utils.py").write_text("def add(a, b):\n    return a + b\n")
    return root


@pytest.fixture
def storage(tmp_path: Path) -> SessionStorage:
    return SessionStorage(tmp_path / "sessions")
