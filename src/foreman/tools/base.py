"""Base tool class with shared logic."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, NoReturn

from foreman.errors import MissingParameterError, ToolExecutionError
from foreman.types.tools import ToolDef


class BaseTool(ABC):
    """Base class for all tools.

    Tools return any JSON-serialisable value and raise
    :class:`~foreman.errors.ToolExecutionError` when they cannot do the work.
    """

    def __init__(self, cwd: str | Path | None = None) -> None:
        self._cwd = Path(cwd).resolve() if cwd is not None else Path.cwd()

    @property
    @abstractmethod
    def definition(self) -> ToolDef:
        ...

    @abstractmethod
    async def execute(self, params: dict[str, Any]) -> Any:
        ...

    @property
    def name(self) -> str:
        return self.definition.name

    def describe(self) -> dict[str, Any]:
        return self.definition.to_dict()

    def _require(self, params: dict[str, Any], key: str) -> Any:
        value = params.get(key)
        if value is None or value == "":
            raise MissingParameterError(self.name, key)
        return value

    def _fail(self, msg: str) -> NoReturn:
        raise ToolExecutionError(self.name, msg)

    def _resolve(self, raw_path: str) -> Path:
        path = Path(raw_path).expanduser()
        if not path.is_absolute():
            path = self._cwd / path
        return path
