"""Task tool: delegates work to a specialised subagent."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from foreman.tools.base import BaseTool
from foreman.types.agents import SubagentTask, SubagentType
from foreman.types.tools import ToolDef, ToolParam

if TYPE_CHECKING:
    from foreman.agents.manager import SubagentManager

_DEFINITION = ToolDef(
    name="Task",
    description=(
        "Launch a subagent to handle a complex, multi-step task on its own. "
        "It runs with its own conversation and returns its final answer."
    ),
    parameters=(
        ToolParam(
            name="description",
            type="string",
            description="A short (3-5 word) description of the task.",
        ),
        ToolParam(
            name="prompt",
            type="string",
            description="The full task for the subagent to perform.",
        ),
        ToolParam(
            name="subagent_type",
            type="string",
            description="The kind of specialised agent to use.",
            required=False,
            enum=tuple(t.value for t in SubagentType),
            default=SubagentType.GENERAL_PURPOSE.value,
        ),
    ),
)


class TaskTool(BaseTool):
    """Spawn a subagent through the manager this tool was bound to."""

    def __init__(self, subagents: SubagentManager) -> None:
        super().__init__()
        self._subagents = subagents

    @property
    def definition(self) -> ToolDef:
        return _DEFINITION

    @property
    def subagents(self) -> SubagentManager:
        return self._subagents

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        task = SubagentTask(
            description=self._require(params, "description"),
            prompt=self._require(params, "prompt"),
            subagent_type=params.get("subagent_type") or SubagentType.GENERAL_PURPOSE,
        )
        result = await self._subagents.execute_task(task)
        return result.to_dict()
