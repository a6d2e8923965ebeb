"""Tool-call extraction from model responses."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from foreman.errors import ToolCallParseError
from foreman.types.messages import ToolCall
from foreman.types.providers import Completion

logger = logging.getLogger(__name__)

TOOL_USE_PATTERN = re.compile(r"<tool_use>(.*?)</tool_use>", re.DOTALL)


def response_text(response: Completion | str) -> str:
    """The text part of a provider response."""
    return response if isinstance(response, str) else response.text


def extract_tool_calls(response: Completion | str) -> list[ToolCall]:
    """Return the tool calls a response asks for, in order.

    Structured calls from the provider win.  Otherwise the text is scanned
    for ``<tool_use>{"name": ..., "parameters": {...}}</tool_use>`` blocks;
    blocks that do not decode to a valid call are logged and skipped.
    """
    if isinstance(response, Completion) and response.tool_calls:
        return list(response.tool_calls)

    calls: list[ToolCall] = []
    for match in TOOL_USE_PATTERN.finditer(response_text(response)):
        try:
            calls.append(parse_tool_call(match.group(1)))
        except ToolCallParseError as exc:
            logger.warning("Dropping malformed tool_use block: %s", exc)
    return calls


def parse_tool_call(raw: str) -> ToolCall:
    """Decode the JSON body of one ``<tool_use>`` block."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolCallParseError(f"invalid JSON ({exc.msg})") from exc
    if not isinstance(data, dict):
        raise ToolCallParseError("block is not a JSON object")
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise ToolCallParseError("missing tool name")
    parameters = data.get("parameters", {})
    if parameters is None:
        parameters = {}
    if not isinstance(parameters, dict):
        raise ToolCallParseError(f"parameters for {name} must be an object")
    return ToolCall(name=name, parameters=parameters)
