"""Metrics recording: counters and histograms via the OpenTelemetry API.

Foreman never configures an exporter; until the host application installs a
MeterProvider, the API's default no-op provider swallows every measurement.
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import metrics

# Lazily-created instruments
_meter: Any = None
_turn_counter: Any = None
_tool_call_counter: Any = None
_subagent_counter: Any = None
_hook_failure_counter: Any = None
_latency_histogram: Any = None


def _ensure_instruments() -> None:
    """Create meter and instruments on first use."""
    global _meter, _turn_counter, _tool_call_counter, _subagent_counter
    global _hook_failure_counter, _latency_histogram

    if _meter is not None:
        return

    _meter = metrics.get_meter("foreman")
    _turn_counter = _meter.create_counter(
        "foreman.turns",
        description="Provider round-trips made by master loops",
    )
    _tool_call_counter = _meter.create_counter(
        "foreman.tool_calls",
        description="Total tool calls executed",
    )
    _subagent_counter = _meter.create_counter(
        "foreman.subagent_runs",
        description="Delegated subagent tasks",
    )
    _hook_failure_counter = _meter.create_counter(
        "foreman.hook_failures",
        description="Hooks that failed, timed out, or were missing",
    )
    _latency_histogram = _meter.create_histogram(
        "foreman.provider_latency",
        description="Provider response latency",
        unit="ms",
    )


def record_turn(*, model: str = "") -> None:
    _ensure_instruments()
    _turn_counter.add(1, {"model": model})


def record_tool_call(tool_name: str, *, is_error: bool = False) -> None:
    """Record a tool call execution."""
    _ensure_instruments()
    _tool_call_counter.add(1, {"tool": tool_name, "error": str(is_error).lower()})


def record_subagent_run(subagent_type: str, *, success: bool) -> None:
    _ensure_instruments()
    _subagent_counter.add(1, {"type": subagent_type, "success": str(success).lower()})


def record_hook_failures(hook_type: str, count: int) -> None:
    if count <= 0:
        return
    _ensure_instruments()
    _hook_failure_counter.add(count, {"hook_type": hook_type})


def record_provider_latency(latency_ms: float, *, model: str = "") -> None:
    """Record provider response latency in milliseconds."""
    _ensure_instruments()
    _latency_histogram.record(latency_ms, {"model": model})


@contextmanager
def timed_provider_call(*, model: str = "") -> Generator[None, None, None]:
    """Measure wall-clock time of a provider call, including failed ones."""
    start = time.monotonic()
    try:
        yield
    finally:
        record_provider_latency((time.monotonic() - start) * 1000, model=model)


def reset_instruments() -> None:
    """Reset module-level instruments, for test isolation."""
    global _meter, _turn_counter, _tool_call_counter, _subagent_counter
    global _hook_failure_counter, _latency_histogram
    _meter = None
    _turn_counter = None
    _tool_call_counter = None
    _subagent_counter = None
    _hook_failure_counter = None
    _latency_histogram = None
