"""Tests for foreman.observability.metrics."""

from __future__ import annotations

from foreman.observability import metrics


class TestMetrics:
    def setup_method(self):
        metrics.reset_instruments()

    def teardown_method(self):
        metrics.reset_instruments()

    def test_instruments_created_lazily(self):
        assert metrics._meter is None
        metrics.record_turn(model="m")
        assert metrics._meter is not None
        assert metrics._turn_counter is not None

    def test_recording_without_exporter_is_silent(self):
        metrics.record_tool_call("Read")
        metrics.record_tool_call("Bash", is_error=True)
        metrics.record_subagent_run("tester", success=False)
        metrics.record_hook_failures("PreToolUse", 2)
        metrics.record_provider_latency(12.5, model="m")

    def test_zero_hook_failures_skips_instruments(self):
        metrics.record_hook_failures("Stop", 0)
        assert metrics._meter is None

    def test_timed_provider_call_records_on_error(self):
        try:
            with metrics.timed_provider_call(model="m"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert metrics._latency_histogram is not None

    def test_reset(self):
        metrics.record_turn()
        metrics.reset_instruments()
        assert metrics._meter is None
        assert metrics._tool_call_counter is None
