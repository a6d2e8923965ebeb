"""Observability: OpenTelemetry metrics."""
