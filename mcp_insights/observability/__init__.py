"""Observability helpers."""

from mcp_insights.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_meta_decode_failure,
    record_row_outcome,
    record_tool_run,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_meta_decode_failure",
    "record_row_outcome",
    "record_tool_run",
]
