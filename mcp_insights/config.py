"""MCP Insights configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default

# Project root (one level up from mcp_insights/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Meta decoding. The storage column caps meta at 65535 bytes; a value of
# exactly that length was cut by the database, not by the producer.
META_TRUNCATION_BYTES = _env_int("MCPI_META_TRUNCATION_BYTES", 65535)
META_TAIL_PREVIEW_CHARS = _env_int("MCPI_META_TAIL_PREVIEW_CHARS", 100)
RESULT_PREVIEW_CHARS = _env_int("MCPI_RESULT_PREVIEW_CHARS", 100)

# Aggregation
SUMMARY_EXAMPLE_LIMIT = _env_int("MCPI_SUMMARY_EXAMPLE_LIMIT", 5)
COMPARISON_EXAMPLE_LIMIT = _env_int("MCPI_COMPARISON_EXAMPLE_LIMIT", 3)

# Row fetch windows. Most rows are not tool runs, so the tool-run listing
# over-fetches before filtering.
TOOL_RUN_FETCH_MULTIPLIER = _env_int("MCPI_TOOL_RUN_FETCH_MULTIPLIER", 10)
TOOL_RUN_FETCH_CAP = _env_int("MCPI_TOOL_RUN_FETCH_CAP", 5000)
SESSION_FETCH_LIMIT = _env_int("MCPI_SESSION_FETCH_LIMIT", 1000)
COMPARE_FETCH_LIMIT = _env_int("MCPI_COMPARE_FETCH_LIMIT", 500)

# Row source
ROWS_PATH = os.getenv("MCPI_ROWS_PATH", str(PROJECT_ROOT / "rows.jsonl"))

# Observability
OTEL_ENABLED = _env_bool("MCPI_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("MCPI_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("MCPI_OTEL_SERVICE_NAME", "mcp-insights")
PROM_PORT = _env_int("MCPI_PROM_PORT", 9464)

# CORS
FRONTEND_ORIGIN = os.getenv("MCPI_FRONTEND_ORIGIN", "http://localhost:3000")
