"""Extraction rules that pull typed facts out of a row and its decoded meta.

Every rule is independent and total: missing or oddly-shaped input yields
``None`` (or the documented fallback), never an exception.
"""
from __future__ import annotations

import json
import math
import re
from enum import Enum
from typing import Any, NamedTuple

from mcp_insights import config
from mcp_insights.models import RawRow
from mcp_insights.parsers.meta import (
    DecodedMeta,
    loads_strict,
    meta_first_gql_call,
    meta_first_gql_headers,
    meta_gql_calls,
    meta_session_id,
    meta_tool,
    meta_tool_name,
    meta_tool_parameters,
    meta_tool_result,
    meta_tool_time,
)

_SESSION_PATTERN = re.compile(r"session\s+'([^']+)'", re.IGNORECASE)
_USER_PATTERN = re.compile(r"user\s+'([^']+)'", re.IGNORECASE)
_DURATION_PATTERN = re.compile(r"([\d.]+)ms")
_USER_AGENT_VERSION_PATTERN = re.compile(r"/(\d+\.\d+\.\d+)")
_HTML_MARKERS = ("<html", "<div", "<span", "<!doctype")

_USER_AGENT_HEADER = "User-Agent"
_CLIENT_VERSION_HEADER = "apollographql-client-version"


class ToolStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    UNKNOWN = "unknown"  # tool present, outcome not recorded
    NONE = "none"  # no tool section at all


class ErrorClass(str, Enum):
    GATEWAY_TIMEOUT_504 = "gateway_timeout_504"
    TIMEOUT_OTHER = "timeout_other"
    GRAPHQL_FAILED_OTHER = "graphql_failed_other"
    OTHER = "other"


class ResultKind(str, Enum):
    JSON = "json"
    HTML = "html"
    TEXT = "text"


class GqlStats(NamedTuple):
    count: int
    max_time_ms: float | None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return int(math.floor(value + 0.5))


# ── Identity ───────────────────────────────────────────────────────

def extract_session_id(row: RawRow, meta: DecodedMeta) -> str | None:
    """Session from meta first, then from "session '<id>'" in the message."""
    from_meta = meta_session_id(meta)
    if from_meta:
        return from_meta
    match = _SESSION_PATTERN.search(row.message or "")
    if match and match.group(1):
        return match.group(1)
    return None


def extract_tool_name(meta: DecodedMeta) -> str | None:
    return meta_tool_name(meta)


def extract_user_name(message: str | None) -> str | None:
    """Pull the quoted name out of messages like "called by user 'Jane Doe'"."""
    match = _USER_PATTERN.search(message or "")
    return match.group(1) if match else None


def extract_user_context(meta: DecodedMeta) -> str | None:
    parameters = meta_tool_parameters(meta)
    if parameters is None:
        return None
    value = parameters.get("userContext")
    return value if isinstance(value, str) else None


# ── Outcome ────────────────────────────────────────────────────────

def get_tool_status(meta: DecodedMeta) -> ToolStatus:
    tool = meta_tool(meta)
    if tool is None:
        return ToolStatus.NONE
    result = meta_tool_result(meta)
    if isinstance(result, dict) and result.get("isError") is True:
        return ToolStatus.FAILURE
    if result is not None:
        return ToolStatus.SUCCESS
    return ToolStatus.UNKNOWN


def extract_duration_ms(meta: DecodedMeta) -> int | None:
    raw = meta_tool_time(meta)
    if raw is None:
        return None
    match = _DURATION_PATTERN.fullmatch(raw)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(value):
        return None
    return round_half_up(value)


def extract_mcp_version(meta: DecodedMeta) -> str | None:
    headers = meta_first_gql_headers(meta)
    if headers is None:
        return None
    user_agent = headers.get(_USER_AGENT_HEADER)
    if isinstance(user_agent, str):
        matches = _USER_AGENT_VERSION_PATTERN.findall(user_agent)
        if matches:
            return matches[-1]
    client_version = headers.get(_CLIENT_VERSION_HEADER)
    if isinstance(client_version, str) and client_version:
        return client_version
    return None


def classify_error(text: str | None) -> ErrorClass | None:
    if text is None:
        return None
    lowered = text.lower()
    if "504" in lowered or "gateway time-out" in lowered:
        return ErrorClass.GATEWAY_TIMEOUT_504
    if "timeout" in lowered:
        return ErrorClass.TIMEOUT_OTHER
    if "graphql request failed" in lowered:
        return ErrorClass.GRAPHQL_FAILED_OTHER
    return ErrorClass.OTHER


def detect_result_kind(text: str | None) -> ResultKind:
    if not text:
        return ResultKind.TEXT
    try:
        loads_strict(text)
        return ResultKind.JSON
    except (ValueError, RecursionError):
        pass
    lowered = text.lower()
    if any(marker in lowered for marker in _HTML_MARKERS):
        return ResultKind.HTML
    return ResultKind.TEXT


# ── Result body ────────────────────────────────────────────────────

def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def extract_result_text(meta: DecodedMeta) -> str:
    """Text used for error classification: ``result.text``, then ``result.error``."""
    result = meta_tool_result(meta)
    if not isinstance(result, dict):
        return ""
    for key in ("text", "error"):
        value = result.get(key)
        if value is None or value == "" or value is False:
            continue
        return _as_text(value)
    return ""


def extract_result_fragments(meta: DecodedMeta) -> list[str] | None:
    result = meta_tool_result(meta)
    if not isinstance(result, dict):
        return None
    content = result.get("content")
    if not isinstance(content, list):
        return None
    fragments = [
        item["text"]
        for item in content
        if isinstance(item, dict) and isinstance(item.get("text"), str)
    ]
    return fragments or None


def extract_result_preview(meta: DecodedMeta) -> str | None:
    result = meta_tool_result(meta)
    if result is None or (not result and not isinstance(result, (dict, list))):
        return None
    try:
        text = result if isinstance(result, str) else json.dumps(result, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        return None
    limit = max(0, config.RESULT_PREVIEW_CHARS)
    if len(text) > limit:
        return text[:limit] + "..."
    return text


# ── GraphQL calls ──────────────────────────────────────────────────

def _finite_time(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        as_float = float(value)
    except OverflowError:
        return None
    return as_float if math.isfinite(as_float) else None


def extract_gql_stats(meta: DecodedMeta) -> GqlStats:
    calls = meta_gql_calls(meta)
    if calls is None:
        return GqlStats(0, None)
    times = [
        time
        for time in (_finite_time(call.get("time")) for call in calls if isinstance(call, dict))
        if time is not None
    ]
    return GqlStats(len(calls), max(times) if times else None)


def extract_gql_query(meta: DecodedMeta) -> str | None:
    call = meta_first_gql_call(meta)
    if call is None:
        return None
    query = call.get("query")
    return query if isinstance(query, str) else None
