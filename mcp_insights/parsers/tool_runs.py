"""Turn raw log rows into ToolRun records and timeline events."""
from __future__ import annotations

from typing import Iterable

from mcp_insights.models import LogEvent, RawRow, ToolRun
from mcp_insights.parsers.fields import (
    ToolStatus,
    classify_error,
    detect_result_kind,
    extract_duration_ms,
    extract_gql_query,
    extract_gql_stats,
    extract_mcp_version,
    extract_result_fragments,
    extract_result_preview,
    extract_result_text,
    extract_session_id,
    extract_tool_name,
    extract_user_context,
    extract_user_name,
    get_tool_status,
)
from mcp_insights.parsers.meta import decode_meta, meta_tool_parameters


def build_tool_run(row: RawRow) -> ToolRun | None:
    """Build a ToolRun, or return None when the row is not a tool invocation.

    A row qualifies only when its meta names a tool and a session id can be
    resolved from the meta or the message.
    """
    meta = decode_meta(row.meta, row.id)

    tool_name = extract_tool_name(meta)
    if not tool_name:
        return None

    session_id = extract_session_id(row, meta)
    if not session_id:
        return None

    status = get_tool_status(meta)
    result_text = extract_result_text(meta)
    gql = extract_gql_stats(meta)
    error_class = classify_error(result_text) if status is ToolStatus.FAILURE else None

    return ToolRun(
        id=row.id,
        timestamp=row.timestamp,
        hostname=row.hostname,
        companyCode=row.company_code,
        appName=row.app_name,
        level=row.level,
        sessionId=session_id,
        toolName=tool_name,
        userContext=extract_user_context(meta),
        parameters=meta_tool_parameters(meta),
        status=status.value,
        durationMs=extract_duration_ms(meta),
        mcpVersion=extract_mcp_version(meta),
        errorClass=error_class.value if error_class else None,
        resultKind=detect_result_kind(result_text).value,
        resultText=extract_result_fragments(meta),
        gqlCount=gql.count,
        gqlMaxTimeMs=gql.max_time_ms,
        gqlQuery=extract_gql_query(meta),
    )


def row_to_event(row: RawRow) -> LogEvent:
    """Normalize any row for timeline display, tool run or not."""
    meta = decode_meta(row.meta, row.id)
    return LogEvent(
        id=row.id,
        timestamp=row.timestamp,
        hostname=row.hostname,
        companyCode=row.company_code,
        appName=row.app_name,
        level=row.level,
        message=row.message,
        sessionId=extract_session_id(row, meta),
        toolName=extract_tool_name(meta),
        userName=extract_user_name(row.message),
        userContext=extract_user_context(meta),
        toolStatus=get_tool_status(meta).value,
        resultPreview=extract_result_preview(meta),
    )


def parse_tool_runs(rows: Iterable[RawRow]) -> list[ToolRun]:
    runs: list[ToolRun] = []
    for row in rows:
        run = build_tool_run(row)
        if run is not None:
            runs.append(run)
    return runs
