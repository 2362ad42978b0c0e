"""API routers for tool runs, sessions, prompt analytics, and app names."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from mcp_insights import config
from mcp_insights.aggregators import aggregate_by_prompt, compare_by_version
from mcp_insights.filters import (
    filter_min_occurrences,
    filter_session,
    filter_tool_runs,
    paginate,
)
from mcp_insights.models import (
    AppNameList,
    PromptSummaryList,
    RawRow,
    SessionTimeline,
    ToolRun,
    ToolRunPage,
    VersionComparison,
)
from mcp_insights.observability import record_row_outcome, record_tool_run, start_span
from mcp_insights.parsers.tool_runs import parse_tool_runs, row_to_event
from mcp_insights.sources import RowQuery, get_row_source

logger = logging.getLogger("mcp_insights.api")

_COMPARE_SEARCH_CHARS = 50


def _parse_ids(raw: str) -> list[int]:
    ids: list[int] = []
    for token in (raw or "").split(","):
        token = token.strip()
        if not token:
            continue
        try:
            ids.append(int(token))
        except ValueError:
            continue
    return ids


async def _fetch_rows(query: RowQuery, *, action: str) -> list[RawRow]:
    source = get_row_source()
    try:
        return await source.fetch_rows(query)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error fetching rows for %s", action)
        raise HTTPException(status_code=500, detail=f"Failed to {action}") from exc


def _build_runs(rows: list[RawRow]) -> list[ToolRun]:
    with start_span("tool_runs.parse", {"rows": len(rows)}):
        runs = parse_tool_runs(rows)
    record_row_outcome("accepted", len(runs))
    record_row_outcome("dropped", len(rows) - len(runs))
    for run in runs:
        record_tool_run(run.toolName, run.status, run.durationMs)
    return runs


# ── Tool runs ──────────────────────────────────────────────────────

tool_runs_router = APIRouter(prefix="/api/tool-runs", tags=["tool-runs"])


@tool_runs_router.get("", response_model=ToolRunPage)
async def list_tool_runs(
    hostname: str = Query("", description="Exact hostname"),
    company_code: int | None = Query(None, alias="companyCode"),
    app_name: str = Query("", alias="appName"),
    level: str = Query("", description="Exact log level"),
    q: str = Query("", description="Text search over message and meta"),
    limit: int = Query(50, ge=0),
    offset: int = Query(0, ge=0),
    ids: str = Query("", alias="id", description="Comma-separated row ids"),
    tool_name: str = Query("", alias="toolName", description="Tool name (partial match)"),
    status: str = Query("", description="success | failure | unknown"),
    version: str = Query("", description="MCP version (partial match)"),
    user_context_search: str = Query("", alias="userContextSearch"),
):
    """Return parsed tool runs, newest first."""
    query = RowQuery(
        hostname=hostname,
        company_code=company_code,
        app_name=app_name,
        level=level,
        text=q,
        ids=_parse_ids(ids),
        limit=min(limit * config.TOOL_RUN_FETCH_MULTIPLIER, config.TOOL_RUN_FETCH_CAP),
        offset=offset,
    )
    rows = await _fetch_rows(query, action="fetch tool runs")
    runs = filter_tool_runs(
        _build_runs(rows),
        tool_name=tool_name,
        status=status,
        version=version,
        user_context_search=user_context_search,
    )
    page, has_more = paginate(runs, limit)
    return ToolRunPage(toolRuns=page, hasMore=has_more, total=len(page))


# ── Sessions ───────────────────────────────────────────────────────

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@sessions_router.get("/{session_id}", response_model=SessionTimeline)
async def get_session(
    session_id: str,
    tool_only: bool = Query(False, alias="toolOnly", description="Skip non-tool events"),
):
    """Return the tool runs (and optionally all events) of one session, oldest first."""
    query = RowQuery(text=session_id, ascending=True, limit=config.SESSION_FETCH_LIMIT)
    rows = await _fetch_rows(query, action="fetch session data")

    # the text search can match other sessions that merely mention this id
    runs = filter_session(_build_runs(rows), session_id)

    events = None
    if not tool_only:
        events = [event for event in map(row_to_event, rows) if event.sessionId == session_id]

    return SessionTimeline(sessionId=session_id, toolRuns=runs, count=len(runs), events=events)


# ── Prompts ────────────────────────────────────────────────────────

prompts_router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@prompts_router.get("/summary", response_model=PromptSummaryList)
async def get_prompt_summary(
    company_code: int | None = Query(None, alias="companyCode"),
    tool_name: str = Query("", alias="toolName", description="Tool name (partial match)"),
    min_occurrences: int = Query(1, alias="minOccurrences"),
    limit: int = Query(1000, ge=0),
    start_date: str | None = Query(None, alias="startDate", description="ISO timestamp for start range"),
    end_date: str | None = Query(None, alias="endDate", description="ISO timestamp for end range"),
):
    """Aggregate recent tool runs by (tool, user context)."""
    query = RowQuery(company_code=company_code, start=start_date, end=end_date, limit=limit)
    rows = await _fetch_rows(query, action="fetch prompt summaries")
    runs = filter_tool_runs(_build_runs(rows), tool_name=tool_name)
    summaries = filter_min_occurrences(aggregate_by_prompt(runs), min_occurrences)
    return PromptSummaryList(summaries=summaries, total=len(summaries))


@prompts_router.get("/compare", response_model=VersionComparison)
async def compare_prompt_versions(
    user_context: str | None = Query(None, alias="userContext"),
    tool_name: str | None = Query(None, alias="toolName"),
    hostname: str = Query("", description="Exact hostname"),
):
    """Compare one prompt's outcomes across MCP versions."""
    if not user_context or not tool_name:
        raise HTTPException(status_code=400, detail="userContext and toolName are required")

    query = RowQuery(
        hostname=hostname,
        text=user_context[:_COMPARE_SEARCH_CHARS],
        limit=config.COMPARE_FETCH_LIMIT,
    )
    rows = await _fetch_rows(query, action="compare versions")
    comparison = compare_by_version(_build_runs(rows), user_context, tool_name)
    if comparison is None:
        raise HTTPException(status_code=404, detail="No runs found for this prompt")
    return comparison


# ── App names ──────────────────────────────────────────────────────

app_names_router = APIRouter(prefix="/api/app-names", tags=["app-names"])


@app_names_router.get("", response_model=AppNameList)
async def list_app_names():
    source = get_row_source()
    try:
        names = await source.list_app_names()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Error fetching app names")
        raise HTTPException(status_code=500, detail="Failed to fetch app names") from exc
    return AppNameList(appNames=names)
