"""Post-parse filters applied to tool runs and summaries before they are served."""
from __future__ import annotations

from typing import Iterable, Sequence, TypeVar

from mcp_insights.models import PromptSummary, ToolRun

T = TypeVar("T")


def filter_tool_runs(
    runs: Iterable[ToolRun],
    *,
    tool_name: str = "",
    status: str = "",
    version: str = "",
    user_context_search: str = "",
) -> list[ToolRun]:
    """Narrow runs by fields that only exist after parsing.

    Tool name and user context match as case-insensitive substrings, status
    exactly, version as a substring of the run's version. Empty criteria
    are skipped.
    """
    filtered = list(runs)
    if tool_name:
        needle = tool_name.lower()
        filtered = [run for run in filtered if needle in run.toolName.lower()]
    if status:
        filtered = [run for run in filtered if run.status == status]
    if version:
        filtered = [run for run in filtered if run.mcpVersion and version in run.mcpVersion]
    if user_context_search:
        needle = user_context_search.lower()
        filtered = [
            run for run in filtered
            if run.userContext is not None and needle in run.userContext.lower()
        ]
    return filtered


def filter_session(runs: Iterable[ToolRun], session_id: str) -> list[ToolRun]:
    return [run for run in runs if run.sessionId == session_id]


def filter_min_occurrences(summaries: Iterable[PromptSummary], minimum: int) -> list[PromptSummary]:
    return [summary for summary in summaries if summary.totalRuns >= minimum]


def paginate(items: Sequence[T], limit: int) -> tuple[list[T], bool]:
    """First ``limit`` items plus whether more were available."""
    safe_limit = max(0, limit)
    return list(items[:safe_limit]), len(items) > safe_limit
