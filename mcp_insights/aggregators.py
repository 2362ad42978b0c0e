"""Prompt-level summaries and per-version comparisons over tool runs."""
from __future__ import annotations

from typing import Callable, Hashable, Iterable, Optional, TypeVar

from mcp_insights import config
from mcp_insights.models import PromptSummary, ToolRun, VersionComparison, VersionStats
from mcp_insights.parsers.fields import round_half_up

_UNKNOWN_VERSION = "unknown"

K = TypeVar("K", bound=Hashable)


def _group(runs: Iterable[ToolRun], key: Callable[[ToolRun], K]) -> dict[K, list[ToolRun]]:
    # dicts keep insertion order, so groups come out in first-seen order
    groups: dict[K, list[ToolRun]] = {}
    for run in runs:
        groups.setdefault(key(run), []).append(run)
    return groups


def _status_counts(runs: list[ToolRun]) -> tuple[int, int]:
    success = sum(1 for run in runs if run.status == "success")
    failure = sum(1 for run in runs if run.status == "failure")
    return success, failure


def _durations(runs: list[ToolRun]) -> list[int]:
    return [run.durationMs for run in runs if run.durationMs is not None]


def _mean(values: list[int]) -> Optional[int]:
    if not values:
        return None
    return round_half_up(sum(values) / len(values))


def aggregate_by_prompt(runs: Iterable[ToolRun]) -> list[PromptSummary]:
    """Summarize runs per (tool, user context), busiest groups first."""
    groups = _group(runs, lambda run: (run.toolName, run.userContext))

    summaries: list[PromptSummary] = []
    for (tool_name, user_context), group in groups.items():
        success_count, failure_count = _status_counts(group)
        durations = _durations(group)
        versions = sorted({run.mcpVersion for run in group if run.mcpVersion is not None})
        summaries.append(PromptSummary(
            userContext=user_context,
            toolName=tool_name,
            totalRuns=len(group),
            successCount=success_count,
            failureCount=failure_count,
            avgDurationMs=_mean(durations),
            minDurationMs=min(durations) if durations else None,
            maxDurationMs=max(durations) if durations else None,
            versionsUsed=versions,
            exampleRunIds=[run.id for run in group[:config.SUMMARY_EXAMPLE_LIMIT]],
        ))

    # sorted() is stable with reverse=True, ties keep first-seen order
    return sorted(summaries, key=lambda summary: summary.totalRuns, reverse=True)


def compare_by_version(
    runs: Iterable[ToolRun],
    user_context: str,
    tool_name: str,
) -> VersionComparison | None:
    """Break one prompt's runs down by MCP version.

    Returns None when no run matches, so callers can tell "no data" apart
    from a comparison with zeroed counters. Versions are ordered as plain
    strings, so "1.10.0" sorts before "1.9.0".
    """
    matching = [
        run for run in runs
        if run.userContext == user_context and run.toolName == tool_name
    ]
    if not matching:
        return None

    groups = _group(matching, lambda run: run.mcpVersion or _UNKNOWN_VERSION)

    by_version: list[VersionStats] = []
    for version, group in groups.items():
        success_count, failure_count = _status_counts(group)
        total = len(group)
        by_version.append(VersionStats(
            version=version,
            totalRuns=total,
            successCount=success_count,
            failureCount=failure_count,
            successRate=(success_count / total) * 100 if total > 0 else 0.0,
            avgDurationMs=_mean(_durations(group)),
            exampleRunIds=[run.id for run in group[:config.COMPARISON_EXAMPLE_LIMIT]],
        ))

    by_version.sort(key=lambda stats: stats.version)
    return VersionComparison(userContext=user_context, toolName=tool_name, byVersion=by_version)
