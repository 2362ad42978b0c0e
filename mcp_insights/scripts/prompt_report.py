#!/usr/bin/env python3
"""Print prompt summaries or a version comparison for a JSONL row export.

Usage:
  python -m mcp_insights.scripts.prompt_report rows.jsonl
  python -m mcp_insights.scripts.prompt_report rows.jsonl --tool search --min-occurrences 3
  python -m mcp_insights.scripts.prompt_report rows.jsonl --compare "How many orders shipped?" --tool search
"""
from __future__ import annotations

import argparse
import asyncio
import json

from mcp_insights.aggregators import aggregate_by_prompt, compare_by_version
from mcp_insights.filters import filter_min_occurrences, filter_tool_runs
from mcp_insights.parsers.tool_runs import parse_tool_runs
from mcp_insights.sources import JsonlRowSource, RowQuery


async def _run(path: str, tool: str, min_occurrences: int, compare: str | None, limit: int) -> int:
    source = JsonlRowSource(path)
    rows = await source.fetch_rows(RowQuery(limit=limit))
    runs = parse_tool_runs(rows)

    if compare is not None:
        if not tool:
            print("--compare requires --tool")
            return 2
        comparison = compare_by_version(runs, compare, tool)
        if comparison is None:
            print("No runs found for this prompt")
            return 1
        print(json.dumps(comparison.model_dump(), indent=2))
        return 0

    summaries = filter_min_occurrences(
        aggregate_by_prompt(filter_tool_runs(runs, tool_name=tool)),
        min_occurrences,
    )
    print(f"{len(rows)} rows, {len(runs)} tool runs, {len(summaries)} prompt groups")
    for summary in summaries:
        ok_rate = (summary.successCount / summary.totalRuns * 100) if summary.totalRuns else 0.0
        versions = ", ".join(summary.versionsUsed) or "-"
        print(
            f"{summary.totalRuns:>5}  {ok_rate:5.1f}% ok  avg={summary.avgDurationMs if summary.avgDurationMs is not None else '-'}ms  "
            f"{summary.toolName}  [{versions}]  {(summary.userContext or '(no prompt)')[:80]}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("path", help="JSONL export of log rows")
    parser.add_argument("--tool", default="", help="Tool name (partial match; exact name with --compare)")
    parser.add_argument("--min-occurrences", type=int, default=1, help="Hide prompt groups with fewer runs")
    parser.add_argument("--compare", default=None, metavar="USER_CONTEXT", help="Compare one prompt across versions")
    parser.add_argument("--limit", type=int, default=5000, help="Maximum rows to read, newest first")
    args = parser.parse_args(argv)
    return asyncio.run(_run(args.path, args.tool, args.min_occurrences, args.compare, args.limit))


if __name__ == "__main__":
    raise SystemExit(main())
