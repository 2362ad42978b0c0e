import unittest

from mcp_insights.filters import filter_min_occurrences, filter_session, filter_tool_runs, paginate
from mcp_insights.models import PromptSummary, ToolRun


def _run(run_id: int, **fields) -> ToolRun:
    base = {"id": run_id, "sessionId": "sess-1", "toolName": "getOrders"}
    base.update(fields)
    return ToolRun(**base)


class FilterToolRunsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runs = [
            _run(1, toolName="getOrders", status="success", mcpVersion="0.2.0", userContext="How many ORDERS?"),
            _run(2, toolName="searchCustomers", status="failure", mcpVersion="0.3.1", userContext="find bob"),
            _run(3, toolName="getOrderLines", status="unknown", mcpVersion=None, userContext=None),
        ]

    def test_no_criteria_keeps_everything(self) -> None:
        self.assertEqual([r.id for r in filter_tool_runs(self.runs)], [1, 2, 3])

    def test_tool_name_is_case_insensitive_substring(self) -> None:
        self.assertEqual([r.id for r in filter_tool_runs(self.runs, tool_name="ORDER")], [1, 3])

    def test_status_is_exact(self) -> None:
        self.assertEqual([r.id for r in filter_tool_runs(self.runs, status="failure")], [2])

    def test_version_substring_excludes_unversioned_runs(self) -> None:
        self.assertEqual([r.id for r in filter_tool_runs(self.runs, version="0.")], [1, 2])
        self.assertEqual([r.id for r in filter_tool_runs(self.runs, version="0.3")], [2])

    def test_user_context_search(self) -> None:
        self.assertEqual([r.id for r in filter_tool_runs(self.runs, user_context_search="orders")], [1])

    def test_criteria_combine(self) -> None:
        result = filter_tool_runs(self.runs, tool_name="order", status="success", version="0.2")
        self.assertEqual([r.id for r in result], [1])


class OtherFilterTests(unittest.TestCase):
    def test_filter_session_is_exact(self) -> None:
        runs = [_run(1, sessionId="abc"), _run(2, sessionId="abc-2"), _run(3, sessionId="abc")]
        self.assertEqual([r.id for r in filter_session(runs, "abc")], [1, 3])

    def test_min_occurrences(self) -> None:
        summaries = [
            PromptSummary(toolName="A", totalRuns=5),
            PromptSummary(toolName="B", totalRuns=1),
        ]
        self.assertEqual([s.toolName for s in filter_min_occurrences(summaries, 2)], ["A"])
        self.assertEqual(len(filter_min_occurrences(summaries, 1)), 2)

    def test_paginate(self) -> None:
        self.assertEqual(paginate([1, 2, 3], 2), ([1, 2], True))
        self.assertEqual(paginate([1, 2], 2), ([1, 2], False))
        self.assertEqual(paginate([1], 0), ([], True))


if __name__ == "__main__":
    unittest.main()
