import json
import tempfile
import unittest
from pathlib import Path

from mcp_insights import sources
from mcp_insights.sources import JsonlRowSource, RowQuery


def _row(row_id: int, **fields) -> dict:
    row = {
        "id": row_id,
        "hostname": "mcp-01",
        "company_code": 12,
        "app_name": "presage-api-mcp-server",
        "level": "info",
        "timestamp": f"2026-02-16T10:00:{row_id:02d}Z",
        "message": f"row {row_id}",
        "meta": "{}",
        "pid": 311,
        "errsole_id": 9,
    }
    row.update(fields)
    return row


class JsonlRowSourceTests(unittest.IsolatedAsyncioTestCase):
    def _write(self, lines: list[str]) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "rows.jsonl"
        path.write_text("\n".join(lines), encoding="utf-8")
        return path

    def _source(self, rows: list[dict]) -> JsonlRowSource:
        return JsonlRowSource(self._write([json.dumps(row) for row in rows]))

    async def test_rows_are_newest_first_by_default(self) -> None:
        source = self._source([_row(1), _row(3), _row(2)])
        rows = await source.fetch_rows(RowQuery())
        self.assertEqual([row.id for row in rows], [3, 2, 1])

    async def test_ascending_order_and_window(self) -> None:
        source = self._source([_row(i) for i in range(1, 6)])
        rows = await source.fetch_rows(RowQuery(ascending=True, offset=1, limit=2))
        self.assertEqual([row.id for row in rows], [2, 3])

    async def test_equality_filters(self) -> None:
        source = self._source([
            _row(1, hostname="a"),
            _row(2, hostname="b", company_code=7),
            _row(3, hostname="b", level="error"),
            _row(4, hostname="b", app_name="other"),
        ])
        rows = await source.fetch_rows(RowQuery(hostname="b", company_code=12, level="info"))
        self.assertEqual([row.id for row in rows], [4])
        rows = await source.fetch_rows(RowQuery(app_name="other"))
        self.assertEqual([row.id for row in rows], [4])

    async def test_ids_filter(self) -> None:
        source = self._source([_row(i) for i in range(1, 5)])
        rows = await source.fetch_rows(RowQuery(ids=[2, 4, 99]))
        self.assertEqual([row.id for row in rows], [4, 2])

    async def test_text_matches_message_or_meta(self) -> None:
        source = self._source([
            _row(1, message="Tool call in session 'ABC-1'"),
            _row(2, meta=json.dumps({"sessionId": "abc-1"})),
            _row(3),
        ])
        rows = await source.fetch_rows(RowQuery(text="abc-1", ascending=True))
        self.assertEqual([row.id for row in rows], [1, 2])

    async def test_date_window(self) -> None:
        source = self._source([_row(1), _row(5), _row(9), _row(10, timestamp=None)])
        rows = await source.fetch_rows(RowQuery(start="2026-02-16T10:00:02Z", end="2026-02-16T10:00:06Z"))
        self.assertEqual([row.id for row in rows], [5])

    async def test_invalid_lines_are_skipped(self) -> None:
        path = self._write([
            json.dumps(_row(1)),
            "{broken",
            json.dumps({"hostname": "no id"}),
            "",
            json.dumps(_row(2)),
        ])
        source = JsonlRowSource(path)
        with self.assertLogs("mcp_insights.sources", level="WARNING") as captured:
            rows = await source.fetch_rows(RowQuery())
        self.assertEqual([row.id for row in rows], [2, 1])
        self.assertEqual(sum("Skipping invalid row" in line for line in captured.output), 2)

    async def test_out_of_range_epoch_row_still_loads(self) -> None:
        source = self._source([_row(1), _row(2, timestamp=10 ** 30)])
        rows = await source.fetch_rows(RowQuery())
        self.assertEqual([row.id for row in rows], [1, 2])
        self.assertEqual(rows[1].timestamp, str(10 ** 30))

    async def test_missing_file_serves_nothing(self) -> None:
        source = JsonlRowSource(Path(tempfile.gettempdir()) / "does-not-exist-mcpi.jsonl")
        with self.assertLogs("mcp_insights.sources", level="WARNING"):
            rows = await source.fetch_rows(RowQuery())
        self.assertEqual(rows, [])
        self.assertFalse(await source.ping())

    async def test_app_names_are_mcp_only_and_sorted(self) -> None:
        source = self._source([
            _row(1, app_name="zeta-MCP"),
            _row(2, app_name="billing-api"),
            _row(3, app_name="presage-api-mcp-server"),
            _row(4, app_name="zeta-MCP"),
        ])
        self.assertEqual(await source.list_app_names(), ["presage-api-mcp-server", "zeta-MCP"])
        self.assertTrue(await source.ping())

    async def test_reload_picks_up_new_rows(self) -> None:
        path = self._write([json.dumps(_row(1))])
        source = JsonlRowSource(path)
        self.assertEqual(len(await source.fetch_rows(RowQuery())), 1)
        path.write_text("\n".join(json.dumps(_row(i)) for i in (1, 2)), encoding="utf-8")
        self.assertEqual(len(await source.fetch_rows(RowQuery())), 1)
        source.reload()
        self.assertEqual(len(await source.fetch_rows(RowQuery())), 2)


class RowSourceRegistryTests(unittest.TestCase):
    def tearDown(self) -> None:
        sources.set_row_source(None)

    def test_default_source_uses_configured_path(self) -> None:
        sources.set_row_source(None)
        source = sources.get_row_source()
        self.assertIsInstance(source, JsonlRowSource)
        self.assertIs(sources.get_row_source(), source)

    def test_custom_source_can_be_installed(self) -> None:
        custom = object()
        sources.set_row_source(custom)
        self.assertIs(sources.get_row_source(), custom)


if __name__ == "__main__":
    unittest.main()
