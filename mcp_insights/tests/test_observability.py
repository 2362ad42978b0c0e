import unittest
from unittest.mock import MagicMock, patch

from mcp_insights.observability import otel


class ObservabilityDisabledTests(unittest.TestCase):
    def test_span_is_a_no_op_when_disabled(self) -> None:
        with patch.object(otel, "_enabled", False):
            with otel.start_span("tool_runs.parse", {"rows": 3}) as span:
                self.assertIsNone(span)

    def test_recorders_are_safe_when_disabled(self) -> None:
        counter = MagicMock()
        with patch.object(otel, "_enabled", False), patch.object(
            otel, "_otel_instruments", {otel.TOOL_RUNS: counter}
        ), patch.object(otel, "_prom_instruments", {}):
            otel.record_meta_decode_failure(truncated=True)
            otel.record_row_outcome("accepted", 4)
            otel.record_tool_run("getOrders", "success", 12)
        counter.add.assert_not_called()


class ObservabilityEnabledTests(unittest.TestCase):
    def test_otel_instruments_receive_labels(self) -> None:
        instruments = {name: MagicMock() for name in otel._INSTRUMENTS}
        with patch.object(otel, "_enabled", True), patch.object(
            otel, "_otel_instruments", instruments
        ), patch.object(otel, "_prom_instruments", {}):
            otel.record_meta_decode_failure(truncated=True)
            otel.record_row_outcome("dropped", 0)
            otel.record_row_outcome("accepted", 2)
            otel.record_tool_run("", "failure", None)
            otel.record_tool_run("getOrders", "success", 40)

        instruments[otel.DECODE_FAILURES].add.assert_called_once_with(1, {"truncated": "true"})
        instruments[otel.ROWS_PROCESSED].add.assert_called_once_with(2, {"outcome": "accepted"})
        self.assertEqual(
            instruments[otel.TOOL_RUNS].add.call_args_list[0].args,
            (1, {"tool": "unknown", "status": "failure"}),
        )
        instruments[otel.TOOL_DURATION].record.assert_called_once_with(40.0, {"tool": "getOrders"})

    def test_prometheus_instruments_work_without_otel(self) -> None:
        counter = MagicMock()
        histogram = MagicMock()
        prom = {otel.TOOL_RUNS: counter, otel.TOOL_DURATION: histogram}
        with patch.object(otel, "_enabled", False), patch.object(otel, "_prom_instruments", prom):
            otel.record_tool_run("getOrders", "success", 7)

        counter.labels.assert_called_once_with(tool="getOrders", status="success")
        counter.labels.return_value.inc.assert_called_once_with(1)
        histogram.labels.return_value.observe.assert_called_once_with(7.0)

    def test_otlp_endpoint_normalization(self) -> None:
        self.assertEqual(
            otel._normalize_otlp_endpoint("http://collector:4318", "/v1/traces"),
            "http://collector:4318/v1/traces",
        )
        self.assertEqual(
            otel._normalize_otlp_endpoint("http://collector:4318/v1/", "/v1/metrics"),
            "http://collector:4318/v1/metrics",
        )
        self.assertEqual(
            otel._normalize_otlp_endpoint("http://collector:4318/v1/traces", "/v1/traces"),
            "http://collector:4318/v1/traces",
        )
        self.assertEqual(otel._normalize_otlp_endpoint("  ", "/v1/traces"), "")

    def test_prometheus_disabled_by_port(self) -> None:
        self.assertEqual(otel._start_prometheus(0), {})


if __name__ == "__main__":
    unittest.main()
