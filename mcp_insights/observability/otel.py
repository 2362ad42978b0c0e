"""OpenTelemetry + Prometheus fallback wiring for MCP Insights."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, NamedTuple

from fastapi import FastAPI

from mcp_insights import config

logger = logging.getLogger("mcp_insights.observability")


class _Instrument(NamedTuple):
    kind: str  # "counter" | "histogram"
    unit: str
    description: str
    labels: tuple[str, ...]


DECODE_FAILURES = "mcpi_meta_decode_failures_total"
ROWS_PROCESSED = "mcpi_rows_processed_total"
TOOL_RUNS = "mcpi_tool_runs_total"
TOOL_DURATION = "mcpi_tool_duration_ms"

_INSTRUMENTS: dict[str, _Instrument] = {
    DECODE_FAILURES: _Instrument("counter", "1", "Meta columns that failed to parse as JSON", ("truncated",)),
    ROWS_PROCESSED: _Instrument("counter", "1", "Log rows processed, by whether they became tool runs", ("outcome",)),
    TOOL_RUNS: _Instrument("counter", "1", "Tool runs built, by tool and status", ("tool", "status")),
    TOOL_DURATION: _Instrument("histogram", "ms", "Reported tool execution durations", ("tool",)),
}

_initialized = False
_enabled = False
_tracer: Any | None = None
_providers: list[Any] = []
_fastapi_instrumentor: Any | None = None

# name -> instrument, filled only for the exporters that actually started
_otel_instruments: dict[str, Any] = {}
_prom_instruments: dict[str, Any] = {}


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip().rstrip("/")
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/v1"):
        endpoint = endpoint[: -len("/v1")]
    return f"{endpoint}{signal_path}"


def _label(value: str | None) -> str:
    return (value or "").strip() or "unknown"


def _create_otel_instruments(meter: Any) -> dict[str, Any]:
    created: dict[str, Any] = {}
    for name, spec in _INSTRUMENTS.items():
        factory = meter.create_histogram if spec.kind == "histogram" else meter.create_counter
        created[name] = factory(name, unit=spec.unit, description=spec.description)
    return created


def _start_prometheus(port: int) -> dict[str, Any]:
    """Expose the same instruments over a Prometheus scrape endpoint."""
    if port <= 0:
        return {}
    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(port)
        created = {
            name: (Histogram if spec.kind == "histogram" else Counter)(name, spec.description, list(spec.labels))
            for name, spec in _INSTRUMENTS.items()
        }
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        return {}
    logger.info("Prometheus fallback metrics server listening on port %s", port)
    return created


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _fastapi_instrumentor, _otel_instruments, _prom_instruments

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return
    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (MCPI_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    service_name = config.OTEL_SERVICE_NAME or "mcp-insights"
    resource = Resource.create({"service.name": service_name, "service.namespace": "mcp-insights"})

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(
        OTLPSpanExporter(endpoint=_normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces") or None)
    ))
    trace.set_tracer_provider(trace_provider)

    meter_provider = MeterProvider(resource=resource, metric_readers=[PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=_normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics") or None)
    )])
    metrics.set_meter_provider(meter_provider)

    _providers[:] = [meter_provider, trace_provider]
    _tracer = trace.get_tracer("mcp_insights")
    _otel_instruments = _create_otel_instruments(metrics.get_meter("mcp_insights"))
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True
    if app:
        _fastapi_instrumentor.instrument_app(app)

    _prom_instruments = _start_prometheus(config.PROM_PORT)
    logger.info("OpenTelemetry initialized (service=%s endpoint=%s)", service_name, config.OTEL_ENDPOINT)


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    if app and _fastapi_instrumentor:
        try:
            _fastapi_instrumentor.uninstrument_app(app)
        except Exception as exc:  # noqa: BLE001
            logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in _providers:
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("%s shutdown failed: %s", type(provider).__name__, exc)
    _providers.clear()
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


def _emit(name: str, amount: float, labels: dict[str, str]) -> None:
    histogram = _INSTRUMENTS[name].kind == "histogram"
    otel_instrument = _otel_instruments.get(name) if _enabled else None
    if otel_instrument is not None:
        if histogram:
            otel_instrument.record(amount, labels)
        else:
            otel_instrument.add(amount, labels)
    prom_instrument = _prom_instruments.get(name)
    if prom_instrument is not None:
        child = prom_instrument.labels(**labels)
        if histogram:
            child.observe(amount)
        else:
            child.inc(amount)


def record_meta_decode_failure(*, truncated: bool) -> None:
    _emit(DECODE_FAILURES, 1, {"truncated": "true" if truncated else "false"})


def record_row_outcome(outcome: str, count: int = 1) -> None:
    safe_count = max(0, int(count))
    if safe_count:
        _emit(ROWS_PROCESSED, safe_count, {"outcome": _label(outcome)})


def record_tool_run(tool: str, status: str, duration_ms: float | None = None) -> None:
    tool_label = _label(tool)
    _emit(TOOL_RUNS, 1, {"tool": tool_label, "status": _label(status)})
    if duration_ms is not None and duration_ms >= 0:
        _emit(TOOL_DURATION, float(duration_ms), {"tool": tool_label})
