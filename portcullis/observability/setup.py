"""OpenTelemetry wiring for the admission gate.

Builds one service ``Resource`` and, as enabled by settings, a tracer provider
and a meter provider exporting over OTLP gRPC. The meter provider registers a
histogram view for ``portcullis.admission.body_size`` whose bucket edges are
derived from the gate's body limit, with the limit itself as the last edge so
every rejected body lands in the overflow bucket.
"""

import logging
from typing import Any

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.metrics.view import ExplicitBucketHistogramAggregation, View
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from portcullis import __version__
from portcullis.core.config import settings
from portcullis.core.models import LimitConfig
from portcullis.observability.metrics import BODY_SIZE_METRIC

logger = logging.getLogger(__name__)

# Smallest bucket edge; edges grow by powers of four up to the body limit
FIRST_BUCKET_BYTES = 1024

_instrumented = False
_providers: list[Any] = []


def _parse_headers(raw: str) -> dict[str, str] | None:
    if not raw:
        return None
    return dict(item.split("=", 1) for item in raw.split(",") if "=" in item)


def body_size_buckets(max_body_bytes: int) -> list[float]:
    """Histogram bucket edges, in bytes, for a given body limit.

    A non-positive limit is resolved to the built-in default first, the same
    way the gate resolves it.

    Example:
        >>> body_size_buckets(20_000)
        [1024.0, 4096.0, 16384.0, 20000.0]
    """
    limit = LimitConfig.with_default_url_length(max_body_bytes).max_body_bytes
    edges = []
    edge = FIRST_BUCKET_BYTES
    while edge < limit:
        edges.append(float(edge))
        edge *= 4
    edges.append(float(limit))
    return edges


def _tracer_provider(resource: Resource, headers: dict[str, str] | None) -> TracerProvider:
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint, headers=headers
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def _meter_provider(
    resource: Resource, headers: dict[str, str] | None, max_body_bytes: int
) -> MeterProvider:
    exporter = OTLPMetricExporter(
        endpoint=settings.otel_exporter_otlp_endpoint, headers=headers
    )
    body_size_view = View(
        instrument_name=BODY_SIZE_METRIC,
        aggregation=ExplicitBucketHistogramAggregation(
            boundaries=body_size_buckets(max_body_bytes)
        ),
    )
    return MeterProvider(
        resource=resource,
        metric_readers=[
            PeriodicExportingMetricReader(exporter, export_interval_millis=60000)
        ],
        views=[body_size_view],
    )


def setup_telemetry(app: Any | None = None, max_body_bytes: int | None = None) -> None:
    """Install OTLP tracing and metrics, then instrument ``app``.

    Args:
        app: FastAPI application to auto-instrument
        max_body_bytes: Body limit the histogram buckets are sized for
            (defaults to ``settings.max_body_bytes``)

    Does nothing unless ``otel_enabled`` is set; later calls are no-ops.
    """
    global _instrumented

    if not settings.otel_enabled:
        logger.info("OpenTelemetry disabled by configuration")
        return

    if _instrumented:
        logger.debug("OpenTelemetry already initialized")
        return

    if max_body_bytes is None:
        max_body_bytes = settings.max_body_bytes

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "deployment.environment": settings.environment,
        }
    )
    headers = _parse_headers(settings.otel_exporter_otlp_headers)

    if settings.otel_traces_enabled:
        tracer_provider = _tracer_provider(resource, headers)
        trace.set_tracer_provider(tracer_provider)
        _providers.append(tracer_provider)

    if settings.otel_metrics_enabled:
        meter_provider = _meter_provider(resource, headers, max_body_bytes)
        metrics.set_meter_provider(meter_provider)
        _providers.append(meter_provider)

    if app:
        FastAPIInstrumentor.instrument_app(app)

    _instrumented = True
    logger.info(
        f"OpenTelemetry exporting to {settings.otel_exporter_otlp_endpoint} "
        f"(traces={settings.otel_traces_enabled}, metrics={settings.otel_metrics_enabled})"
    )


def shutdown_telemetry() -> None:
    """Flush and shut down the providers installed by ``setup_telemetry``."""
    while _providers:
        _providers.pop().shutdown()
        logger.info("OpenTelemetry provider shutdown")
