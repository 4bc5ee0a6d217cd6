"""OpenTelemetry metrics for the admission gate.

Metrics:
    - portcullis.admission.decisions: Counter of admission decisions, with
      ``outcome`` (admitted, rejected), ``kind`` (none, body_too_large,
      url_too_long) and ``source`` (declared, streamed, none) attributes
    - portcullis.admission.body_size: Histogram of measured body sizes in bytes
"""

import logging

from opentelemetry import metrics

from portcullis.core.config import settings
from portcullis.core.exceptions import AdmissionErrorKind

logger = logging.getLogger(__name__)

DECISIONS_METRIC = "portcullis.admission.decisions"
BODY_SIZE_METRIC = "portcullis.admission.body_size"

# Global meter instance
_meter: metrics.Meter | None = None

# Metric instruments (created on first access)
_admission_decisions_counter: metrics.Counter | None = None
_body_size_histogram: metrics.Histogram | None = None


def get_meter(name: str = "portcullis") -> metrics.Meter:
    """Get OpenTelemetry meter instance.

    Args:
        name: Meter name

    Returns:
        Meter instance (no-op if telemetry disabled)
    """
    global _meter
    if _meter is None:
        _meter = metrics.get_meter(name)
    return _meter


def _metrics_enabled() -> bool:
    return settings.otel_enabled and settings.otel_metrics_enabled


def _ensure_instruments() -> None:
    """Lazy initialization of metric instruments."""
    if not _metrics_enabled():
        return

    global _admission_decisions_counter
    global _body_size_histogram

    meter = get_meter()

    if _admission_decisions_counter is None:
        _admission_decisions_counter = meter.create_counter(
            name=DECISIONS_METRIC,
            description="Number of admission decisions made",
            unit="1",
        )

    if _body_size_histogram is None:
        _body_size_histogram = meter.create_histogram(
            name=BODY_SIZE_METRIC,
            description="Request body size seen by the gate",
            unit="By",
        )


def record_admission_decision(
    kind: AdmissionErrorKind | None,
    source: str = "none",
    body_size: int | None = None,
) -> None:
    """Record one admission decision.

    Args:
        kind: Rejection kind, or None when the request was admitted
        source: How the body size was learned (declared, streamed, none)
        body_size: Measured body size in bytes (optional)
    """
    if not _metrics_enabled():
        return

    _ensure_instruments()

    attributes = {
        "outcome": "admitted" if kind is None else "rejected",
        "kind": "none" if kind is None else kind.value,
        "source": source,
    }

    if _admission_decisions_counter:
        _admission_decisions_counter.add(1, attributes)

    if body_size is not None and _body_size_histogram:
        _body_size_histogram.record(body_size, {"source": source})
