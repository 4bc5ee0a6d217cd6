"""Observability for Portcullis: structured logging and OpenTelemetry.

Instrumented Components:
    - FastAPI requests (auto-instrumentation)
    - Admission decisions by outcome, kind and size source
"""

from portcullis.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from portcullis.observability.metrics import get_meter, record_admission_decision
from portcullis.observability.setup import setup_telemetry, shutdown_telemetry

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "LogEvents",
    "get_meter",
    "record_admission_decision",
    "setup_telemetry",
    "shutdown_telemetry",
]
