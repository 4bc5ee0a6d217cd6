"""Structured logging configuration for Portcullis.

Admission decisions are logged through structlog as key/value events. Output
is JSON in production and colored console lines in development, and every
event carries the ``service`` name also used for OpenTelemetry, so rejected
requests can be matched to the ``portcullis.admission.decisions`` metric.

Configuration:
    Read from ``portcullis.core.config.settings``, which takes these from the
    environment or ``.env``:
    - LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    - LOG_FORMAT: json, console (default: json in production, console in dev)
    - ENVIRONMENT: development, production (affects format default)

Usage:
    >>> from portcullis.observability.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.warning("request_rejected", kind="body_too_large", body_size=10)

Standard Events:
    Admission:
        - request_admitted: Request passed both limits (debug level)
        - request_rejected: URL too long or body too large
        - invalid_content_length: Declared length ignored, body counted instead
        - client_disconnected: Client went away while the body was counted

    Lifecycle:
        - gate_initialized: Gate created with its effective limits
        - server_started / server_shutdown
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from portcullis.core.config import settings

_configured = False


def _add_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", settings.otel_service_name)
    return event_dict


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
    is_production: bool | None = None,
) -> None:
    """Configure structlog over stdlib logging. Later calls are no-ops.

    Args:
        level: Log level name (defaults to ``settings.log_level``)
        log_format: ``json`` or ``console`` (defaults to ``settings.log_format``,
            else json in production and console elsewhere)
        is_production: Override ``settings.is_production``
    """
    global _configured
    if _configured:
        return

    level = (level or settings.log_level).upper()
    if is_production is None:
        is_production = settings.is_production
    if log_format is None:
        log_format = settings.log_format or ("json" if is_production else "console")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
    ]
    if log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, configuring logging on first use.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("request_rejected", kind="url_too_long", url_length=300)

        Output (JSON):
        {
            "timestamp": "2024-01-15T10:30:00.123Z",
            "level": "warning",
            "logger": "portcullis.core.gate",
            "service": "portcullis",
            "event": "request_rejected",
            "kind": "url_too_long",
            "url_length": 300
        }
    """
    if not _configured:
        configure_logging()

    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def bind_context(**kwargs: Any) -> None:
    """Bind key/values to every later event in the current request context.

    The admission middleware binds ``method`` and ``path`` so gate events
    identify the request they judged.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop everything bound with ``bind_context``."""
    structlog.contextvars.clear_contextvars()


class LogEvents:
    """Standard event names for structured logging.

    Example:
        >>> logger.warning(LogEvents.REQUEST_REJECTED, kind="body_too_large")
    """

    # Admission events
    REQUEST_ADMITTED = "request_admitted"
    REQUEST_REJECTED = "request_rejected"
    INVALID_CONTENT_LENGTH = "invalid_content_length"
    CLIENT_DISCONNECTED = "client_disconnected"

    # Lifecycle events
    GATE_INITIALIZED = "gate_initialized"
    SERVER_STARTED = "server_started"
    SERVER_SHUTDOWN = "server_shutdown"
