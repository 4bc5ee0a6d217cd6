"""FastAPI application factory with the admission gate installed."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from portcullis import __version__
from portcullis.api.errors import admission_error_handler
from portcullis.api.middleware import setup_middleware
from portcullis.api.routes import create_routes
from portcullis.core import config
from portcullis.core.config import Settings
from portcullis.core.exceptions import AdmissionError
from portcullis.core.gate import AdmissionGate
from portcullis.observability import setup_telemetry, shutdown_telemetry
from portcullis.observability.logging import LogEvents, get_logger

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifespan (startup/shutdown).

    Startup logs the effective limits; shutdown flushes telemetry.
    """
    gate: AdmissionGate = app.state.gate
    event_logger.info(
        LogEvents.SERVER_STARTED,
        max_body_bytes=gate.max_body_bytes,
        max_url_length=gate.max_url_length,
    )

    yield

    shutdown_telemetry()
    event_logger.info(LogEvents.SERVER_SHUTDOWN)


def create_app(
    settings: Settings | None = None, gate: AdmissionGate | None = None
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        settings: Limits, replay mode, exempt paths and CORS policy
            (defaults to the module-level settings)
        gate: Admission gate to install (defaults to one built from settings)

    Returns:
        Configured FastAPI app
    """
    settings = settings or config.settings
    gate = gate or AdmissionGate.from_settings(settings)

    app = FastAPI(
        title="Portcullis",
        description="Request admission gate rejecting long URLs and large bodies",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.gate = gate

    # Setup OpenTelemetry instrumentation
    setup_telemetry(app, max_body_bytes=gate.max_body_bytes)

    # Setup middleware
    setup_middleware(app, gate, settings)

    # Hosts that call gate.admit from their own handlers
    app.add_exception_handler(AdmissionError, admission_error_handler)  # type: ignore[arg-type]

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unhandled exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)},
        )

    app.include_router(create_routes(gate))

    event_logger.info(
        LogEvents.GATE_INITIALIZED,
        max_body_bytes=gate.max_body_bytes,
        max_url_length=gate.max_url_length,
    )

    return app
