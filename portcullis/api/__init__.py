"""FastAPI integration for the Portcullis admission gate."""

from portcullis.api.app import create_app
from portcullis.api.errors import admission_error_handler, admission_error_response
from portcullis.api.middleware import (
    AdmissionGateMiddleware,
    LoggingMiddleware,
    ReplayableBody,
    setup_middleware,
)
from portcullis.api.validation import EchoResponse, HealthResponse, LimitsResponse

__all__ = [
    "create_app",
    "AdmissionGateMiddleware",
    "LoggingMiddleware",
    "ReplayableBody",
    "setup_middleware",
    "admission_error_handler",
    "admission_error_response",
    "EchoResponse",
    "HealthResponse",
    "LimitsResponse",
]
