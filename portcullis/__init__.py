"""Portcullis - request admission gate for HTTP pipelines.

Portcullis rejects oversized requests before they reach application code.
It enforces a maximum URL length and a maximum body size, trusting a
declared Content-Length and counting the body stream when none is sent.

Basic usage:
    >>> from portcullis import AdmissionGate, RequestSnapshot
    >>> gate = AdmissionGate.new(max_body_bytes=5, max_url_length=256)
    >>> await gate.admit(RequestSnapshot(url="https://google.com", content_length=2))

FastAPI usage:
    >>> from portcullis.api import AdmissionGateMiddleware
    >>> app.add_middleware(AdmissionGateMiddleware, gate=gate)
"""

__version__ = "0.1.0"

from dotenv import load_dotenv

load_dotenv()

from portcullis.core import (  # noqa: E402
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MAX_URL_LENGTH,
    AdmissionError,
    AdmissionErrorKind,
    AdmissionGate,
    ConfigurationError,
    LimitConfig,
    PortcullisError,
    RequestSnapshot,
    settings,
)

__all__ = [
    # Main interface
    "AdmissionGate",
    # Models
    "LimitConfig",
    "RequestSnapshot",
    "DEFAULT_MAX_BODY_BYTES",
    "DEFAULT_MAX_URL_LENGTH",
    # Configuration
    "settings",
    # Exceptions
    "PortcullisError",
    "AdmissionError",
    "AdmissionErrorKind",
    "ConfigurationError",
    # Version
    "__version__",
]
