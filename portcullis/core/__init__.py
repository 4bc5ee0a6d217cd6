"""Core infrastructure for the Portcullis admission gate."""

from portcullis.core.config import Settings, load_limits_config, settings
from portcullis.core.exceptions import (
    AdmissionError,
    AdmissionErrorKind,
    ConfigurationError,
    PortcullisError,
)
from portcullis.core.models import (
    DEFAULT_MAX_BODY_BYTES,
    DEFAULT_MAX_URL_LENGTH,
    LimitConfig,
    RequestSnapshot,
)
from portcullis.core.gate import AdmissionGate, count_bytes

__all__ = [
    # Config
    "Settings",
    "settings",
    "load_limits_config",
    # Exceptions
    "PortcullisError",
    "ConfigurationError",
    "AdmissionError",
    "AdmissionErrorKind",
    # Models
    "LimitConfig",
    "RequestSnapshot",
    "DEFAULT_MAX_BODY_BYTES",
    "DEFAULT_MAX_URL_LENGTH",
    # Gate
    "AdmissionGate",
    "count_bytes",
]
