"""Exception hierarchy for Portcullis.

This module defines the admission failure contract along with the
configuration errors raised at startup.
"""

from enum import Enum
from typing import Any


class PortcullisError(Exception):
    """Base exception for all Portcullis errors."""

    code: str = "PORTCULLIS_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(PortcullisError):
    """Configuration error (invalid settings, unreadable config file)."""

    code: str = "CONFIGURATION_ERROR"


class AdmissionErrorKind(str, Enum):
    """Reason a request was refused admission."""

    BODY_TOO_LARGE = "body_too_large"
    URL_TOO_LONG = "url_too_long"


ADMISSION_MESSAGES: dict[AdmissionErrorKind, str] = {
    AdmissionErrorKind.BODY_TOO_LARGE: "Request body too large.",
    AdmissionErrorKind.URL_TOO_LONG: "Request URL too long.",
}


class AdmissionError(PortcullisError):
    """Request refused by the admission gate.

    Both kinds map to 413 Payload Too Large for the client. The kind is kept
    so logs and metrics can tell them apart up to the point the response is
    serialized. The measured size and the configured limit travel in
    ``details`` and never reach the client message.

    Example:
        >>> err = AdmissionError.body_too_large(actual=10, limit=5)
        >>> err.kind, err.status_code, err.message
        (<AdmissionErrorKind.BODY_TOO_LARGE: 'body_too_large'>, 413, 'Request body too large.')
    """

    code: str = "ADMISSION_REJECTED"
    status_code: int = 413  # Payload Too Large

    def __init__(
        self, kind: AdmissionErrorKind, details: dict[str, Any] | None = None
    ):
        super().__init__(ADMISSION_MESSAGES[kind], details)
        self.kind = kind

    @classmethod
    def body_too_large(cls, actual: int, limit: int) -> "AdmissionError":
        """Build a ``BODY_TOO_LARGE`` rejection."""
        return cls(
            AdmissionErrorKind.BODY_TOO_LARGE,
            {"actual_size": actual, "max_size": limit},
        )

    @classmethod
    def url_too_long(cls, actual: int, limit: int) -> "AdmissionError":
        """Build a ``URL_TOO_LONG`` rejection."""
        return cls(
            AdmissionErrorKind.URL_TOO_LONG,
            {"actual_length": actual, "max_length": limit},
        )

    def __repr__(self) -> str:
        return f"AdmissionError(kind={self.kind.value!r}, details={self.details!r})"
