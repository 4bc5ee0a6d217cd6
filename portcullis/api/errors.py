"""Serialization of admission errors into HTTP responses.

This is the only place an ``AdmissionError`` becomes a response; up to here
the error kind is preserved so logs and metrics can tell a long URL from a
large body even though the client sees 413 for both.
"""

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse

from portcullis.core.exceptions import AdmissionError

logger = logging.getLogger(__name__)

ADMISSION_ERROR_HEADER = "X-Admission-Error"


def admission_error_response(exc: AdmissionError) -> PlainTextResponse:
    """Build the 413 response for a rejected request.

    Args:
        exc: Rejection raised by the gate

    Returns:
        Plain-text response whose body is the fixed message for the kind
    """
    return PlainTextResponse(
        content=exc.message,
        status_code=exc.status_code,
        headers={ADMISSION_ERROR_HEADER: exc.kind.value},
    )


async def admission_error_handler(
    request: Request, exc: AdmissionError
) -> PlainTextResponse:
    """FastAPI exception handler for hosts that call ``gate.admit`` themselves."""
    logger.warning(
        f"Admission rejected for {request.url.path}: {exc.kind.value} {exc.details}"
    )
    return admission_error_response(exc)
