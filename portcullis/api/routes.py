"""FastAPI route handlers for the Portcullis API."""

import hashlib
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status

from portcullis.api.validation import EchoResponse, HealthResponse, LimitsResponse
from portcullis.core.gate import AdmissionGate

logger = logging.getLogger(__name__)


def create_routes(gate: AdmissionGate) -> APIRouter:
    """Create and configure API routes.

    Args:
        gate: Gate whose limits are reported by /v1/limits

    Returns:
        Configured APIRouter
    """
    api_router = APIRouter()

    # GET /v1/limits - Effective admission limits
    @api_router.get(
        "/v1/limits",
        response_model=LimitsResponse,
        status_code=status.HTTP_200_OK,
    )
    async def limits() -> LimitsResponse:
        """Report the limits the gate enforces."""
        return LimitsResponse(
            max_body_bytes=gate.max_body_bytes,
            max_url_length=gate.max_url_length,
        )

    # POST /v1/echo - Body received after admission
    @api_router.post(
        "/v1/echo",
        response_model=EchoResponse,
        status_code=status.HTTP_200_OK,
    )
    async def echo(request: Request) -> EchoResponse:
        """Report the size and digest of the body that reached the handler."""
        body = await request.body()
        return EchoResponse(size=len(body), sha256=hashlib.sha256(body).hexdigest())

    # GET /health/live - Liveness probe
    @api_router.get(
        "/health/live",
        response_model=HealthResponse,
        status_code=status.HTTP_200_OK,
    )
    async def health_live() -> HealthResponse:
        """Liveness probe."""
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    return api_router
