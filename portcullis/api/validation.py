"""Response schemas for the Portcullis API."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response schema for health endpoints."""

    status: str = Field(..., description="Health status (healthy, unhealthy)")
    timestamp: str = Field(..., description="ISO timestamp")


class LimitsResponse(BaseModel):
    """Response schema for GET /v1/limits."""

    max_body_bytes: int = Field(..., description="Maximum request body size in bytes")
    max_url_length: int = Field(..., description="Maximum URL length in characters")


class EchoResponse(BaseModel):
    """Response schema for POST /v1/echo."""

    size: int = Field(..., description="Number of body bytes received", ge=0)
    sha256: str = Field(..., description="SHA-256 hex digest of the received body")
