"""Core data models for Portcullis.

This module defines the immutable limit configuration owned by the gate and
the read-only request snapshot the gate inspects.
"""

from collections.abc import AsyncIterable
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

# 5 MB request body, 256 character URL
DEFAULT_MAX_BODY_BYTES = 5_000_000
DEFAULT_MAX_URL_LENGTH = 256

# Body limits are unsigned 64-bit quantities
MAX_BODY_BYTES_LIMIT = 2**64 - 1


class LimitConfig(BaseModel):
    """Admission limits for one gate.

    Read-only after construction, so a single instance can be shared by
    every concurrent admission decision without locking.

    Construction:
        - ``LimitConfig()`` uses both defaults (5,000,000 bytes, 256 chars).
        - ``LimitConfig(max_body_bytes=..., max_url_length=...)`` stores the
          values verbatim. Non-positive values fail validation.
        - ``LimitConfig.with_default_url_length(max_body_bytes)`` replaces a
          non-positive body limit with the default instead of failing.

    Example:
        >>> LimitConfig.with_default_url_length(0).max_body_bytes
        5000000
    """

    model_config = ConfigDict(frozen=True)

    max_body_bytes: int = Field(
        default=DEFAULT_MAX_BODY_BYTES,
        description="Maximum request body size in bytes",
        ge=1,
        le=MAX_BODY_BYTES_LIMIT,
    )
    max_url_length: int = Field(
        default=DEFAULT_MAX_URL_LENGTH,
        description="Maximum serialized URL length in characters",
        ge=1,
    )

    @classmethod
    def with_default_url_length(cls, max_body_bytes: int) -> "LimitConfig":
        """Build limits from a body limit alone.

        A body limit of zero or less is silently replaced by
        ``DEFAULT_MAX_BODY_BYTES``. The URL limit is ``DEFAULT_MAX_URL_LENGTH``.
        """
        if max_body_bytes <= 0:
            max_body_bytes = DEFAULT_MAX_BODY_BYTES
        return cls(max_body_bytes=max_body_bytes)


@dataclass(frozen=True)
class RequestSnapshot:
    """What the gate sees of an inbound request.

    Attributes:
        url: Serialized absolute URL (scheme, host, path and query)
        content_length: Declared body length, None when the client sent none.
            Negative values are ignored and the body is counted.
        body: Body stream, consumed only when no length is declared
    """

    url: str
    content_length: int | None = None
    body: AsyncIterable[bytes] | None = None
