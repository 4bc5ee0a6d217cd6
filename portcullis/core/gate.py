"""Admission gate: the pass/fail decision made once per inbound request.

The gate enforces two independent limits, URL length and body size, before a
request reaches application code.

Decision order:
    1. URL length. Cheap, so it runs first; a long URL is rejected without
       touching the body.
    2. Body size. A declared Content-Length is trusted as-is. Without one the
       body stream is read to exhaustion and its bytes counted (the streaming
       fallback), which drains the stream.

Both rejections raise ``AdmissionError`` with status 413 and distinct kinds.
"""

from collections.abc import AsyncIterable
from typing import TYPE_CHECKING

from portcullis.core.exceptions import AdmissionError
from portcullis.core.models import LimitConfig, RequestSnapshot
from portcullis.observability.logging import LogEvents, get_logger

if TYPE_CHECKING:
    from portcullis.core.config import Settings

logger = get_logger(__name__)


class AdmissionGate:
    """Decide whether a request may proceed down the pipeline.

    Stateless per request; the only state is the immutable ``LimitConfig``,
    so one gate serves any number of concurrent requests.

    Example:
        >>> gate = AdmissionGate.new(max_body_bytes=5, max_url_length=256)
        >>> await gate.admit(RequestSnapshot(url="https://google.com", content_length=5))
    """

    def __init__(self, config: LimitConfig | None = None):
        """Initialize the gate.

        Args:
            config: Limits to enforce (defaults to ``LimitConfig()``)
        """
        self.config = config or LimitConfig()

    @classmethod
    def new(cls, max_body_bytes: int, max_url_length: int) -> "AdmissionGate":
        """Create a gate with both limits given explicitly."""
        return cls(
            LimitConfig(max_body_bytes=max_body_bytes, max_url_length=max_url_length)
        )

    @classmethod
    def with_default_url_length(cls, max_body_bytes: int) -> "AdmissionGate":
        """Create a gate from a body limit; non-positive means the default."""
        return cls(LimitConfig.with_default_url_length(max_body_bytes))

    @classmethod
    def from_settings(cls, settings: "Settings") -> "AdmissionGate":
        """Create a gate from application settings.

        The body limit goes through the default substitution rule, so
        ``MAX_BODY_BYTES=0`` selects the built-in default.
        """
        body_limit = LimitConfig.with_default_url_length(settings.max_body_bytes)
        return cls(
            LimitConfig(
                max_body_bytes=body_limit.max_body_bytes,
                max_url_length=settings.max_url_length,
            )
        )

    @property
    def max_body_bytes(self) -> int:
        return self.config.max_body_bytes

    @property
    def max_url_length(self) -> int:
        return self.config.max_url_length

    async def admit(self, request: RequestSnapshot) -> None:
        """Admit the request or raise.

        Args:
            request: Snapshot of the inbound request

        Raises:
            AdmissionError: ``URL_TOO_LONG`` or ``BODY_TOO_LARGE`` (status 413)

        Note:
            Without a declared length the body stream is fully consumed.
            Callers must not expect to read it again from the start.
        """
        self.check_url(request.url)
        total = await self.measure_body(request)
        self.check_octets(total)
        logger.debug(LogEvents.REQUEST_ADMITTED, body_size=total)

    def check_url(self, url: str) -> None:
        """Reject URLs longer than ``max_url_length``."""
        length = len(url)
        if length > self.config.max_url_length:
            logger.warning(
                LogEvents.REQUEST_REJECTED,
                kind="url_too_long",
                url_length=length,
                max_url_length=self.config.max_url_length,
            )
            raise AdmissionError.url_too_long(length, self.config.max_url_length)

    def check_octets(self, total: int) -> None:
        """Reject bodies larger than ``max_body_bytes``."""
        if total > self.config.max_body_bytes:
            logger.warning(
                LogEvents.REQUEST_REJECTED,
                kind="body_too_large",
                body_size=total,
                max_body_bytes=self.config.max_body_bytes,
            )
            raise AdmissionError.body_too_large(total, self.config.max_body_bytes)

    async def measure_body(self, request: RequestSnapshot) -> int:
        """Return the declared body length, or count the stream if none.

        A negative declaration is not a length; the stream is counted instead.
        """
        if request.content_length is not None:
            if request.content_length >= 0:
                return request.content_length
            logger.warning(
                LogEvents.INVALID_CONTENT_LENGTH,
                content_length=request.content_length,
            )
        if request.body is None:
            return 0
        return await count_bytes(request.body)


async def count_bytes(stream: AsyncIterable[bytes]) -> int:
    """Drain ``stream`` and return the number of bytes read."""
    total = 0
    async for chunk in stream:
        total += len(chunk)
    return total
