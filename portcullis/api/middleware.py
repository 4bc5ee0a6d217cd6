"""Middleware for the Portcullis FastAPI application.

``AdmissionGateMiddleware`` adapts the framework-agnostic ``AdmissionGate``
to ASGI. It is written against raw ASGI rather than ``BaseHTTPMiddleware``
because the streaming fallback has to hand downstream a replacement
``receive`` that replays the counted body.
"""

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import ClientDisconnect
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from portcullis.api.errors import admission_error_response
from portcullis.core.config import Settings, settings
from portcullis.core.exceptions import AdmissionError, AdmissionErrorKind
from portcullis.core.gate import AdmissionGate
from portcullis.core.models import RequestSnapshot
from portcullis.observability.logging import (
    LogEvents,
    bind_context,
    clear_context,
    get_logger,
)
from portcullis.observability.metrics import record_admission_decision

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


def parse_content_length(raw: str | None) -> int | None:
    """Parse a Content-Length header value.

    Returns None for a missing, non-numeric or negative value so the gate
    counts the actual bytes instead of trusting a malformed declaration.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()):
        logger.warning(f"Ignoring malformed Content-Length header: {raw!r}")
        return None
    return int(raw)


class ReplayableBody:
    """Async byte stream that remembers what it yielded.

    Wraps a request stream so the gate can count it while the chunks are kept
    for the downstream app. At most ``retain_limit`` bytes are retained; past
    that the buffer is dropped (the request is about to be rejected) and the
    stream is only counted.
    """

    def __init__(self, source: AsyncIterator[bytes], retain_limit: int):
        self._source = source
        self.retain_limit = retain_limit
        self.chunks: list[bytes] = []
        self.bytes_seen = 0
        self.overflowed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        async for chunk in self._source:
            self.bytes_seen += len(chunk)
            if not self.overflowed:
                if self.bytes_seen > self.retain_limit:
                    self.overflowed = True
                    self.chunks.clear()
                elif chunk:
                    self.chunks.append(chunk)
            yield chunk

    def replay_receive(self, receive: Receive) -> Receive:
        """Build a ``receive`` that replays the retained body.

        Once the body has been replayed, later calls go to the original
        ``receive`` so the app still observes ``http.disconnect``.
        """
        pending: list[Message] = []
        chunks = self.chunks or [b""]
        for index, chunk in enumerate(chunks):
            pending.append(
                {
                    "type": "http.request",
                    "body": chunk,
                    "more_body": index < len(chunks) - 1,
                }
            )

        async def replay() -> Message:
            if pending:
                return pending.pop(0)
            return await receive()

        return replay


def _drained_receive(receive: Receive) -> Receive:
    """Build a ``receive`` that reports an empty, already-finished body."""
    sent = False

    async def drained() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        return await receive()

    return drained


class AdmissionGateMiddleware:
    """ASGI middleware running the admission gate once per HTTP request.

    Rejected requests get a 413 plain-text response and never reach the
    wrapped app. When no Content-Length is declared the body is counted by
    draining it; with ``replay_body`` enabled the drained body is buffered
    (bounded by ``max_body_bytes``) and replayed downstream, otherwise the
    app sees an empty body.

    Example:
        >>> app.add_middleware(
        ...     AdmissionGateMiddleware,
        ...     gate=AdmissionGate.new(max_body_bytes=1_000_000, max_url_length=2048),
        ... )
    """

    def __init__(
        self,
        app: ASGIApp,
        gate: AdmissionGate | None = None,
        replay_body: bool | None = None,
        exempt_path_prefixes: list[str] | None = None,
    ):
        """Initialize admission gate middleware.

        Args:
            app: ASGI application
            gate: Gate to apply (defaults to one built from settings)
            replay_body: Replay drained bodies downstream (defaults to settings)
            exempt_path_prefixes: Paths that skip the gate (defaults to settings)
        """
        self.app = app
        self.gate = gate or AdmissionGate.from_settings(settings)
        self.replay_body = (
            settings.replay_body if replay_body is None else replay_body
        )
        self.exempt_path_prefixes = (
            settings.exempt_path_prefixes
            if exempt_path_prefixes is None
            else exempt_path_prefixes
        )
        logger.info(
            f"Admission gate initialized: body limit {self.gate.max_body_bytes} bytes, "
            f"URL limit {self.gate.max_url_length} chars"
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        if any(request.url.path.startswith(p) for p in self.exempt_path_prefixes):
            await self.app(scope, receive, send)
            return

        bind_context(method=request.method, path=request.url.path)
        try:
            await self._admit(request, scope, receive, send)
        finally:
            clear_context()

    async def _admit(
        self, request: Request, scope: Scope, receive: Receive, send: Send
    ) -> None:
        content_length = parse_content_length(request.headers.get("content-length"))
        body: ReplayableBody | None = None
        if content_length is None:
            body = ReplayableBody(
                request.stream(),
                retain_limit=self.gate.max_body_bytes if self.replay_body else 0,
            )

        snapshot = RequestSnapshot(
            url=str(request.url), content_length=content_length, body=body
        )
        source = "declared" if content_length is not None else "streamed"

        try:
            await self.gate.admit(snapshot)
        except AdmissionError as exc:
            if exc.kind is AdmissionErrorKind.URL_TOO_LONG:
                source = "none"
            record_admission_decision(
                exc.kind,
                source=source,
                body_size=exc.details.get("actual_size"),
            )
            response = admission_error_response(exc)
            await response(scope, receive, send)
            return
        except ClientDisconnect:
            event_logger.info(
                LogEvents.CLIENT_DISCONNECTED,
                body_bytes_seen=body.bytes_seen if body is not None else 0,
            )
            return

        record_admission_decision(
            None,
            source=source,
            body_size=content_length if body is None else body.bytes_seen,
        )

        if body is not None:
            if self.replay_body:
                receive = body.replay_receive(receive)
            else:
                receive = _drained_receive(receive)

        await self.app(scope, receive, send)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Log request and response details."""
        start_time = time.time()

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Client: {request.client.host if request.client else 'unknown'}"
        )

        response = await call_next(request)

        latency = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - Latency: {latency:.3f}s"
        )

        return response


def setup_cors(app: FastAPI, app_settings: Settings | None = None) -> None:
    """Configure CORS middleware."""
    app_settings = app_settings or settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if not app_settings.is_production else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_middleware(
    app: FastAPI,
    gate: AdmissionGate | None = None,
    app_settings: Settings | None = None,
) -> None:
    """Configure all middleware in correct order.

    Middleware Order (outermost first):
        1. CORS - handles cross-origin requests
        2. Admission gate - rejects long URLs and large bodies
        3. Logging - records admitted request/response
    """
    app_settings = app_settings or settings
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        AdmissionGateMiddleware,
        gate=gate or AdmissionGate.from_settings(app_settings),
        replay_body=app_settings.replay_body,
        exempt_path_prefixes=app_settings.exempt_path_prefixes,
    )

    # CORS (outermost)
    setup_cors(app, app_settings)

    logger.info("All middleware configured successfully")
