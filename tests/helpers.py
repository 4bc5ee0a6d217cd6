"""Shared ASGI test doubles for Portcullis tests."""

from collections.abc import AsyncIterator

from starlette.responses import PlainTextResponse
from starlette.types import Message, Receive, Scope, Send


class TrackingBody:
    """Async body stream that records how much of it was read."""

    def __init__(self, chunks: list[bytes]):
        self._chunks = list(chunks)
        self.chunks_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk

    @property
    def touched(self) -> bool:
        return self.chunks_read > 0

    @property
    def exhausted(self) -> bool:
        return self.chunks_read == len(self._chunks)


class RecordingApp:
    """Downstream ASGI app that reads the whole body and answers 200."""

    def __init__(self) -> None:
        self.called = False
        self.body: bytes | None = None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        self.called = True
        body = b""
        while True:
            message = await receive()
            body += message.get("body", b"")
            if not message.get("more_body", False):
                break
        self.body = body
        await PlainTextResponse("ok")(scope, receive, send)


def make_scope(
    path: str = "/v1/echo",
    headers: dict[str, str] | None = None,
    query_string: bytes = b"",
    method: str = "POST",
) -> Scope:
    """Build a minimal HTTP scope served from http://testserver."""
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 50000),
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": query_string,
        "headers": [
            (name.lower().encode(), value.encode())
            for name, value in (headers or {}).items()
        ],
    }


def make_receive(chunks: list[bytes]) -> Receive:
    """Build a receive callable delivering ``chunks`` then a disconnect."""
    messages: list[Message] = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive() -> Message:
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


class SendCollector:
    """Send callable collecting the response messages."""

    def __init__(self) -> None:
        self.messages: list[Message] = []

    async def __call__(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int | None:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message["status"]
        return None

    @property
    def headers(self) -> dict[str, str]:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return {k.decode(): v.decode() for k, v in message["headers"]}
        return {}

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"")
            for m in self.messages
            if m["type"] == "http.response.body"
        )

