"""Mutable response builder with a one-shot commit.

Unlike a value-style response, the ``ResponseWriter`` is owned by a pooled
Context and mutated in place by middleware. ``commit()`` writes it to the
wire exactly once; every later call is a no-op.
"""

from spur._internal.asgi import Message, Send
from spur.http.headers import MutableHeaders
from spur.server.sender import send_response

# Short names accepted by ``Context.set_type``
MIME_TYPES: dict[str, str] = {
    "text": "text/plain; charset=utf-8",
    "html": "text/html; charset=utf-8",
    "json": "application/json; charset=utf-8",
    "js": "application/javascript; charset=utf-8",
    "xml": "application/xml; charset=utf-8",
    "form": "application/x-www-form-urlencoded",
    "binary": "application/octet-stream",
}


class ResponseWriter:
    """Status, headers and body for one request, committed once.

    ``status`` starts at 0 ("unset"). On commit an unset status becomes
    200 if a body was written, otherwise 404 with a ``Not Found`` body.
    """

    __slots__ = ("_body", "_send", "committed", "headers", "status")

    def __init__(self) -> None:
        self._send: Send | None = None
        self.status: int = 0
        self.headers = MutableHeaders()
        self._body = bytearray()
        self.committed: bool = False

    def reset(self, send: Send | None) -> None:
        """Restore defaults and bind the ASGI ``send`` of a new request."""
        self._send = send
        self.status = 0
        self.headers.clear()
        self._body.clear()
        self.committed = False

    # -- Body --

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def set_body(self, data: str | bytes) -> None:
        """Replace the buffered body."""
        self._body.clear()
        self.write(data)

    def write(self, data: str | bytes) -> None:
        """Append to the buffered body."""
        self._body.extend(data.encode("utf-8") if isinstance(data, str) else data)

    # -- Headers --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @content_type.setter
    def content_type(self, value: str) -> None:
        self.headers.set("content-type", value)

    # -- Wire --

    def _bound_send(self) -> Send:
        if self._send is None:
            msg = "ResponseWriter is idle: it is not bound to a request."
            raise RuntimeError(msg)
        return self._send

    async def commit(self) -> None:
        """Send status, headers and body. Idempotent."""
        if self.committed:
            return
        send = self._bound_send()
        self.committed = True
        if self.status == 0:
            if self._body:
                self.status = 200
            else:
                self.status = 404
                self.content_type = MIME_TYPES["text"]
                self.set_body("Not Found")

        await send_response(self.status, self.headers.items(), self.body, send)

    async def send_raw(self, message: Message) -> None:
        """Forward a raw ASGI message, as a foreign ASGI app would send it.

        A response start marks this writer committed so the final
        ``commit()`` does not send a second response.
        """
        send = self._bound_send()
        if message["type"] == "http.response.start":
            self.committed = True
            self.status = message["status"]
        await send(message)
