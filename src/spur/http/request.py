"""Immutable HTTP request.

Frozen metadata with async body access. A new Request is built for every
ASGI scope and bound to a pooled Context; it never outlives that cycle.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from spur._internal.asgi import Receive, Scope
from spur.errors import ProtocolError
from spur.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.text()``, ``.json()``.
    """

    method: str
    path: str
    query_string: bytes
    headers: Headers
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # The raw ASGI scope, for adapters that delegate to foreign ASGI apps
    scope: Scope = field(repr=False, compare=False)

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(repr=False, compare=False)

    # Private: mutable cache for the body
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int.

        Raises ``ProtocolError`` (400) if the header is not a number.
        """
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            raise ProtocolError(400, f"invalid Content-Length {value!r}") from None

    @property
    def url(self) -> str:
        """Request target (path + query string)."""
        if self.query_string:
            return f"{self.path}?{self.query_string.decode('latin-1')}"
        return self.path

    @property
    def receive(self) -> Receive:
        return self._receive

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached: the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError(400, "request body is not valid UTF-8") from None

    async def json(self) -> Any:
        """Parse the body as JSON.

        Raises ``ProtocolError`` (400) on malformed input.
        """
        raw = await self.body()
        try:
            return json_module.loads(raw)
        except ValueError as exc:
            raise ProtocolError(400, f"invalid JSON body: {exc}") from exc

    # -- Diagnostics --

    def dump_headers(self) -> str:
        """Request line and headers, without the body.

        Line breaks are escaped so the snapshot fits on one log line.
        """
        lines = [f"{self.method} {self.url} HTTP/{self.http_version}", *self.headers.dump()]
        return "\\r\\n".join(lines) + "\\r\\n\\r\\n"

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            query_string=scope.get("query_string", b""),
            headers=Headers(tuple(scope.get("headers", ()))),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            scope=scope,
            _receive=receive,
        )
