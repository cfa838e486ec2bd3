"""Per-request Context and the request-scoped ContextVar.

A ``Context`` is the single mutable object threaded through the
middleware chain. Instances are pooled by ``ContextPool`` and reset
between requests, so code must never keep a reference to one after its
request has finished.

``context_var`` holds the active Context while the request is being
dispatched, for code that cannot receive it as an argument::

    from spur.context import get_context

    def current_user() -> str:
        return get_context().state["user"]

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    threaded servers. No locks needed.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from spur._internal.asgi import Scope, Send
from spur._internal.invoke import invoke
from spur.errors import Error
from spur.http.request import Request
from spur.http.response import MIME_TYPES, ResponseWriter

if TYPE_CHECKING:
    from spur.app import App

type Hook = Callable[[Context], Awaitable[None] | None]


class Context:
    """Mutable state for one request/response cycle.

    Middleware reads ``request``, writes ``response``, stores per-request
    values in ``state``, and calls ``end()`` (or one of the body helpers)
    to stop the chain without signalling an error.
    """

    __slots__ = ("_after_hooks", "app", "ended", "request", "response", "state")

    def __init__(self, app: App) -> None:
        self.app = app
        self.request: Request | None = None
        self.response = ResponseWriter()
        self.ended: bool = False
        self.state: dict[str, Any] = {}
        self._after_hooks: list[Hook] = []

    def reset(self, request: Request | None, send: Send | None) -> None:
        """Restore every field to its default and bind a new request.

        ``reset(None, None)`` drops all references to the finished
        request so it can be garbage collected while the Context sits
        in the pool.
        """
        self.request = request
        self.response.reset(send)
        self.ended = False
        self.state = {}
        self._after_hooks = []

    # -- Request helpers --

    @property
    def bound_request(self) -> Request:
        """The request being served.

        Raises ``RuntimeError`` on an idle Context, i.e. one that has been
        released to the pool.
        """
        if self.request is None:
            msg = "Context is idle: it is not bound to a request."
            raise RuntimeError(msg)
        return self.request

    @property
    def scope(self) -> Scope:
        return self.bound_request.scope

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Return a request header value."""
        return self.bound_request.headers.get(name, default)

    # -- Response helpers --

    def set_status(self, status: int) -> None:
        self.response.status = status

    def set_header(self, name: str, value: str) -> None:
        self.response.headers.set(name, value)

    def set_type(self, kind: str) -> None:
        """Set the response Content-Type.

        Accepts a short name (``"text"``, ``"html"``, ``"json"``, ...) or
        a full MIME type.
        """
        self.response.content_type = MIME_TYPES.get(kind.lower(), kind)

    def end(self, status: int = 0, body: str | bytes | None = None) -> None:
        """Stop the middleware chain, optionally setting status and body."""
        if status > 0:
            self.response.status = status
        if body is not None:
            self.response.set_body(body)
        self.ended = True

    def text(self, status: int, body: str) -> None:
        self.set_type("text")
        self.end(status, body)

    def html(self, status: int, body: str) -> None:
        self.set_type("html")
        self.end(status, body)

    def json(self, status: int, data: Any) -> None:
        self.set_type("json")
        self.end(status, json_module.dumps(data))

    def redirect(self, location: str, status: int = 302) -> None:
        self.set_header("location", location)
        self.end(status, b"")

    def error(self, err: Error) -> None:
        """Replace whatever the response holds with *err* and end the chain.

        Queued after-hooks are discarded.
        """
        self._after_hooks = []
        self.set_type("text")
        self.end(err.status, err.message)

    # -- After-hooks --

    def after(self, hook: Hook) -> None:
        """Queue *hook* to run once the chain finishes without error.

        Hooks run in the order they were added, before the response is
        committed, and may still modify it. They are dropped if the
        request fails.
        """
        if self.ended:
            msg = "Cannot add an after-hook once the middleware chain has ended."
            raise RuntimeError(msg)
        self._after_hooks.append(hook)

    def discard_after_hooks(self) -> None:
        self._after_hooks = []

    async def run_after_hooks(self) -> None:
        hooks, self._after_hooks = self._after_hooks, []
        for hook in hooks:
            await invoke(hook, self)

    def __repr__(self) -> str:
        target = f"{self.request.method} {self.request.path}" if self.request else "idle"
        return f"<Context {target} ended={self.ended}>"


# -- Request context --

context_var: ContextVar[Context] = ContextVar("spur_context")
"""The active Context. Set by the request handler around each dispatch."""


def get_context() -> Context:
    """Return the Context of the request being dispatched.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
