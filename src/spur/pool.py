"""Context pooling.

A plain free list guarded by a lock. The pool is a reuse optimization
only: it never blocks, never evicts, and grows to the peak number of
concurrent requests.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from spur._internal.asgi import Receive, Scope, Send
from spur.context import Context
from spur.http.request import Request

if TYPE_CHECKING:
    from spur.app import App


class ContextPool:
    """Free list of reusable ``Context`` objects for one App.

    Thread safety:
        ``acquire`` and ``release`` only touch the shared list while
        holding ``_lock``. A Context is owned by exactly one request
        between the two calls.
    """

    __slots__ = ("_app", "_created", "_free", "_lock")

    def __init__(self, app: App) -> None:
        self._app = app
        self._free: list[Context] = []
        self._created = 0
        self._lock = threading.Lock()

    def acquire(self, scope: Scope, receive: Receive, send: Send) -> Context:
        """Return a clean Context bound to this request."""
        with self._lock:
            ctx = self._free.pop() if self._free else None
            if ctx is None:
                self._created += 1
        if ctx is None:
            ctx = Context(self._app)
        ctx.reset(Request.from_asgi(scope, receive), send)
        return ctx

    def release(self, ctx: Context) -> None:
        """Clear *ctx* and return it to the free list."""
        ctx.reset(None, None)
        with self._lock:
            self._free.append(ctx)

    @property
    def free(self) -> int:
        """Number of idle Contexts."""
        return len(self._free)

    @property
    def created(self) -> int:
        """Total Contexts ever allocated."""
        return self._created
