"""Spur application class.

Mutable during setup (middleware, error handler).
Frozen at runtime when the app starts serving.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from spur._internal.asgi import Receive, Scope, Send
from spur.config import AppConfig
from spur.context import Context
from spur.errors import ConfigurationError, Error, app_error, parse_error
from spur.middleware.protocol import ErrorHandler, Handler, Middleware
from spur.pool import ContextPool
from spur.server.handler import handle_request
from spur.server.listener import ServerListener, parse_address, serve


def default_on_error(ctx: Context, err: Exception) -> Error | None:
    """Default error handler.

    An error status already set on the response (>= 400) is used as the
    fallback code for unstructured errors; structured errors keep their
    own status.
    """
    code = ctx.response.status if ctx.response.status >= 400 else 0
    return parse_error(err, code)


class App:
    """The spur application.

    Hello spur::

        from spur import App

        app = App()

        @app.use
        async def hello(ctx):
            ctx.html(200, "<h1>Hello, spur!</h1>")

        app.listen(":3000")

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses a
        Lock + double-check so exactly one thread captures the middleware
        chain, even when several server workers hit ``__call__()`` at once.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "config",
        "logger",
        "on_error",
        "pool",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        # Error log for panics and 5xx responses
        self.logger: logging.Logger = logger or logging.getLogger("spur")
        self.on_error: ErrorHandler = default_on_error
        self.pool = ContextPool(self)
        self._middleware_list: list[Middleware] = []
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    # -- Middleware --

    def use(self, middleware: Middleware) -> Middleware:
        """Append a middleware to the chain. Usable as a decorator."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)
        return middleware

    def use_handler(self, handler: Handler) -> None:
        """Append an object's ``serve(ctx)`` method to the chain."""
        self.use(handler.serve)

    # -- Errors --

    def error_handler(self, func: ErrorHandler) -> ErrorHandler:
        """Replace the error handler via decorator.

        The handler receives the Context and the failure and returns the
        ``Error`` to send, or ``None`` to leave the response untouched::

            @app.error_handler
            def as_json(ctx, err):
                error = parse_error(err)
                ctx.set_type("json")
                return Error(error.status, json.dumps({"error": error.message}))
        """
        self._check_not_frozen()
        self.on_error = func
        return func

    def report(self, err: object) -> None:
        """Write *err* to the app's error log. ``None`` is ignored."""
        if err is None:
            return
        cause = getattr(err, "__cause__", None)
        self.logger.error("%s", err, exc_info=cause)

    # -- Server --

    def listen(self, address: str | None = None) -> None:
        """Serve HTTP until the server exits.

        Args:
            address: ``"host:port"`` or ``":port"``. Defaults to
                ``config.host`` / ``config.port``. TLS is enabled when
                both ``config.ssl_certfile`` and ``config.ssl_keyfile``
                are set.
        """
        self._ensure_frozen()
        host, port = self._resolve(address)
        serve(
            self,
            host,
            port,
            ssl_certfile=self.config.ssl_certfile,
            ssl_keyfile=self.config.ssl_keyfile,
        )

    def listen_tls(self, address: str | None, certfile: str, keyfile: str) -> None:
        """Serve HTTPS until the server exits."""
        self._ensure_frozen()
        host, port = self._resolve(address)
        serve(self, host, port, ssl_certfile=certfile, ssl_keyfile=keyfile)

    def start(self, address: str | None = None) -> ServerListener:
        """Start a non-blocking server. Useful for tests.

        Binds before returning; without *address* a random port on
        127.0.0.1 is used, see ``ServerListener.address``. Stop it with
        ``ServerListener.stop()`` or by leaving a ``with`` block.
        """
        self._ensure_frozen()
        return ServerListener(self, address)

    def _resolve(self, address: str | None) -> tuple[str, int]:
        if address is None:
            return self.config.host, self.config.port
        return parse_address(address)

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        if scope["type"] != "http":
            return

        self._ensure_frozen()
        await handle_request(scope, receive, send, app=self, middleware=self._middleware)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup, before the first HTTP request, so an
        empty chain fails the server start instead of the first request.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                except ConfigurationError as exc:
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Capture the middleware chain as an immutable tuple.

        MUST only be called while holding _freeze_lock.
        """
        if not self._middleware_list:
            raise app_error("no middleware")
        self._middleware = tuple(self._middleware_list)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware and the error handler before calling app.listen()."
            )
            raise RuntimeError(msg)
