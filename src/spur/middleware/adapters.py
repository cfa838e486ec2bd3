"""Adapters that turn foreign ASGI callables into middleware.

The wrapped app talks to the client directly through the Context's
response writer. No state is kept and no error translation happens: the
adapter always returns ``None``.
"""

from spur._internal.asgi import ASGIApp
from spur.context import Context
from spur.middleware.protocol import Middleware


def wrap_asgi(asgi_app: ASGIApp) -> Middleware:
    """Wrap an ASGI 3 application as a spur middleware.

    Usage::

        app.use(wrap_asgi(legacy_app))
    """

    async def middleware(ctx: Context) -> None:
        request = ctx.bound_request
        await asgi_app(request.scope, request.receive, ctx.response.send_raw)

    return middleware
