"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(ctx: Context) -> Exception | None

Adapters:
    wrap_asgi -- Delegate to a foreign ASGI application
"""

from spur.context import Hook
from spur.middleware.adapters import wrap_asgi
from spur.middleware.protocol import ErrorHandler, Handler, Middleware

__all__ = [
    "ErrorHandler",
    "Handler",
    "Hook",
    "Middleware",
    "wrap_asgi",
]
