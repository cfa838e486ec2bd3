"""Middleware protocol and related callable shapes.

A middleware is any callable matching::

    async def my_mw(ctx: Context) -> Exception | None: ...

Plain ``def`` works too. No base class required. The framework checks
the shape, not the lineage.

Returning ``None`` lets the chain continue. Returning an exception fails
the request; it is routed through the app's error handler. Calling
``ctx.end()`` (or a body helper such as ``ctx.text()``) stops the chain
without failing.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from spur.context import Context
from spur.errors import Error

type MiddlewareResult = Exception | None

# Turns a chain failure into the structured response, or None to swallow it
type ErrorHandler = Callable[[Context, Exception], Error | None | Awaitable[Error | None]]


class Middleware(Protocol):
    """Protocol for spur middleware.

    Accepts both functions and callable objects::

        # Function middleware
        async def timing(ctx: Context) -> None:
            start = time.monotonic()
            ctx.after(lambda c: c.set_header("x-time", f"{time.monotonic() - start:.3f}"))

        # Class middleware
        class RequireJSON:
            async def __call__(self, ctx: Context) -> Error | None:
                ...
    """

    def __call__(self, ctx: Context) -> MiddlewareResult | Awaitable[MiddlewareResult]: ...


class Handler(Protocol):
    """An object registered with ``App.use_handler``."""

    def serve(self, ctx: Context) -> MiddlewareResult | Awaitable[MiddlewareResult]: ...
