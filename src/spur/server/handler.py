"""Request dispatch: chain execution, error translation, panic recovery.

The only component that runs user middleware. For every HTTP request it:

1. acquires a clean Context from the app's pool,
2. runs the middleware chain against it (``run_chain``),
3. on success runs the queued after-hooks, on failure routes the error
   through the app's error handler (``translate_error``),
4. commits exactly one response,
5. releases the Context back to the pool, whatever happened above.

Any unexpected exception from steps 2-4 is a *panic*: it is reported to
the app's error log together with a header-only snapshot of the request,
and the client receives a generic 500.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextvars import Token
from typing import TYPE_CHECKING, Any

from spur._internal.asgi import Receive, Scope, Send
from spur._internal.invoke import invoke
from spur.context import Context, context_var
from spur.errors import Error, PanicError, is_structured

if TYPE_CHECKING:
    from spur.app import App

logger = logging.getLogger("spur.server")

INTERNAL_SERVER_ERROR = Error(500, "Internal Server Error")


async def run_chain(
    ctx: Context,
    middleware: tuple[Callable[..., Any], ...],
) -> Exception | None:
    """Invoke *middleware* in order against *ctx*.

    Stops at the first middleware that returns (or raises) a structured
    error, or that leaves ``ctx.ended`` set. Any other raised exception
    propagates to the caller. ``ctx.ended`` is always true afterwards.
    """
    err: Exception | None = None
    for handle in middleware:
        try:
            err = await invoke(handle, ctx)
        except Exception as exc:
            if not is_structured(exc):
                raise
            err = exc
        if err is not None:
            break
        if ctx.ended:
            break

    ctx.ended = True
    return err


async def translate_error(ctx: Context, err: Exception) -> None:
    """Apply the app's error handler to *ctx* for a failed chain."""
    app = ctx.app
    ctx.discard_after_hooks()
    # The error handler may set its own content type
    ctx.set_type("text")

    result: Error | None = await invoke(app.on_error, ctx, err)
    if result is None:
        return

    ctx.set_status(result.status)
    if ctx.response.status >= 500:
        app.report(result)
    else:
        request = ctx.bound_request
        logger.debug("%d %s %s: %s", result.status, request.method, request.path, result.message)
    ctx.response.set_body(result.message)


async def _dispatch(ctx: Context, middleware: tuple[Callable[..., Any], ...]) -> None:
    err = await run_chain(ctx, middleware)
    if err is not None:
        await translate_error(ctx, err)
    else:
        await ctx.run_after_hooks()
    await ctx.response.commit()


async def _recover(ctx: Context, exc: Exception) -> None:
    snapshot = ctx.bound_request.dump_headers()
    if not ctx.response.committed:
        ctx.response.headers.clear()
        ctx.error(INTERNAL_SERVER_ERROR)
    ctx.app.report(PanicError(exc, snapshot))
    try:
        await ctx.response.commit()
    except Exception as commit_exc:
        ctx.app.report(PanicError(commit_exc, snapshot))


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    app: App,
    middleware: tuple[Callable[..., Any], ...],
) -> None:
    """Process a single HTTP request through the full pipeline."""
    ctx = app.pool.acquire(scope, receive, send)
    token: Token[Context] = context_var.set(ctx)
    try:
        try:
            await _dispatch(ctx, middleware)
        except Exception as exc:
            await _recover(ctx, exc)
    finally:
        context_var.reset(token)
        app.pool.release(ctx)
