"""Invoke helpers: call sync or async callables uniformly.

Middleware, after-hooks, and error handlers can be ``def`` or
``async def``. Any code that calls one of them goes through ``invoke``
so the sync/async check lives in exactly one place.

Usage::

    from spur._internal.invoke import invoke

    err = await invoke(middleware, ctx)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
