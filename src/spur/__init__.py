"""Spur: a minimal ASGI middleware dispatcher.

Runs an ordered chain of middleware against a pooled, per-request
Context and guarantees exactly one response per request, even when a
middleware fails or raises unexpectedly.

Basic usage::

    from spur import App, Error

    app = App()

    @app.use
    async def auth(ctx):
        if ctx.get_header("authorization") is None:
            return Error(401, "unauthorized")
        return None

    @app.use
    async def hello(ctx):
        ctx.text(200, "Hello, World!")

    app.listen(":3000")
"""

__version__ = "0.1.0.dev0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "Error",
    "ErrorHandler",
    "HTTPStatusError",
    "Middleware",
    "PanicError",
    "ProtocolError",
    "ServerListener",
    "SpurError",
    "get_context",
    "parse_error",
    "wrap_asgi",
]

_LAZY_IMPORTS: dict[str, str] = {
    "App": "spur.app",
    "AppConfig": "spur.config",
    "ConfigurationError": "spur.errors",
    "Context": "spur.context",
    "Error": "spur.errors",
    "ErrorHandler": "spur.middleware.protocol",
    "HTTPStatusError": "spur.errors",
    "Middleware": "spur.middleware.protocol",
    "PanicError": "spur.errors",
    "ProtocolError": "spur.errors",
    "ServerListener": "spur.server.listener",
    "SpurError": "spur.errors",
    "get_context": "spur.context",
    "parse_error": "spur.errors",
    "wrap_asgi": "spur.middleware.adapters",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import spur`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
