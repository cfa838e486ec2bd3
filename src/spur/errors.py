"""Spur exception hierarchy and error normalization.

Shared across App, Context, handler, and middleware so every module
raises and catches the same types.

Failures travel through the middleware chain in one of four shapes.
``parse_error`` folds them into a single structured ``Error``, first
match wins:

1. ``Error`` passes through unchanged.
2. ``ProtocolError`` maps its numeric code and message.
3. Anything exposing an integer ``status`` (``HTTPStatusError``) maps
   that status and ``str(exc)``.
4. Everything else becomes a 500, or the caller-supplied fallback code.
"""

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


class SpurError(Exception):
    """Base for all spur-specific errors."""


class ConfigurationError(SpurError):
    """Raised when app configuration is invalid.

    Raised at startup (``App.listen()``, ``App.start()``, lifespan), never
    while a request is being served.
    """


def app_error(message: str) -> ConfigurationError:
    """Build a ``ConfigurationError`` with the ``[App]`` prefix."""
    return ConfigurationError(f"[App] {message}")


# Exceptions stay mutable: contextlib and add_note() write to them in flight
@dataclass(eq=False)
class Error(SpurError):
    """A numeric error with optional meta.

    Returned (or raised) by middleware to fail a request, and produced by
    the error handler as the response the client receives::

        async def require_token(ctx: Context) -> Error | None:
            if "authorization" not in ctx.request.headers:
                return Error(401, "missing token")
            return None
    """

    status: int
    message: str = ""
    meta: Any = None

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class ProtocolError(SpurError):
    """A textual protocol failure with a numeric reply code.

    Raised while parsing wire data, e.g. a malformed ``Content-Length``
    header or an undecodable JSON body.
    """

    code: int
    msg: str

    def __str__(self) -> str:
        return f"{self.code} {self.msg}"


@runtime_checkable
class HTTPStatusError(Protocol):
    """Any exception that knows its own HTTP status.

    ``str(exc)`` is used as the message.
    """

    status: int


class PanicError(SpurError):
    """An unexpected exception recovered at the dispatch boundary.

    Delivered to ``App.report`` only. The client sees a generic 500.
    """

    def __init__(self, value: BaseException, request: str) -> None:
        super().__init__(value, request)
        self.value = value
        self.request = request
        self.__cause__ = value

    def __str__(self) -> str:
        return f"panic recovered: {self.value!r}; {self.request}"


def _status_of(exc: object) -> int | None:
    if not isinstance(exc, HTTPStatusError):
        return None
    status = exc.status
    if isinstance(status, int) and not isinstance(status, bool):
        return status
    return None


def is_structured(exc: BaseException) -> bool:
    """True if *exc* is a failure shape middleware may raise instead of return."""
    return isinstance(exc, (Error, ProtocolError)) or _status_of(exc) is not None


def parse_error(exc: BaseException | None, code: int = 0) -> Error | None:
    """Normalize *exc* into an ``Error``.

    Args:
        exc: The failure to normalize. ``None`` yields ``None``.
        code: Status to use for unstructured failures instead of 500.
            Ignored unless positive.
    """
    if exc is None:
        return None
    if isinstance(exc, Error):
        return exc
    if isinstance(exc, ProtocolError):
        return Error(exc.code, exc.msg, exc)
    status = _status_of(exc)
    if status is not None:
        return Error(status, str(exc), exc)
    return Error(code if code > 0 else 500, str(exc), exc)
