"""Serving entry points backed by uvicorn.

``serve`` blocks until the server exits. ``ServerListener`` binds a
socket immediately and runs the server on a daemon thread, which is what
test harnesses want: a live server that does not block the caller.
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import TYPE_CHECKING

import uvicorn

from spur.errors import app_error

if TYPE_CHECKING:
    from types import TracebackType

    from spur.app import App
    from spur.config import AppConfig

logger = logging.getLogger("spur.server")

DEFAULT_START_ADDRESS = "127.0.0.1:0"


def parse_address(address: str, default_host: str = "0.0.0.0") -> tuple[str, int]:
    """Split ``"host:port"`` into its parts.

    ``":8000"`` binds *default_host*. IPv6 hosts use brackets:
    ``"[::1]:8000"``.
    """
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise app_error(f"invalid address {address!r}: missing port")
    host = host.strip("[]") or default_host
    try:
        port = int(port_text)
    except ValueError:
        raise app_error(f"invalid address {address!r}: bad port {port_text!r}") from None
    if not 0 <= port <= 65535:
        raise app_error(f"invalid address {address!r}: port out of range")
    return host, port


def _uvicorn_config(
    app: App,
    config: AppConfig,
    *,
    host: str,
    port: int,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> uvicorn.Config:
    return uvicorn.Config(
        app,
        host=host,
        port=port,
        lifespan="on",
        log_config=None,
        log_level=config.log_level,
        access_log=config.access_log,
        backlog=config.backlog,
        timeout_keep_alive=config.keep_alive_timeout,
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
    )


def serve(
    app: App,
    host: str,
    port: int,
    *,
    ssl_certfile: str | None = None,
    ssl_keyfile: str | None = None,
) -> None:
    """Run a blocking uvicorn server for *app*."""
    config = _uvicorn_config(
        app,
        app.config,
        host=host,
        port=port,
        ssl_certfile=ssl_certfile,
        ssl_keyfile=ssl_keyfile,
    )
    scheme = "https" if ssl_certfile else "http"
    logger.info("spur serving on %s://%s:%d", scheme, host, port)
    uvicorn.Server(config).run()


def _bind(host: str, port: int, backlog: int) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        return socket.create_server((host, port), family=family, backlog=backlog)
    except OSError as exc:
        raise app_error(f"failed to listen on {host}:{port}: {exc}") from exc


class ServerListener:
    """A running, non-blocking server instance.

    Usage::

        with app.start() as server:
            httpx.get(server.url)

    Leaving the ``with`` block stops the server and waits for it to exit.
    """

    __slots__ = ("_address", "_error", "_server", "_socket", "_thread")

    def __init__(self, app: App, address: str | None = None) -> None:
        host, port = parse_address(address or DEFAULT_START_ADDRESS, default_host="127.0.0.1")
        self._socket = _bind(host, port, app.config.backlog)
        self._address: tuple[str, int] = self._socket.getsockname()[:2]
        config = _uvicorn_config(app, app.config, host=self._address[0], port=self._address[1])
        self._server = uvicorn.Server(config)
        self._error: BaseException | None = None
        self._thread = threading.Thread(
            target=self._run,
            name=f"spur-server-{self._address[1]}",
            daemon=True,
        )
        self._thread.start()

    def _run(self) -> None:
        try:
            self._server.run(sockets=[self._socket])
        except BaseException as exc:  # noqa: BLE001 - surfaced by wait()
            self._error = exc
        finally:
            self._socket.close()

    @property
    def address(self) -> tuple[str, int]:
        """The bound ``(host, port)``."""
        return self._address

    @property
    def url(self) -> str:
        host, port = self._address
        if ":" in host:
            host = f"[{host}]"
        return f"http://{host}:{port}"

    def stop(self) -> None:
        """Stop accepting connections. In-flight requests are allowed to finish."""
        self._server.should_exit = True

    def wait(self, timeout: float | None = None) -> None:
        """Block until the server exits.

        Re-raises the exception that ended the serve loop, if any.
        Raises ``TimeoutError`` if *timeout* elapses first.
        """
        self._thread.join(timeout)
        if self._thread.is_alive():
            msg = f"server on {self.url} still running after {timeout}s"
            raise TimeoutError(msg)
        if self._error is not None:
            raise self._error
        if not self._server.started:
            raise app_error(f"server on {self.url} exited before it started")

    def __enter__(self) -> ServerListener:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
        self.wait()

    def __repr__(self) -> str:
        return f"<ServerListener {self.url}>"
