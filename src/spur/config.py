"""Application configuration.

AppConfig is a frozen dataclass: immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(port=3000, log_level="debug")
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    backlog: int = 2048
    keep_alive_timeout: int = 5

    # Logging (forwarded to uvicorn, which never reconfigures logging itself)
    log_level: str = "info"
    access_log: bool = False

    # TLS (used by App.listen() when both are set)
    ssl_certfile: str | None = None
    ssl_keyfile: str | None = None
