"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups. Static asset settings live on the middleware
itself (``perch.middleware.static.StaticConfig``).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Reload options, only used when debug=True
    reload_include: tuple[str, ...] = ()  # Extra extensions to watch (e.g. ".css", ".js")
    reload_dirs: tuple[str, ...] = ()  # Extra directories to watch alongside cwd
