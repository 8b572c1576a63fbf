"""Development server.

Starts a pounce ASGI server with the live perch App object.
Single worker; reload is opt-in.
"""


def run_dev_server(
    app: object,
    host: str,
    port: int,
    *,
    reload: bool = False,
    reload_include: tuple[str, ...] = (),
    reload_dirs: tuple[str, ...] = (),
) -> None:
    """Start a pounce server for the given perch App.

    Pounce's ``run()`` takes an import string (e.g. ``"myapp:app"``),
    but here we hold a live ``App`` object, so ``pounce.Server`` is
    driven directly with the ASGI callable.

    Args:
        app: ASGI callable (perch App instance).
        host: Bind host address.
        port: Bind port number.
        reload: Restart on file changes.
        reload_include: Extra file extensions to watch when reload is
            active (e.g. ``(".css", ".js")``).
        reload_dirs: Extra directories to watch alongside cwd.

    Raises:
        ConfigurationError: If pounce is not installed.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError as exc:
        from perch.errors import ConfigurationError

        msg = "App.run() requires pounce. Install it with: pip install perch[server]"
        raise ConfigurationError(msg) from exc

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        reload_include=reload_include,
        reload_dirs=reload_dirs,
    )
    Server(config, app).run()
