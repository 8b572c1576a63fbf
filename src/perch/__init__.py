"""Perch — static asset middleware on a small ASGI core.

Serves a static directory and a handful of root-level files (favicon,
robots.txt, ...) straight from disk, with everything else falling
through to your routes.

Basic usage::

    from perch import App, StaticAssets

    app = App()
    app.add_middleware(StaticAssets("static", ["manifest.json"]))

    @app.route("/")
    def index():
        return "Hello, World!"

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "AnyResponse",
    "App",
    "AppConfig",
    "ConfigurationError",
    "FileResponse",
    "HTTPError",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "Request",
    "Response",
    "StaticAssets",
    "static_assets",
    "wildcard_assets",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast while providing a clean top-level API.
    """
    if name == "App":
        from perch.app import App

        return App

    if name == "AppConfig":
        from perch.config import AppConfig

        return AppConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name in ("Response", "FileResponse"):
        from perch.http import response as _resp

        return getattr(_resp, name)

    if name in ("AnyResponse", "Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("StaticAssets", "static_assets", "wildcard_assets"):
        from perch.middleware import static as _static

        return getattr(_static, name)

    if name in ("PerchError", "ConfigurationError", "HTTPError", "MethodNotAllowed", "NotFound"):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
