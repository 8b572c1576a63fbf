"""Static asset middleware.

Serves files straight from disk for GET requests whose path either names
an allow-listed root file (``favicon.ico``, ``robots.txt``, plus any
extras) or starts with the configured asset root. Everything else falls
through to the next handler.

The wildcard variant also accepts one arbitrary segment between the
root and the rest of the path, so ``/static/v42/app.css`` serves
``static/app.css``. Those responses are marked ``noindex`` because the
same file is reachable under many URLs.

The root match is a plain string-prefix test: root ``"static"`` also
claims ``/staticfoo``.
"""

import os
import stat
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from perch.errors import ConfigurationError
from perch.http.content import serve_content, status_response
from perch.http.request import Request
from perch.middleware.protocol import AnyResponse, Next

DEFAULT_ASSETS: frozenset[str] = frozenset({"favicon.ico", "robots.txt"})


class MatchKind(Enum):
    """How a request location was matched to a file candidate."""

    ALLOW_LIST = "allow_list"
    ROOT = "root"
    WILDCARD = "wildcard"


@dataclass(frozen=True, slots=True)
class StaticConfig:
    """Static asset configuration. Immutable after creation.

    Build it with ``StaticConfig.build()`` so the default assets are
    always part of ``allow_list``.
    """

    root: str
    allow_list: frozenset[str] = DEFAULT_ASSETS
    wildcard: bool = False
    # None resolves against the working directory at request time
    directory: Path | None = None

    @classmethod
    def build(
        cls,
        root: str,
        assets: Iterable[str] = (),
        *,
        wildcard: bool = False,
        directory: str | Path | None = None,
    ) -> "StaticConfig":
        """Validate arguments and union *assets* with the defaults.

        Raises:
            ConfigurationError: If *root* is not a string, *assets* is a
                bare string, or any asset name is empty or not a string.
        """
        if not isinstance(root, str):
            msg = f"Static root must be a string, got {type(root).__name__}."
            raise ConfigurationError(msg)
        if isinstance(assets, (str, bytes)):
            msg = (
                f"Static assets must be a collection of file names, got the "
                f"string {assets!r}. Wrap it in a list: [{assets!r}]."
            )
            raise ConfigurationError(msg)

        names = frozenset(assets)
        for name in names:
            if not isinstance(name, str) or not name:
                msg = f"Static asset names must be non-empty strings, got {name!r}."
                raise ConfigurationError(msg)

        return cls(
            root=root,
            allow_list=DEFAULT_ASSETS | names,
            wildcard=wildcard,
            directory=Path(os.path.abspath(directory)) if directory is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Candidate:
    """A file location to try for the current request."""

    location: str
    kind: MatchKind

    @property
    def canonical(self) -> bool:
        """Whether this URL is the file's one true address."""
        return self.kind is not MatchKind.WILDCARD


class StaticAssets:
    """Middleware that serves static assets or falls through.

    Candidates are tried in order and the first one that yields a
    response wins:

    1. the location itself, if it is an allow-listed name
    2. the location itself, if it starts with ``root``
    3. (wildcard only) the location with the segment after ``root``
       removed

    A candidate that does not exist is skipped. One that names a
    directory answers 404 and one that cannot be opened answers 500;
    neither falls through.

    Usage::

        # /static/... and the default root files
        app.add_middleware(StaticAssets("static"))

        # also /static/<build-id>/..., plus a root-level manifest
        app.add_middleware(
            StaticAssets("static", ["manifest.json"], wildcard=True)
        )
    """

    __slots__ = ("config",)

    def __init__(
        self,
        root: str,
        assets: Iterable[str] = (),
        *,
        wildcard: bool = False,
        directory: str | Path | None = None,
    ) -> None:
        self.config = StaticConfig.build(
            root, assets, wildcard=wildcard, directory=directory
        )

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        """Serve a static asset or fall through."""
        if request.method != "GET":
            return await next(request)

        location = request.path.removeprefix("/")
        for candidate in self.candidates(location):
            response = self.serve(candidate, request)
            if response is not None:
                return response

        return await next(request)

    def wrap(self, next: Next) -> Next:
        """Bind this middleware to *next*, returning a plain handler."""

        async def handler(request: Request) -> AnyResponse:
            return await self(request, next)

        return handler

    def candidates(self, location: str) -> Iterator[Candidate]:
        """Yield file candidates for *location* in priority order.

        Lazy: the wildcard candidate is only computed once the direct
        root candidate has been tried and skipped.
        """
        config = self.config
        if location in config.allow_list:
            yield Candidate(location, MatchKind.ALLOW_LIST)

        if not location.startswith(config.root):
            return
        yield Candidate(location, MatchKind.ROOT)

        if config.wildcard:
            rest = location.removeprefix(config.root + "/")
            index = rest.find("/")
            if index != -1:
                yield Candidate(config.root + rest[index:], MatchKind.WILDCARD)

    def serve(self, candidate: Candidate, request: Request) -> AnyResponse | None:
        """Try to serve *candidate*. ``None`` means it does not exist."""
        path = self._resolve(candidate.location)
        if path is None:
            return None

        try:
            info = os.stat(path)
        except (OSError, ValueError):
            return None

        if stat.S_ISDIR(info.st_mode):
            return status_response(404)

        try:
            file = open(path, "rb")  # noqa: SIM115
        except (OSError, ValueError):
            return status_response(500)

        try:
            response = serve_content(
                request, os.path.basename(path), info.st_mtime, info.st_size, file
            )
        except BaseException:
            file.close()
            raise

        if not candidate.canonical:
            response = response.with_header("X-Robots-Tag", "noindex, follow")
        return response.with_header("Access-Control-Allow-Origin", "*")

    def _resolve(self, location: str) -> str | None:
        """Map *location* to a filesystem path under the base directory.

        Lexical only: ``..`` segments that climb out of the base yield
        ``None``. Symlinks are followed as-is.
        """
        base = str(self.config.directory) if self.config.directory else os.getcwd()
        path = os.path.normpath(os.path.join(base, location))
        if os.path.commonpath([base, path]) != base:
            return None
        return path


def static_assets(
    root: str,
    assets: Iterable[str] = (),
    *,
    directory: str | Path | None = None,
) -> StaticAssets:
    """Strict-prefix static asset middleware."""
    return StaticAssets(root, assets, wildcard=False, directory=directory)


def wildcard_assets(
    root: str,
    assets: Iterable[str] = (),
    *,
    directory: str | Path | None = None,
) -> StaticAssets:
    """Static asset middleware that skips one segment after *root*."""
    return StaticAssets(root, assets, wildcard=True, directory=directory)
