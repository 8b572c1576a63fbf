"""HTTP responses with a chainable ``.with_*()`` transformation API.

Each transformation returns a new value. ``Response`` carries an
in-memory body; ``FileResponse`` carries an open file plus the byte
ranges to stream from it, and is written out by the sender.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from typing import BinaryIO


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), or ``None``."""
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True, slots=True)
class ByteRange:
    """A satisfiable byte range: ``length`` bytes starting at ``start``."""

    start: int
    length: int

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.start + self.length - 1}/{size}"


@dataclass(frozen=True, slots=True)
class FileResponse:
    """A response whose body is read from an open file.

    ``ranges`` selects what is sent: empty means the whole file, one
    range is a plain partial body, several ranges are framed as
    ``multipart/byteranges`` using ``boundary``.

    The response owns ``file``. The sender closes it once the body has
    been written; call ``close()`` when discarding the response unsent.
    """

    file: BinaryIO
    size: int
    ranges: tuple[ByteRange, ...] = ()
    status: int = 200
    content_type: str = "application/octet-stream"
    headers: tuple[tuple[str, str], ...] = ()
    boundary: str | None = None
    include_body: bool = True

    def with_status(self, status: int) -> FileResponse:
        """Return a new FileResponse with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> FileResponse:
        """Return a new FileResponse with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> FileResponse:
        """Return a new FileResponse with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    def with_content_type(self, content_type: str) -> FileResponse:
        """Return a new FileResponse with a different content type."""
        return replace(self, content_type=content_type)

    @property
    def is_multipart(self) -> bool:
        return self.boundary is not None and len(self.ranges) > 1

    @property
    def media_type(self) -> str:
        """The ``Content-Type`` sent on the wire."""
        if self.is_multipart:
            return f"multipart/byteranges; boundary={self.boundary}"
        return self.content_type

    def sections(self) -> Iterator[tuple[bytes, ByteRange, bytes]]:
        """Yield ``(prefix, range, suffix)`` framing for each body section.

        For a plain body the prefix and suffix are empty. For multipart
        bodies they carry the part headers and boundary delimiters.
        """
        if not self.ranges:
            yield b"", ByteRange(0, self.size), b""
            return
        if not self.is_multipart:
            yield b"", self.ranges[0], b""
            return
        last = len(self.ranges) - 1
        for index, byte_range in enumerate(self.ranges):
            prefix = (
                f"--{self.boundary}\r\n"
                f"Content-Type: {self.content_type}\r\n"
                f"Content-Range: {byte_range.content_range(self.size)}\r\n"
                "\r\n"
            ).encode("latin-1")
            suffix = b"\r\n"
            if index == last:
                suffix += f"--{self.boundary}--\r\n".encode("latin-1")
            yield prefix, byte_range, suffix

    @property
    def content_length(self) -> int:
        """Total number of body bytes, framing included."""
        return sum(
            len(prefix) + byte_range.length + len(suffix)
            for prefix, byte_range, suffix in self.sections()
        )

    def close(self) -> None:
        self.file.close()
