"""Conditional and range-aware content delivery.

``serve_content`` turns an open file plus its metadata into the right
response for a request: a full 200, a 206 partial (single or
``multipart/byteranges``), a 304, or a 412/416 refusal. Validation is
by modification time only; no ETag is generated.

Preconditions follow RFC 7232 section 6 ordering. Ranges follow
RFC 7233 (``bytes`` unit only).
"""

import mimetypes
import secrets
from dataclasses import replace
from datetime import UTC, datetime
from email.utils import formatdate
from enum import Enum
from http import HTTPStatus
from typing import BinaryIO

from perch.http.request import Request
from perch.http.response import ByteRange, FileResponse, Response

_SAFE_METHODS = frozenset({"GET", "HEAD"})


class _Cond(Enum):
    NONE = 0
    TRUE = 1
    FALSE = 2


class InvalidRange(ValueError):
    """The ``Range`` header could not be parsed."""


class UnsatisfiableRange(ValueError):
    """Every requested range starts past the end of the content."""


def status_response(status: int) -> Response:
    """Plain-text response whose body is the standard status text."""
    return Response(
        body=HTTPStatus(status).phrase,
        status=status,
        content_type="text/plain; charset=utf-8",
    ).with_header("X-Content-Type-Options", "nosniff")


def guess_content_type(name: str) -> str:
    content_type, _ = mimetypes.guess_type(name)
    return content_type or "application/octet-stream"


def parse_range(header: str, size: int) -> list[ByteRange]:
    """Parse a ``Range`` header against content of *size* bytes.

    Returns an empty list when *header* is empty. Ranges that start past
    the end are dropped; if that leaves nothing, ``UnsatisfiableRange``
    is raised. Malformed input raises ``InvalidRange``.
    """
    if not header:
        return []
    unit, sep, spec = header.partition("=")
    if not sep or unit.strip().lower() != "bytes":
        raise InvalidRange(header)

    ranges: list[ByteRange] = []
    no_overlap = False
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        first, dash, last = part.partition("-")
        if not dash:
            raise InvalidRange(part)
        first, last = first.strip(), last.strip()

        if not first:
            # Suffix form "-N": the final N bytes
            suffix = _parse_int(last)
            if suffix == 0:
                no_overlap = True
                continue
            suffix = min(suffix, size)
            ranges.append(ByteRange(size - suffix, suffix))
            continue

        start = _parse_int(first)
        if start >= size:
            no_overlap = True
            continue
        if not last:
            ranges.append(ByteRange(start, size - start))
            continue
        end = _parse_int(last)
        if start > end:
            raise InvalidRange(part)
        end = min(end, size - 1)
        ranges.append(ByteRange(start, end - start + 1))

    if no_overlap and not ranges:
        raise UnsatisfiableRange(header)
    return ranges


def _parse_int(value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InvalidRange(value)
    return int(value)


def _modified_at(modified: float) -> datetime | None:
    """Modification time at HTTP-date (whole second) resolution."""
    if modified <= 0:
        return None
    return datetime.fromtimestamp(int(modified), UTC)


def _check_if_match(request: Request) -> _Cond:
    value = request.headers.get("if-match")
    if value is None:
        return _Cond.NONE
    # Without an ETag only the wildcard can match
    tags = {tag.strip() for tag in value.split(",")}
    return _Cond.TRUE if "*" in tags else _Cond.FALSE


def _check_if_unmodified_since(request: Request, modified: datetime | None) -> _Cond:
    since = request.headers.get_date("if-unmodified-since")
    if since is None or modified is None:
        return _Cond.NONE
    return _Cond.TRUE if modified <= since else _Cond.FALSE


def _check_if_none_match(request: Request) -> _Cond:
    value = request.headers.get("if-none-match")
    if value is None:
        return _Cond.NONE
    tags = {tag.strip() for tag in value.split(",")}
    return _Cond.FALSE if "*" in tags else _Cond.TRUE


def _check_if_modified_since(request: Request, modified: datetime | None) -> _Cond:
    if request.method not in _SAFE_METHODS:
        return _Cond.NONE
    since = request.headers.get_date("if-modified-since")
    if since is None or modified is None:
        return _Cond.NONE
    return _Cond.FALSE if modified <= since else _Cond.TRUE


def _check_if_range(request: Request, modified: datetime | None) -> _Cond:
    if request.method not in _SAFE_METHODS:
        return _Cond.NONE
    value = request.headers.get("if-range")
    if not value:
        return _Cond.NONE
    if value.startswith(('"', "W/")):
        # An entity tag, and we never hand one out
        return _Cond.FALSE
    when = request.headers.get_date("if-range")
    if when is None or modified is None:
        return _Cond.FALSE
    return _Cond.TRUE if when == modified else _Cond.FALSE


def _evaluate_preconditions(request: Request, modified: datetime | None) -> int | None:
    """Return 304/412 when a precondition short-circuits the request."""
    cond = _check_if_match(request)
    if cond is _Cond.NONE:
        cond = _check_if_unmodified_since(request, modified)
    if cond is _Cond.FALSE:
        return 412

    match _check_if_none_match(request):
        case _Cond.FALSE:
            return 304 if request.method in _SAFE_METHODS else 412
        case _Cond.NONE:
            if _check_if_modified_since(request, modified) is _Cond.FALSE:
                return 304
    return None


def serve_content(
    request: Request,
    name: str,
    modified: float,
    size: int,
    file: BinaryIO,
) -> Response | FileResponse:
    """Build the response for serving *file* to *request*.

    Args:
        request: The inbound request; its conditional and ``Range``
            headers decide the outcome.
        name: File name, used to infer the content type.
        modified: Modification time as a POSIX timestamp; ``0`` means
            unknown and disables date-based validation.
        size: Content length in bytes.
        file: Open binary file positioned anywhere. Ownership passes to
            the returned ``FileResponse``; it is closed here when the
            result carries no body.
    """
    modified_at = _modified_at(modified)
    validators: list[tuple[str, str]] = []
    if modified_at is not None:
        validators.append(("Last-Modified", formatdate(int(modified), usegmt=True)))

    refused = _evaluate_preconditions(request, modified_at)
    if refused == 304:
        file.close()
        return Response(body=b"", status=304, content_type="", headers=tuple(validators))
    if refused is not None:
        file.close()
        return status_response(refused)

    range_header = request.headers.get("range", "")
    if range_header and _check_if_range(request, modified_at) is _Cond.FALSE:
        range_header = ""

    headers = (*validators, ("Accept-Ranges", "bytes"))
    try:
        ranges = parse_range(range_header, size)
    except UnsatisfiableRange:
        file.close()
        return status_response(416).with_header("Content-Range", f"bytes */{size}")
    except InvalidRange:
        file.close()
        return status_response(416)

    if sum(r.length for r in ranges) > size:
        # Overlapping ranges that add up to more than the file: send it whole
        ranges = []

    response = FileResponse(
        file=file,
        size=size,
        content_type=guess_content_type(name),
        headers=headers,
        include_body=request.method != "HEAD",
    )
    if len(ranges) == 1:
        return replace(response, ranges=(ranges[0],), status=206).with_header(
            "Content-Range", ranges[0].content_range(size)
        )
    if len(ranges) > 1:
        return replace(
            response,
            ranges=tuple(ranges),
            status=206,
            boundary=secrets.token_hex(15),
        )
    return response
