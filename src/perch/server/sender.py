"""ASGI response sending — translates perch responses to ASGI messages.

``Response`` goes out as a single body message. ``FileResponse`` is
streamed from its file in fixed-size chunks and the file is closed when
sending ends, however it ends.
"""

import logging

from perch._internal.asgi import Send
from perch.http.response import FileResponse, Response

logger = logging.getLogger("perch.server")

CHUNK_SIZE = 64 * 1024


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


def _encode_headers(
    content_type: str, headers: tuple[tuple[str, str], ...]
) -> list[tuple[bytes, bytes]]:
    raw: list[tuple[bytes, bytes]] = []
    if content_type:
        raw.append((b"content-type", content_type.encode("latin-1")))
    raw.extend((name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in headers)
    return raw


async def send_response(response: Response, send: Send) -> None:
    """Translate a perch Response into ASGI send() calls."""
    raw_headers = _encode_headers(response.content_type, response.headers)

    body = response.body_bytes if _body_allowed(response.status) else b""
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


async def send_file_response(response: FileResponse, send: Send) -> None:
    """Stream a FileResponse, closing its file afterwards.

    ``content-length`` always reflects the full body, including for
    HEAD requests where no body bytes follow.
    """
    try:
        raw_headers = _encode_headers(response.media_type, response.headers)
        raw_headers.append((b"content-length", str(response.content_length).encode("latin-1")))
        await send(
            {
                "type": "http.response.start",
                "status": response.status,
                "headers": raw_headers,
            }
        )

        if response.include_body and _body_allowed(response.status):
            for prefix, byte_range, suffix in response.sections():
                if prefix:
                    await send({"type": "http.response.body", "body": prefix, "more_body": True})
                response.file.seek(byte_range.start)
                remaining = byte_range.length
                while remaining > 0:
                    chunk = response.file.read(min(CHUNK_SIZE, remaining))
                    if not chunk:
                        # File shrank since it was stat'ed; the declared
                        # length can no longer be met.
                        logger.warning(
                            "Short read while sending %s",
                            getattr(response.file, "name", "<file>"),
                        )
                        break
                    remaining -= len(chunk)
                    await send({"type": "http.response.body", "body": chunk, "more_body": True})
                if suffix:
                    await send({"type": "http.response.body", "body": suffix, "more_body": True})

        await send({"type": "http.response.body", "body": b"", "more_body": False})
    finally:
        response.close()
