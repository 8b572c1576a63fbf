"""Tests for perch.http.response: Response and FileResponse chaining."""

import io

import pytest

from perch.http.response import ByteRange, FileResponse, Response


class TestResponse:
    def test_defaults(self) -> None:
        r = Response()
        assert r.body == ""
        assert r.status == 200
        assert r.content_type == "text/html; charset=utf-8"
        assert r.headers == ()

    def test_with_status(self) -> None:
        assert Response().with_status(201).status == 201

    def test_chained_headers(self) -> None:
        r = Response().with_header("A", "1").with_header("B", "2")
        assert r.headers == (("A", "1"), ("B", "2"))

    def test_with_headers_dict(self) -> None:
        r = Response().with_headers({"A": "1", "B": "2"})
        assert ("A", "1") in r.headers
        assert ("B", "2") in r.headers

    def test_with_content_type(self) -> None:
        assert Response().with_content_type("text/css").content_type == "text/css"

    def test_chaining_returns_new_objects(self) -> None:
        r1 = Response("hello")
        r2 = r1.with_status(201)
        r3 = r2.with_header("X-Foo", "bar")

        assert r1.status == 200
        assert r2.headers == ()
        assert r3.headers == (("X-Foo", "bar"),)

    def test_body_bytes_from_str(self) -> None:
        assert Response("héllo").body_bytes == "héllo".encode()

    def test_text_from_bytes(self) -> None:
        assert Response(b"abc").text == "abc"

    def test_header_lookup_case_insensitive(self) -> None:
        r = Response().with_header("X-Robots-Tag", "noindex, follow")
        assert r.header("x-robots-tag") == "noindex, follow"
        assert r.header("missing") is None

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            Response().status = 404  # type: ignore[misc]


class TestByteRange:
    def test_content_range(self) -> None:
        assert ByteRange(10, 5).content_range(100) == "bytes 10-14/100"


class TestFileResponse:
    def test_whole_file_section(self) -> None:
        r = FileResponse(file=io.BytesIO(b"abc"), size=3)
        assert list(r.sections()) == [(b"", ByteRange(0, 3), b"")]
        assert r.content_length == 3
        assert r.media_type == "application/octet-stream"

    def test_single_range_is_not_multipart(self) -> None:
        r = FileResponse(file=io.BytesIO(b"abc"), size=3, ranges=(ByteRange(1, 2),), boundary="b")
        assert not r.is_multipart
        assert r.content_length == 2

    def test_multipart_framing(self) -> None:
        r = FileResponse(
            file=io.BytesIO(b"abcdef"),
            size=6,
            ranges=(ByteRange(0, 1), ByteRange(5, 1)),
            content_type="text/plain",
            boundary="B",
        )
        sections = list(r.sections())
        assert sections[0][0] == (
            b"--B\r\nContent-Type: text/plain\r\nContent-Range: bytes 0-0/6\r\n\r\n"
        )
        assert sections[0][2] == b"\r\n"
        assert sections[1][2] == b"\r\n--B--\r\n"
        assert r.media_type == "multipart/byteranges; boundary=B"

    def test_with_header_keeps_file(self) -> None:
        file = io.BytesIO(b"abc")
        r = FileResponse(file=file, size=3).with_header("Access-Control-Allow-Origin", "*")
        assert r.file is file
        assert r.headers == (("Access-Control-Allow-Origin", "*"),)

    def test_close(self) -> None:
        file = io.BytesIO(b"abc")
        FileResponse(file=file, size=3).close()
        assert file.closed
