"""
Unit tests for Session, driven through in-memory streams.
"""

import asyncio
from typing import Optional

import pytest

from urlshortener.core.session import Session, SessionState
from urlshortener.http import HTTPRequest, HTTPResponse, ResponseBuilder

from tests.helpers import build_request, chunked_post, post_url, split_response


class FakeWriter:
    """Collects what a Session writes; can be told to fail."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.data = b""
        self.fail_with = fail_with
        self.eof_written = False
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data += data

    async def drain(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def can_write_eof(self) -> bool:
        return True

    def write_eof(self) -> None:
        self.eof_written = True

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def get_extra_info(self, name: str, default=None):
        if name == "peername":
            return ("127.0.0.1", 50000)
        return default


class BrokenReader:
    async def read(self, n: int = -1) -> bytes:
        raise ConnectionResetError("peer reset")


def echo_path(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder(request.version).text(request.path).build()


def make_session(chunks=(), eof=True, handler=echo_path, writer=None, **kwargs):
    reader = asyncio.StreamReader()
    for chunk in chunks:
        reader.feed_data(chunk)
    if eof:
        reader.feed_eof()
    return Session(reader=reader, writer=writer or FakeWriter(), handler=handler, **kwargs)


@pytest.mark.asyncio
class TestSession:
    """Tests for the single-request lifecycle."""

    async def test_fragmented_request(self):
        raw = post_url("http://example.com")
        session = make_session([raw[:7], raw[7:30], raw[30:]])

        assert await session.read_request() == raw

    async def test_reads_only_one_request(self):
        first = build_request("GET", "/one")
        session = make_session([first + build_request("GET", "/two")])

        await session.run()

        status, _, body = split_response(session.writer.data)
        assert status == 200
        assert body == b"/one"
        assert session.writer.data.count(b"HTTP/1.1") == 1

    async def test_full_exchange_closes(self):
        session = make_session([build_request("GET", "/hello")])

        await session.run()

        assert session.state == SessionState.CLOSED
        assert session.writer.eof_written
        assert session.writer.closed
        assert session.response.body == b"/hello"
        assert b"Server: urlshortener/1.0" in session.writer.data

    async def test_eof_before_complete_request(self):
        session = make_session([b"GET / HTTP/1.1\r\nHost: x"])

        await session.run()

        assert session.writer.data == b""
        assert session.state == SessionState.CLOSED
        assert session.writer.closed

    async def test_eof_mid_body(self):
        session = make_session([b"POST / HTTP/1.1\r\nContent-Length: 50\r\n\r\n\"http"])

        await session.run()

        assert session.writer.data == b""

    async def test_transport_error_while_reading(self):
        session = Session(reader=BrokenReader(), writer=FakeWriter(), handler=echo_path)

        await session.run()

        assert session.writer.data == b""
        assert session.state == SessionState.CLOSED

    async def test_read_timeout_abandons(self):
        session = make_session(eof=False, timeout=0.05)

        await session.run()

        assert session.writer.data == b""
        assert session.state == SessionState.CLOSED

    async def test_oversized_request_gets_413(self):
        session = make_session(
            [b"POST / HTTP/1.1\r\nContent-Length: 999999\r\n\r\n"],
            eof=False,
            max_request_size=1024,
        )

        await session.run()

        status, headers, body = split_response(session.writer.data)
        assert status == 413
        assert body == b""
        assert headers["connection"] == "close"

    async def test_oversized_headers_get_413(self):
        session = make_session([b"GET / HTTP/1.1\r\nX-Big: " + b"A" * 4096], eof=False,
                               max_request_size=2048, buffer_size=1024)

        await session.run()

        assert split_response(session.writer.data)[0] == 413

    async def test_bad_content_length_gets_400(self):
        session = make_session([b"POST / HTTP/1.1\r\nContent-Length: lots\r\n\r\n"])

        await session.run()

        status, _, body = split_response(session.writer.data)
        assert status == 400
        assert body == b""

    async def test_malformed_request_line_gets_400(self):
        session = make_session([b"nonsense\r\n\r\n"])

        await session.run()

        assert split_response(session.writer.data)[0] == 400

    async def test_handler_crash_gets_500(self):
        def explode(request):
            raise RuntimeError("boom")

        session = make_session([build_request("GET")], handler=explode)

        await session.run()

        status, _, body = split_response(session.writer.data)
        assert status == 500
        assert body == b""
        assert session.state == SessionState.CLOSED

    async def test_write_failure_is_contained(self):
        writer = FakeWriter(fail_with=BrokenPipeError("gone"))
        session = make_session([build_request("GET")], writer=writer)

        await session.run()

        assert session.state == SessionState.CLOSED
        assert writer.closed

    async def test_leftover_input_discarded_before_close(self):
        session = make_session([build_request("GET") + b"trailing bytes"])

        await session.run()

        assert session.reader.at_eof()
        assert session.writer.data.count(b"HTTP/1.1") == 1

    async def test_close_is_idempotent(self):
        session = make_session()

        await session.close()
        await session.close()

        assert session.state == SessionState.CLOSED

    async def test_address_from_transport(self):
        session = make_session()
        assert session.address == ("127.0.0.1", 50000)



def shorten_path(request: HTTPRequest) -> HTTPResponse:
    return ResponseBuilder(request.version).text(request.json).build()


@pytest.mark.asyncio
class TestFraming:
    """Tests for finding where the request body ends."""

    async def test_chunked_body(self):
        raw = chunked_post([b'"http://', b'example.com"'])
        session = make_session([raw[:40], raw[40:]], handler=shorten_path)

        await session.run()

        status, _, body = split_response(session.writer.data)
        assert status == 200
        assert body == b"http://example.com"

    async def test_chunked_request_ends_at_last_chunk(self):
        raw = chunked_post([b"abc"], trailers="X-Checksum: 1\r\n")
        session = make_session([raw + b"GET /next HTTP/1.1\r\n\r\n"])

        assert await session.read_request() == raw

    async def test_chunked_eof_before_last_chunk(self):
        session = make_session([chunked_post([b"abc"])[:-5]])

        await session.run()

        assert session.writer.data == b""

    async def test_chunked_oversized_gets_413(self):
        raw = chunked_post([b"A" * 2000])
        session = make_session([raw], eof=False, max_request_size=1024, buffer_size=512)

        await session.run()

        assert split_response(session.writer.data)[0] == 413

    async def test_bad_chunk_size_gets_400(self):
        raw = (
            b"POST / HTTP/1.1\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"xyz\r\nabc\r\n0\r\n\r\n"
        )
        session = make_session([raw])

        await session.run()

        assert split_response(session.writer.data)[0] == 400

    async def test_unsupported_transfer_coding_gets_400(self):
        raw = b"POST / HTTP/1.1\r\nTransfer-Encoding: gzip\r\n\r\n"
        session = make_session([raw])

        await session.run()

        assert split_response(session.writer.data)[0] == 400

    async def test_spaced_content_length_name(self):
        body = b'"http://example.com"'
        raw = b"POST / HTTP/1.1\r\nContent-Length : %d\r\n\r\n%s" % (len(body), body)
        session = make_session([raw[:30], raw[30:]], handler=shorten_path)

        await session.run()

        status, _, response_body = split_response(session.writer.data)
        assert status == 200
        assert response_body == b"http://example.com"

    async def test_folded_content_length(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length:\r\n 3\r\n\r\nabc"
        session = make_session([raw], eof=False)

        assert await session.read_request() == raw

    async def test_error_uses_request_version(self):
        session = make_session([b"POST / HTTP/1.0\r\nContent-Length: lots\r\n\r\n"])

        await session.run()

        assert session.writer.data.startswith(b"HTTP/1.0 400 Bad Request\r\n")

    async def test_oversized_error_uses_request_version(self):
        session = make_session([b"GET / HTTP/1.0\r\nX-Big: " + b"A" * 4096], eof=False,
                               max_request_size=2048, buffer_size=1024)

        await session.run()

        assert session.writer.data.startswith(b"HTTP/1.0 413 ")

    async def test_error_without_request_line_uses_http11(self):
        session = make_session([b"nonsense\r\n\r\n"])

        await session.run()

        assert session.writer.data.startswith(b"HTTP/1.1 400 ")
