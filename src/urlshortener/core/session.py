"""
=============================================================================
SESSION: ONE CONNECTION, ONE REQUEST
=============================================================================

A Session owns one accepted connection from start to finish:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       SESSION STATE MACHINE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► READING ──► DISPATCHING ──► WRITING ──► CLOSED             │
    │              │                                       ▲               │
    │              │  EOF / reset / timeout                │               │
    │              └───────────────────────────────────────┘               │
    │                        (no response sent)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    READING      Buffer bytes until "\r\n\r\n", then read exactly
                 Content-Length more bytes, or chunks up to the
                 zero-size last chunk for Transfer-Encoding: chunked.
    DISPATCHING  Parse the request and call the handler (synchronous:
                 no await happens while the store is being touched).
    WRITING      Send the whole response, then shut down our send side
                 (TCP FIN) and close the transport.

Even if the client asked for keep-alive (and the response says so), the
session ends after one response. The header is echoed, never honoured.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

A request can arrive in any number of pieces:

    read() → b"POST / HTT"
    read() → b"P/1.1\r\nContent-Length: 20\r\n\r\n\"http://"
    read() → b"example.com\""

So we keep a buffer and look for the protocol delimiters ourselves.

=============================================================================
FAILURES
=============================================================================

    Transport error while reading   → abandon, nothing sent
    Oversized request               → 413, close
    Malformed framing / headers     → 400, close
    Handler raised                  → 500, close (logged with traceback)
    Transport error while writing   → abandon the rest of the response

Nothing escapes run(): the listener and other sessions never see a
session's errors.

=============================================================================
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from ..access_log import log_request
from ..http.request import (
    HTTPRequest,
    HTTPParseError,
    RequestParser,
    decode_chunked,
    is_chunked,
    parse_content_length,
)
from ..http.response import HTTPResponse, error_response, DEFAULT_SERVER_NAME
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HEADER_TERMINATOR = b"\r\n\r\n"

# How long to keep reading (and discarding) after our FIN before closing.
LINGER_TIMEOUT = 0.5

# Errors that mean the peer or the network went away.
TRANSPORT_ERRORS = (ConnectionError, asyncio.TimeoutError, asyncio.IncompleteReadError, OSError)


class SessionState(Enum):
    """Where a session is in its single request/response exchange."""

    NEW = "new"
    READING = "reading"
    DISPATCHING = "dispatching"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Session:
    """
    Drives one connection through READING → DISPATCHING → WRITING → CLOSED.

    Usage (from an asyncio.start_server callback):
        async def on_connection(reader, writer):
            await Session(reader, writer, handler).run()

    Attributes:
        reader: Stream the request is read from.
        writer: Stream the response is written to.
        handler: Callable turning an HTTPRequest into an HTTPResponse.
        parser: Request parser (shared between sessions, stateless).
        id: Short random id used in log lines.
        state: Current SessionState.
    """

    reader: asyncio.StreamReader
    writer: asyncio.StreamWriter
    handler: Callable[[HTTPRequest], HTTPResponse]
    parser: RequestParser = field(default_factory=RequestParser)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: SessionState = SessionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = None
    max_request_size: int = 10 * 1024 * 1024
    server_name: str = DEFAULT_SERVER_NAME
    log_format: str = "text"

    response: Optional[HTTPResponse] = field(default=None, repr=False)
    _buffer: bytes = field(default=b"", repr=False)

    @property
    def address(self) -> tuple[str, int]:
        """Peer (ip, port), or ("", 0) if the transport doesn't know it."""
        peer = self.writer.get_extra_info("peername")
        if not peer:
            return ("", 0)
        return (peer[0], peer[1])

    async def run(self) -> None:
        """
        Handle the connection's single exchange and close it.

        Never raises for I/O or protocol problems; those end the session.
        """
        logger.debug(f"[{self.id}] Session started for {self.address[0]}:{self.address[1]}")
        try:
            try:
                raw_request = await self.read_request()
            except HTTPParseError as e:
                logger.info(f"[{self.id}] Rejecting request: {e}")
                await self.write_response(
                    error_response(HTTPStatus(e.status_code), self._request_version())
                )
                return
            except TRANSPORT_ERRORS as e:
                logger.debug(f"[{self.id}] Read failed, abandoning connection: {e!r}")
                return

            if raw_request is None:
                logger.debug(f"[{self.id}] Peer closed before sending a full request")
                return

            await self.write_response(self.dispatch(raw_request))
        finally:
            await self.close()

    async def read_request(self) -> Optional[bytes]:
        """
        Read exactly one complete request.

        Returns:
            The request bytes (headers, blank line, body), or None if the
            peer closed the stream before the request was complete.

        Raises:
            HTTPParseError: Request too large (413), or a bad request line,
                Content-Length or chunk framing (400).
            ConnectionError, OSError, asyncio.TimeoutError: Transport failures.
        """
        self.state = SessionState.READING

        while HEADER_TERMINATOR not in self._buffer:
            if not await self._fill():
                return None

        header_end = self._buffer.find(HEADER_TERMINATOR)
        body_start = header_end + len(HEADER_TERMINATOR)
        _, _, _, headers = self.parser.parse_head(self._buffer[:header_end])

        if is_chunked(headers):
            return await self._read_chunked(body_start)

        content_length = parse_content_length(headers.get("content-length"))

        request_end = body_start + content_length
        if request_end > self.max_request_size:
            raise HTTPParseError(f"Request too large: {request_end} bytes", status_code=413)

        while len(self._buffer) < request_end:
            if not await self._fill():
                return None

        return self._buffer[:request_end]

    async def _read_chunked(self, body_start: int) -> Optional[bytes]:
        """
        Read chunks until the last one (and its trailers) has arrived.

        The size limit still applies through _fill(). Returns the framed
        request bytes, or None on EOF.
        """
        while True:
            decoded = decode_chunked(self._buffer[body_start:])
            if decoded is not None:
                _, consumed = decoded
                return self._buffer[:body_start + consumed]
            if not await self._fill():
                return None

    def _request_version(self) -> str:
        """HTTP version from the request line if it has arrived intact, else HTTP/1.1."""
        line_end = self._buffer.find(b"\r\n")
        if line_end == -1:
            return "HTTP/1.1"
        try:
            _, _, version = self.parser.parse_request_line(self._buffer[:line_end].decode("latin-1"))
        except HTTPParseError:
            return "HTTP/1.1"
        return version

    async def _fill(self) -> bool:
        """
        Append one read to the buffer.

        Returns:
            False on EOF.
        """
        read = self.reader.read(self.buffer_size)
        if self.timeout is not None:
            chunk = await asyncio.wait_for(read, self.timeout)
        else:
            chunk = await read

        if not chunk:
            return False

        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(self._buffer)} bytes", status_code=413)
        return True

    def dispatch(self, raw_request: bytes) -> HTTPResponse:
        """
        Parse the request and run the handler.

        Always returns a response: parse failures become 4xx, handler
        exceptions become 500.
        """
        self.state = SessionState.DISPATCHING
        start_time = time.time()

        try:
            request = self.parser.parse(raw_request, self.address)
        except HTTPParseError as e:
            logger.info(f"[{self.id}] Malformed request: {e}")
            return error_response(HTTPStatus(e.status_code), self._request_version())

        try:
            response = self.handler(request)
        except Exception as e:
            logger.exception(f"[{self.id}] Handler error: {e}")
            response = error_response(HTTPStatus.INTERNAL_SERVER_ERROR, request.version)

        log_request(
            connection_id=self.id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0],
            user_agent=request.user_agent,
            status_code=response.status,
            content_length=len(response.body),
            duration_ms=(time.time() - start_time) * 1000,
            log_format=self.log_format,
        )
        return response

    async def write_response(self, response: HTTPResponse) -> bool:
        """
        Send the whole response.

        Returns:
            True if it was handed to the OS, False if the transport failed.
        """
        self.state = SessionState.WRITING
        self.response = response

        try:
            self.writer.write(response.to_bytes(self.server_name))
            await self.writer.drain()
            return True
        except TRANSPORT_ERRORS as e:
            logger.debug(f"[{self.id}] Write failed: {e!r}")
            return False

    async def close(self) -> None:
        """
        Shut down our send direction, then release the transport.

        Safe to call more than once.
        """
        if self.state == SessionState.CLOSED:
            return

        try:
            if self.writer.can_write_eof():
                self.writer.write_eof()
                await self._linger()
        except (OSError, RuntimeError):
            pass  # Transport already gone

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except TRANSPORT_ERRORS:
            pass  # Peer reset while closing

        self.state = SessionState.CLOSED
        logger.debug(f"[{self.id}] Session closed after {time.time() - self.created_at:.3f}s")

    async def _linger(self) -> None:
        """
        Discard input until the peer closes, for at most LINGER_TIMEOUT.

        Closing with unread bytes in the kernel buffer makes the OS send a
        RST, which can destroy the response before the client reads it.
        """
        try:
            await asyncio.wait_for(self._discard_input(), LINGER_TIMEOUT)
        except TRANSPORT_ERRORS:
            pass

    async def _discard_input(self) -> None:
        while await self.reader.read(self.buffer_size):
            pass

