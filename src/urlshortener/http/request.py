"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the raw bytes of one HTTP/1.x request into an HTTPRequest object.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   POST /anything HTTP/1.1\r\n          ← request line                │
    │   Host: localhost:8080\r\n             ← headers                     │
    │   Content-Type: application/json\r\n                                 │
    │   Content-Length: 20\r\n                                             │
    │   \r\n                                 ← blank line                  │
    │   "http://example.com"                 ← body (Content-Length bytes) │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The path is parsed but never used for routing: the service answers by
method alone.

Unlike a general purpose server, the parser accepts ANY method token.
Deciding that DELETE or PUT is unsupported is the request handler's job,
and it answers those with a plain 400.

=============================================================================
PARSE ERRORS
=============================================================================

HTTPParseError carries the status code to answer with:

    400 Bad Request       - bad request line, bad Content-Length,
                            bad chunked framing, bad body
    413 Payload Too Large - request bigger than max_request_size

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, Tuple
from urllib.parse import urlparse, unquote
import re
import json


class HTTPParseError(Exception):
    """
    Raised when a request (or its body) cannot be understood.

    Carries the HTTP status code that should be returned to the client.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method:         Request method exactly as sent ("GET", "POST", ...)
        path:           Request path without the query string
        version:        "HTTP/1.0" or "HTTP/1.1"
        headers:        Header dict with LOWERCASE names
        body:           Body bytes (Content-Length of them, or the decoded chunks)
        client_address: (ip, port) of the peer
        raw:            The original request bytes
    """

    method: str
    path: str
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)
    raw: bytes = b""

    _body_json: Optional[Any] = field(default=None, repr=False)

    @property
    def content_type(self) -> Optional[str]:
        """Content-Type without parameters, e.g. "application/json"."""
        ct = self.headers.get("content-type", "")
        return ct.split(";")[0].strip().lower() or None

    @property
    def content_length(self) -> int:
        """Content-Length as int, 0 if missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def json(self) -> Any:
        """
        The body decoded as JSON (parsed once, then cached).

        Raises:
            HTTPParseError: If the body is empty, not UTF-8 or not valid JSON.
        """
        if self._body_json is None:
            if not self.body:
                raise HTTPParseError("Empty body, expected JSON")
            try:
                self._body_json = json.loads(self.body.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise HTTPParseError(f"Invalid JSON body: {e}")
        return self._body_json

    @property
    def is_keep_alive(self) -> bool:
        """
        Whether the client asked to keep the connection open.

        HTTP/1.1 (default: keep-alive):
            Connection: close      → False
            (missing)              → True

        HTTP/1.0 (default: close):
            Connection: keep-alive → True
            (missing)              → False

        The server only echoes this preference in its response; every
        connection still carries exactly one request.
        """
        tokens = {
            token.strip().lower()
            for token in self.headers.get("connection", "").split(",")
        }

        if self.version == "HTTP/1.1":
            return "close" not in tokens
        return "keep-alive" in tokens

    def get_header(self, name: str, default: str = "") -> str:
        """Case-insensitive header lookup."""
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        1. Size check            → 413 if too large
        2. Find \\r\\n\\r\\n        → 400 if missing
        3. Parse request line    → 400 if malformed
        4. Parse headers         (names lowercased, repeats joined with ", ")
        5. Slice the body        → 400 if shorter than Content-Length
                                   (or decode it, for Transfer-Encoding: chunked)
    """

    # Any RFC 7230 token is accepted as a method.
    REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one complete HTTP request.

        Args:
            data: Raw request bytes (headers, blank line, body).
            client_address: Peer (ip, port) recorded on the request.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed or too large.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        method, path, version, headers = self.parse_head(data[:header_end])
        rest = data[header_end + 4:]

        if is_chunked(headers):
            decoded = decode_chunked(rest)
            if decoded is None:
                raise HTTPParseError("Incomplete chunked body")
            body = decoded[0]
        else:
            content_length = parse_content_length(headers.get("content-length"))
            if len(rest) < content_length:
                raise HTTPParseError(
                    f"Incomplete body: expected {content_length} bytes, got {len(rest)}"
                )
            body = rest[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def parse_head(self, head: bytes) -> Tuple[str, str, str, Dict[str, str]]:
        """
        Parse the request line and headers (everything before \\r\\n\\r\\n).

        The session calls this before the body has arrived, to learn how
        the body is framed, so both see exactly the same headers.

        Returns:
            Tuple of (method, path, version, headers)
        """
        lines = head.decode("latin-1").split("\r\n")
        method, path, version = self.parse_request_line(lines[0])
        return method, path, version, self.parse_headers(lines[1:])

    def parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Split "METHOD SP REQUEST-URI SP HTTP-VERSION" into its parts.

        Returns:
            Tuple of (method, path, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, uri, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}")

        path = unquote(urlparse(uri).path) or "/"
        return method, path, version

    def parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse "Name: value" lines into a dict with lowercase names.

        Obsolete line folding (continuation lines starting with whitespace)
        is joined onto the previous header. Malformed lines are skipped.
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_content_length(value: Optional[str]) -> int:
    """
    Validate a Content-Length header value.

    Returns 0 when the header is absent. Repeated identical values
    ("5, 5") are accepted; anything else non-numeric is an error.

    Raises:
        HTTPParseError: If the value is not a non-negative integer.
    """
    if value is None:
        return 0

    candidates = {part.strip() for part in value.split(",")}
    if len(candidates) != 1:
        raise HTTPParseError(f"Conflicting Content-Length values: {value!r}")

    text = candidates.pop()
    if not (text.isascii() and text.isdigit()):
        raise HTTPParseError(f"Invalid Content-Length: {value!r}")
    return int(text)


# =============================================================================
# CHUNKED TRANSFER CODING
# =============================================================================
#
#   1a\r\n                          ← chunk size (hex), optional ";ext"
#   "http://example.com/very-long"  ← that many bytes
#   \r\n
#   0\r\n                           ← last chunk
#   \r\n                            ← end (after any trailer lines)
#

CHUNK_SIZE_PATTERN = re.compile(rb"^[0-9A-Fa-f]+$")


def is_chunked(headers: Dict[str, str]) -> bool:
    """
    Whether the body is sent with Transfer-Encoding: chunked.

    When Transfer-Encoding is present it decides the framing and
    Content-Length is ignored.

    Raises:
        HTTPParseError: For any transfer coding other than plain "chunked".
    """
    value = headers.get("transfer-encoding")
    if value is None:
        return False

    codings = [coding.strip().lower() for coding in value.split(",") if coding.strip()]
    if codings != ["chunked"]:
        raise HTTPParseError(f"Unsupported Transfer-Encoding: {value!r}")
    return True


def decode_chunked(data: bytes) -> Optional[Tuple[bytes, int]]:
    """
    Decode a chunked body from the start of `data`.

    Returns:
        (body, consumed) once the last chunk and trailer section are
        complete, where `consumed` counts the framed bytes. None if more
        bytes are needed.

    Raises:
        HTTPParseError: If a chunk size or chunk delimiter is malformed.
    """
    body = bytearray()
    pos = 0

    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None

        size_text = data[pos:line_end].split(b";", 1)[0].strip()
        if not CHUNK_SIZE_PATTERN.match(size_text):
            raise HTTPParseError(f"Invalid chunk size: {size_text!r}")
        size = int(size_text, 16)
        pos = line_end + 2

        if size == 0:
            break

        chunk_end = pos + size
        if len(data) < chunk_end + 2:
            return None
        if data[chunk_end:chunk_end + 2] != b"\r\n":
            raise HTTPParseError("Chunk is not followed by CRLF")

        body += data[pos:chunk_end]
        pos = chunk_end + 2

    # Trailer lines are read and dropped; an empty line ends the message.
    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None
        line = data[pos:line_end]
        pos = line_end + 2
        if not line:
            return bytes(body), pos


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024
) -> HTTPRequest:
    """Parse a request in one call (builds a throwaway RequestParser)."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
