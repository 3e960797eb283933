"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP responses and serializes them to bytes for the socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 200 OK\r\n                          ← status line         │
    │   Content-Type: application/json\r\n           ← headers             │
    │   Connection: keep-alive\r\n                                         │
    │   Content-Length: 39\r\n                       ← added by to_bytes   │
    │   Date: Mon, 19 Oct 2026 10:00:00 GMT\r\n      ← added by to_bytes   │
    │   Server: urlshortener/1.0\r\n                 ← added by to_bytes   │
    │   \r\n                                                               │
    │   {"shortened url":"localhost:8080/AAAA"}      ← body                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Responses echo the request's HTTP version, so an HTTP/1.0 client gets
an HTTP/1.0 status line back.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Union
import json

from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "urlshortener/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be sent.

    Use ResponseBuilder (or the helpers at the bottom of this module)
    rather than filling the fields by hand.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def keep_alive(self) -> bool:
        """Whether the Connection header tells the client to keep the socket."""
        return self.headers.get("Connection", "").lower() == "keep-alive"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header; returns self for chaining."""
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize to wire format.

        Content-Length, Date and Server are filled in unless already set.

        Args:
            server_name: Value for the Server header.

        Returns:
            Complete response bytes ready for the transport.
        """
        response_headers = dict(self.headers)

        response_headers.setdefault("Content-Length", str(len(self.body)))
        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .json({"shortened url": "localhost:8080/AAAA"})
            .keep_alive(request.is_keep_alive)
            .build())

    Every method except build() returns self.
    """

    def __init__(self, version: str = "HTTP/1.1"):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._version = version

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def version(self, version: str) -> "ResponseBuilder":
        self._version = version
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set a raw body; strings are UTF-8 encoded."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = "text/plain") -> "ResponseBuilder":
        """Set a plain text body."""
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """
        Set a compact JSON body.

        Compact separators give {"shortened url":"..."} with no spaces.
        ensure_ascii=False keeps non-ASCII URLs readable.
        """
        self._body = json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json"
        return self

    def keep_alive(self, enabled: bool = True) -> "ResponseBuilder":
        """
        Echo the client's keep-alive preference.

        Sets "Connection: keep-alive" or "Connection: close".
        """
        self._headers["Connection"] = "keep-alive" if enabled else "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
            version=self._version,
        )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an RFC 7231 HTTP-date.

    Example: Mon, 19 Oct 2026 10:00:00 GMT (always GMT).
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def bad_request(version: str = "HTTP/1.1", keep_alive: bool = False) -> HTTPResponse:
    """400 Bad Request with an empty body."""
    return (ResponseBuilder(version)
        .status(HTTPStatus.BAD_REQUEST)
        .keep_alive(keep_alive)
        .build())


def error_response(status: HTTPStatus, version: str = "HTTP/1.1") -> HTTPResponse:
    """
    Empty-bodied error response that closes the connection.

    Used by the session for failures outside the request handler
    (oversized or malformed requests, handler crashes).
    """
    return (ResponseBuilder(version)
        .status(status)
        .keep_alive(False)
        .build())
