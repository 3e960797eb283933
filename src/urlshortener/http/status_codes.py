"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The handful of status codes this service ever sends.

    200 OK                      GET greeting, POST shorten/resolve
    400 Bad Request             unsupported method, bad POST body, bad framing
    413 Payload Too Large       request bigger than max_request_size
    500 Internal Server Error   unexpected handler failure

Because HTTPStatus extends IntEnum, members compare equal to plain ints:

    >>> HTTPStatus.OK == 200
    True
    >>> HTTPStatus.OK.phrase
    'OK'

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes and their reason phrases."""

    OK = 200
    BAD_REQUEST = 400
    PAYLOAD_TOO_LARGE = 413
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line:

            HTTP/1.1 200 OK
                     ─── ──
                      │   └── Reason phrase
                      └────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
