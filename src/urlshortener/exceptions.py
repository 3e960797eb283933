"""
=============================================================================
SERVICE EXCEPTIONS
=============================================================================

Errors that belong to the service itself rather than to HTTP parsing.
(HTTP framing and body errors live next to the parser as HTTPParseError.)

    ShortenerError
    ├── BindError            Listening socket could not be set up
    └── CodeSpaceExhausted   Generator ran out of codes ("fail" policy)

Transport errors on an accepted connection are NOT wrapped: the Session
catches the builtin ConnectionError / OSError family directly and abandons
that one connection.

=============================================================================
"""

from typing import Optional


class ShortenerError(Exception):
    """Base class for service-level errors."""


class BindError(ShortenerError):
    """
    Raised when the listening socket cannot be opened, bound or put into
    listen mode (address in use, permission denied, bad address).

    Fatal to startup: the listener never reaches LISTENING.
    """

    def __init__(self, host: str, port: int, cause: Optional[OSError] = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to bind to {host}:{port}{detail}")
        self.host = host
        self.port = port
        self.cause = cause


class CodeSpaceExhausted(ShortenerError):
    """Raised by the code generator when every code of its width is used."""

    def __init__(self, width: int):
        super().__init__(f"All {26 ** width} codes of width {width} have been issued")
        self.width = width
