"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

    request.py       bytes → HTTPRequest (RequestParser, HTTPParseError)
    response.py      HTTPResponse → bytes (ResponseBuilder)
    status_codes.py  HTTPStatus enum with reason phrases

=============================================================================
"""

from .status_codes import HTTPStatus
from .request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_content_length,
    parse_request,
    is_chunked,
    decode_chunked,
)
from .response import (
    HTTPResponse,
    ResponseBuilder,
    bad_request,
    error_response,
    format_http_date,
)

__all__ = [
    "HTTPStatus",
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_content_length",
    "parse_request",
    "is_chunked",
    "decode_chunked",
    "HTTPResponse",
    "ResponseBuilder",
    "bad_request",
    "error_response",
    "format_http_date",
]
