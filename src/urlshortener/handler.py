"""
=============================================================================
REQUEST HANDLER
=============================================================================

Turns one parsed request into one response. The path is ignored; only
the method matters:

    ┌─────────┬──────────────────────────────────────────────────────────┐
    │ GET     │ 200 text/plain "Hello, World!"                           │
    ├─────────┼──────────────────────────────────────────────────────────┤
    │ POST    │ body is a JSON string, e.g. "http://example.com"         │
    │         │                                                          │
    │         │   known short URL → 200 {"shortened url": <original>}    │
    │         │   anything else   → 200 {"shortened url": <new short>}   │
    │         │   bad body        → 400, empty                           │
    ├─────────┼──────────────────────────────────────────────────────────┤
    │ other   │ 400, empty                                               │
    └─────────┴──────────────────────────────────────────────────────────┘

Note the POST round trip: submitting a short URL gives back the ORIGINAL
URL under the "shortened url" key rather than minting a new code. That is
how clients resolve a short URL, and the key name is kept for
compatibility.

The handler is where bad POST bodies stop: HTTPParseError is turned into
a 400 here and never reaches the session.

=============================================================================
"""

import logging

from .http.request import HTTPRequest, HTTPParseError
from .http.response import HTTPResponse, ResponseBuilder, bad_request
from .shortener.store import MappingStore


logger = logging.getLogger(__name__)


GREETING = "Hello, World!"
RESULT_KEY = "shortened url"


class RequestHandler:
    """
    Dispatches requests by method, reading and updating a MappingStore.

    Usage:
        handler = RequestHandler(MappingStore(CodeGenerator()))
        response = handler.handle(request)
    """

    def __init__(self, store: MappingStore):
        self.store = store

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        return self.handle(request)

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        """
        Produce the response for `request`.

        Raises:
            CodeSpaceExhausted: Only when the generator runs out of codes
                                under the "fail" overflow policy.
        """
        if request.method == "GET":
            return self.greet(request)

        if request.method == "POST":
            try:
                return self.shorten(request)
            except HTTPParseError as e:
                logger.info(f"Rejected POST body from {request.client_address[0]}: {e}")
                return bad_request(request.version, request.is_keep_alive)

        logger.debug(f"Unsupported method: {request.method}")
        return bad_request(request.version, request.is_keep_alive)

    def greet(self, request: HTTPRequest) -> HTTPResponse:
        return (ResponseBuilder(request.version)
            .text(GREETING)
            .keep_alive(request.is_keep_alive)
            .build())

    def shorten(self, request: HTTPRequest) -> HTTPResponse:
        """
        Shorten a new URL, or resolve a short URL we issued earlier.

        Raises:
            HTTPParseError: If the body is not a JSON string literal.
        """
        url = parse_submitted_url(request)
        logger.info(f"Received URL: {url}")

        original = self.store.lookup(url)
        result = original if original is not None else self.store.insert_new(url)

        return (ResponseBuilder(request.version)
            .json({RESULT_KEY: result})
            .keep_alive(request.is_keep_alive)
            .build())


def parse_submitted_url(request: HTTPRequest) -> str:
    """
    Extract the URL from a POST body holding a JSON string literal.

    Raises:
        HTTPParseError: If the body is not valid JSON or not a JSON string.
    """
    value = request.json
    if not isinstance(value, str):
        raise HTTPParseError(f"Expected a JSON string, got {type(value).__name__}")
    return value
