"""
=============================================================================
URLSHORTENER - A Tiny Asynchronous URL Shortening Service
=============================================================================

A single-process HTTP service on raw asyncio streams:

    GET  <any path>                 → 200 "Hello, World!"
    POST <any path> "http://x.com"  → 200 {"shortened url":"localhost:8080/AAAA"}
    POST <any path> "localhost:8080/AAAA"
                                    → 200 {"shortened url":"http://x.com"}
    anything else                   → 400, empty body

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    urlshortener/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m urlshortener)
    ├── server.py            # ShortenerServer: owns all state
    ├── config.py            # ServerConfig dataclass
    ├── handler.py           # GET / POST / other dispatch
    ├── access_log.py        # One log line per request
    ├── exceptions.py        # BindError, CodeSpaceExhausted
    ├── core/                # Connection pipeline
    │   ├── listener.py      # Bind + accept loop
    │   └── session.py       # One connection, one request
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request parsing
    │   ├── response.py      # Response building
    │   └── status_codes.py  # HTTP status enum
    └── shortener/           # Short URL state
        ├── codes.py         # Base-26 code generator
        └── store.py         # Short URL → original URL table

=============================================================================
QUICK START
=============================================================================

    from urlshortener import ShortenerServer, ServerConfig

    ShortenerServer(ServerConfig(port=8080)).run()

    $ curl -d '"http://example.com"' localhost:8080
    {"shortened url":"localhost:8080/AAAA"}

=============================================================================
"""

__version__ = "1.0.0"

from .server import ShortenerServer
from .config import ServerConfig
from .exceptions import BindError, CodeSpaceExhausted, ShortenerError

__all__ = [
    "ShortenerServer",
    "ServerConfig",
    "BindError",
    "CodeSpaceExhausted",
    "ShortenerError",
    "__version__",
]
