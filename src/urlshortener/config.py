"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every knob the service has, in one dataclass.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m urlshortener --port 3000                        │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── SHORTENER_PORT=3000 python -m urlshortener                │
    │                                                                      │
    │   3. Defaults in this dataclass                                     │
    │      └── port: int = 8080                                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validate at startup with validate(): a typo in the overflow policy
should stop the process, not surface on the 456,977th request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .shortener.codes import OverflowPolicy


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the URL shortener service.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size, timeout
    HTTP        max_request_size, server_name
    SHORTENER   short_url_host, code_width, code_overflow
    LOGGING     log_level, log_format

    =========================================================================
    """

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes requested per read from a connection."""

    timeout: Optional[float] = None
    """
    Per-read timeout in seconds while waiting for a request.
    None = wait forever. A timeout is handled like a dropped connection.
    """

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Requests larger than this are answered with 413."""

    server_name: str = "urlshortener/1.0"
    """Value of the Server response header."""

    short_url_host: str = "localhost:8080"
    """Prefix of every issued short URL: "<short_url_host>/<code>"."""

    code_width: int = 4
    """Width of the first codes issued ("AAAA" for 4)."""

    code_overflow: str = OverflowPolicy.WIDEN.value
    """
    What happens after the last code of a width ("ZZZZ"):
    - "widen": continue with "AAAAA"
    - "fail": refuse to shorten further (500)
    """

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: "text" (Apache style) or "json"."""

    @property
    def overflow_policy(self) -> OverflowPolicy:
        return OverflowPolicy(self.code_overflow)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        SHORTENER_HOST           Bind address (default: 0.0.0.0)
        SHORTENER_PORT           Bind port (default: 8080)
        SHORTENER_TIMEOUT        Read timeout in seconds (default: none)
        SHORTENER_URL_HOST       Short URL prefix (default: localhost:8080)
        SHORTENER_CODE_WIDTH     Initial code width (default: 4)
        SHORTENER_CODE_OVERFLOW  widen | fail (default: widen)
        SHORTENER_LOG_LEVEL      Logging level (default: INFO)
        SHORTENER_LOG_FORMAT     text | json (default: text)

        =====================================================================
        """
        timeout = os.getenv("SHORTENER_TIMEOUT")
        return cls(
            host=os.getenv("SHORTENER_HOST", "0.0.0.0"),
            port=int(os.getenv("SHORTENER_PORT", "8080")),
            timeout=float(timeout) if timeout else None,
            short_url_host=os.getenv("SHORTENER_URL_HOST", "localhost:8080"),
            code_width=int(os.getenv("SHORTENER_CODE_WIDTH", "4")),
            code_overflow=os.getenv("SHORTENER_CODE_OVERFLOW", OverflowPolicy.WIDEN.value),
            log_level=os.getenv("SHORTENER_LOG_LEVEL", "INFO"),
            log_format=os.getenv("SHORTENER_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.max_request_size < self.buffer_size:
            raise ValueError("max_request_size must be >= buffer_size")

        if self.code_width < 1:
            raise ValueError("code_width must be >= 1")

        if self.code_overflow not in {policy.value for policy in OverflowPolicy}:
            raise ValueError(f"code_overflow must be 'widen' or 'fail', got {self.code_overflow!r}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
