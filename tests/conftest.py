"""
pytest configuration and fixtures.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from urlshortener import ShortenerServer, ServerConfig
from urlshortener.handler import RequestHandler
from urlshortener.shortener import CodeGenerator, MappingStore


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /anything?page=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request carrying a URL."""
    body = b'"http://example.com"'
    return (
        b"POST / HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
        + body
    )


@pytest.fixture
def store() -> MappingStore:
    """Fresh, empty store with the default prefix."""
    return MappingStore(CodeGenerator(), host_prefix="localhost:8080")


@pytest.fixture
def handler(store: MappingStore) -> RequestHandler:
    return RequestHandler(store)


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        timeout=5.0,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def server(config: ServerConfig) -> AsyncGenerator[ShortenerServer, None]:
    """A running service on a free port, closed after the test."""
    async with ShortenerServer(config) as srv:
        yield srv
