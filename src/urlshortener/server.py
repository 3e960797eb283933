"""
=============================================================================
URL SHORTENER SERVICE
=============================================================================

Ties the pieces together. One ShortenerServer instance owns one complete
set of state:

    ShortenerServer
    ├── CodeGenerator     AAAA, AAAB, ...
    ├── MappingStore      short URL → original URL
    ├── RequestHandler    GET greeting / POST shorten-or-resolve
    └── Listener          accept loop, one Session per connection

Nothing is global: two servers (e.g. in two tests) never share codes or
mappings, and all state goes away with the instance.

=============================================================================
LIFECYCLE
=============================================================================

    server = ShortenerServer(config)     # build state, validate config
    await server.start()                 # bind (BindError on failure)
    ...                                  # serving in the background
    await server.close()                 # stop accepting

or, from a script, the blocking form:

    server.run()                         # until SIGINT / SIGTERM

=============================================================================
"""

import asyncio
import logging
import signal
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Listener, Session
from .handler import RequestHandler
from .http.request import RequestParser
from .shortener import CodeGenerator, MappingStore


logger = logging.getLogger(__name__)


class ShortenerServer:
    """
    The URL shortener service.

    Usage:
        async with ShortenerServer(ServerConfig(port=0)) as server:
            host, port = server.address
            ...
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()  # Fail fast on bad config

        self.codes = CodeGenerator(
            width=self.config.code_width,
            overflow=self.config.overflow_policy,
        )
        self.store = MappingStore(self.codes, host_prefix=self.config.short_url_host)
        self.handler = RequestHandler(self.store)

        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._listener = Listener(self.config, self._handle_connection)
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port)."""
        return self._listener.address

    @property
    def is_listening(self) -> bool:
        return self._listener.is_listening

    @property
    def listener(self) -> Listener:
        return self._listener

    async def start(self) -> None:
        """
        Bind and start accepting in the background.

        Raises:
            BindError: If the endpoint cannot be bound.
        """
        await self._listener.start()

    async def serve_forever(self) -> None:
        """Start if needed, then accept until close()."""
        await self._listener.serve_forever()

    async def close(self) -> None:
        """Stop accepting new connections."""
        self._listener.close()
        await self._listener.wait_closed()
        if self._stop_event is not None:
            self._stop_event.set()

    async def __aenter__(self) -> "ShortenerServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        session = Session(
            reader=reader,
            writer=writer,
            handler=self.handler,
            parser=self._parser,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            max_request_size=self.config.max_request_size,
            server_name=self.config.server_name,
            log_format=self.config.log_format,
        )
        await session.run()

    def run(self) -> None:
        """
        Run the service until SIGINT or SIGTERM (blocking).

        Raises:
            BindError: If the endpoint cannot be bound.
        """
        self._setup_logging()
        asyncio.run(self._main())

    async def _main(self) -> None:
        self._stop_event = asyncio.Event()
        await self.start()
        self._install_signal_handlers()

        logger.info(
            f"{self.config.server_name} issuing short URLs as "
            f"{self.config.short_url_host}/<code>"
        )

        try:
            await self._stop_event.wait()
        finally:
            self._listener.close()
            await self._listener.wait_closed()
            logger.info(f"Stopped after issuing {self.codes.issued} short URLs")

    def _install_signal_handlers(self) -> None:
        """
        Stop on SIGINT (Ctrl+C) or SIGTERM (docker stop, systemd, kill).

        In-flight sessions are not waited for beyond closing the listener.
        """
        loop = asyncio.get_running_loop()

        def shutdown_handler(signum: int) -> None:
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self._stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, shutdown_handler, sig)
            except NotImplementedError:
                pass  # Windows event loops: Ctrl+C raises KeyboardInterrupt instead

    def _setup_logging(self) -> None:
        """Configure root logging from the config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("urlshortener").setLevel(level)
