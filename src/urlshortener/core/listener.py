"""
=============================================================================
LISTENER: THE ACCEPT LOOP
=============================================================================

The listener owns the listening socket. It binds once, then accepts
connections for as long as the service runs, starting an independent
Session task for each one.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     LISTENER STATE MACHINE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   NEW ──► BINDING ──► LISTENING ──► CLOSED                           │
    │              │            │  ▲                                       │
    │              │            │  │  accept → spawn Session → accept ...  │
    │              │            └──┘                                       │
    │              │                                                       │
    │              └──► BindError (logged, never reaches LISTENING)        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ONE THREAD, MANY CONNECTIONS
=============================================================================

Everything runs on a single asyncio event loop:

    event loop ─┬─► accept()            (listening socket readable)
                ├─► session 1: read()   (client 1 readable)
                ├─► session 2: write()  (client 2 writable)
                └─► accept()            (next connection)

accept, read and write never block the thread; a coroutine waiting for
I/O simply yields to the loop. The listener hands a connection off and
immediately goes back to accepting; it never waits for a session.

Because only one coroutine runs at a time and the handler does not
await, the mapping store never sees two requests at once.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR is enabled so a restarted service can bind its port while
the previous socket is still in TIME_WAIT.

=============================================================================
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Set, Tuple

from ..config import ServerConfig
from ..exceptions import BindError


logger = logging.getLogger(__name__)


ConnectionCallback = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


class ListenerState(Enum):
    NEW = "new"
    BINDING = "binding"
    LISTENING = "listening"
    CLOSED = "closed"


class Listener:
    """
    Binds the service endpoint and spawns one task per connection.

    Usage:
        async def on_connection(reader, writer):
            await Session(reader, writer, handler).run()

        listener = Listener(config, on_connection)
        await listener.start()          # BINDING → LISTENING
        await listener.serve_forever()  # until close() or cancellation
    """

    def __init__(self, config: ServerConfig, on_connection: ConnectionCallback):
        self.config = config
        self._on_connection = on_connection
        self._server: Optional[asyncio.AbstractServer] = None
        self._sessions: Set[asyncio.Task] = set()
        self.state = ListenerState.NEW

    @property
    def is_listening(self) -> bool:
        return self.state == ListenerState.LISTENING

    @property
    def active_sessions(self) -> int:
        """Number of sessions that have not finished yet."""
        return len(self._sessions)

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the config when port 0 asked the OS for a free port.
        """
        if self._server is None or not self._server.sockets:
            return (self.config.host, self.config.port)
        host, port = self._server.sockets[0].getsockname()[:2]
        return (host, port)

    async def start(self) -> None:
        """
        Bind, listen, and start accepting in the background.

        Raises:
            BindError: If the socket cannot be bound or put in listen mode.
        """
        self.state = ListenerState.BINDING
        host, port = self.config.host, self.config.port

        try:
            self._server = await asyncio.start_server(
                self._accept,
                host=host,
                port=port,
                backlog=self.config.backlog,
                reuse_address=True,
                start_serving=True,
            )
        except OSError as e:
            # Address in use, permission denied, bad address...
            logger.error(f"Failed to bind to {host}:{port}: {e}")
            self.state = ListenerState.CLOSED
            raise BindError(host, port, e) from e

        self.state = ListenerState.LISTENING
        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")

    async def serve_forever(self) -> None:
        """Accept connections until close() is called or the task is cancelled."""
        if self._server is None:
            await self.start()
        try:
            await self._server.serve_forever()
        except asyncio.CancelledError:
            # close() cancels the serving future; that is a normal stop.
            if self.state != ListenerState.CLOSED:
                raise
            logger.debug("Accept loop stopped")

    def _accept(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """
        Called by the event loop for every accepted connection.

        Starts the session as its own task and returns immediately, so
        the loop can go straight back to accepting.
        """
        peer = writer.get_extra_info("peername")
        logger.debug(f"Accepted connection from {peer}")

        task = asyncio.get_running_loop().create_task(self._on_connection(reader, writer))
        self._sessions.add(task)
        task.add_done_callback(self._session_done)

    def _session_done(self, task: asyncio.Task) -> None:
        self._sessions.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Session crashed", exc_info=error)

    def close(self) -> None:
        """Stop accepting. Sessions already running are left to finish."""
        if self.state == ListenerState.CLOSED:
            return
        if self._server is not None:
            self._server.close()
        self.state = ListenerState.CLOSED
        logger.info("Listener closed")

    async def wait_closed(self) -> None:
        """Wait until the listening socket is closed."""
        if self._server is not None:
            await self._server.wait_closed()
