"""
=============================================================================
CORE CONNECTION PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                            LISTENER                                  │
    │  • Binds 0.0.0.0:8080 (SO_REUSEADDR)                                │
    │  • Accepts forever on the event loop                                │
    │  • Starts one Session task per connection, never waits for it       │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one task per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                            SESSION                                   │
    │  • Reads exactly one request (buffered, Content-Length aware)       │
    │  • Calls the request handler                                        │
    │  • Writes the response, shuts down the send side, closes            │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .listener import Listener, ListenerState
from .session import Session, SessionState

__all__ = [
    "Listener",
    "ListenerState",
    "Session",
    "SessionState",
]
