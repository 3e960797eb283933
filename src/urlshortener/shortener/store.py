"""
=============================================================================
MAPPING STORE
=============================================================================

In-memory table from short URL to the original URL it stands for.

    ┌──────────────────────────┬──────────────────────────────┐
    │ short URL (key)          │ original URL (value)         │
    ├──────────────────────────┼──────────────────────────────┤
    │ localhost:8080/AAAA      │ http://example.com           │
    │ localhost:8080/AAAB      │ http://other.com             │
    │ localhost:8080/AAAC      │ http://example.com           │
    └──────────────────────────┴──────────────────────────────┘

Keys are unique because the code generator never repeats a code. Values
are not: shortening the same URL twice creates two entries.

Entries are never overwritten or removed. Nothing is persisted; the
table lives exactly as long as the store object.

=============================================================================
CONCURRENCY
=============================================================================

There is no lock. lookup() and insert_new() are plain synchronous calls
and the server only makes them from the event loop thread, with no await
in between, so two requests can never interleave inside the store. If you
ever drive the store from several threads, wrap insert_new() in a
threading.Lock.

=============================================================================
"""

import logging
from typing import Dict, Optional

from .codes import CodeGenerator


logger = logging.getLogger(__name__)


class MappingStore:
    """
    Short URL → original URL table.

    Args:
        generator: Source of fresh short codes.
        host_prefix: Prefix for every short URL, e.g. "localhost:8080".
    """

    def __init__(self, generator: CodeGenerator, host_prefix: str = "localhost:8080"):
        self.generator = generator
        self.host_prefix = host_prefix
        self._entries: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def lookup(self, key: str) -> Optional[str]:
        """Return the original URL for an exact short URL match, else None."""
        return self._entries.get(key)

    def insert_new(self, original: str) -> str:
        """
        Mint a short URL for `original` and remember the mapping.

        Always creates a new entry, even if `original` was shortened before.

        Returns:
            The new short URL, "<host_prefix>/<code>".

        Raises:
            CodeSpaceExhausted: If the generator has no codes left.
        """
        short_url = f"{self.host_prefix}/{self.generator.next_prefix()}"
        self._entries[short_url] = original
        logger.debug(f"Stored {short_url} -> {original}")
        return short_url
