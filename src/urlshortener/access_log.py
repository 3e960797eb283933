"""
=============================================================================
ACCESS LOG
=============================================================================

One log line per answered request, on the "urlshortener.access" logger.

    text (Apache style, default):
        127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "POST /" 200 39 0.21ms

    json (for log aggregators):
        {"connection_id": "1a2b3c4d", "method": "POST", "path": "/", ...}

Sessions that die before a request is parsed (client hung up, reset)
never reach the access log; they only show up at DEBUG level on the
session logger.

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass, asdict


logger = logging.getLogger("urlshortener.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    connection_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


def log_request(
    connection_id: str,
    method: str,
    path: str,
    client_ip: str,
    user_agent: str,
    status_code: int,
    content_length: int,
    duration_ms: float,
    log_format: str = "text",
) -> RequestLog:
    """Build a RequestLog, emit it at INFO and return it."""
    entry = RequestLog(
        connection_id=connection_id,
        method=method,
        path=path,
        client_ip=client_ip,
        user_agent=user_agent or "-",
        status_code=int(status_code),
        content_length=content_length,
        duration_ms=duration_ms,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())

    return entry
