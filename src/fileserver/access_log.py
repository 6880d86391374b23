"""
=============================================================================
ACCESS LOG
=============================================================================

One line per connection, written to the "fileserver.access" logger so it
can be routed separately from the diagnostic logs:

    logging.getLogger("fileserver.access").addHandler(file_handler)

Two formats:

    text   ::1 - - [19/Oct/2026:08:15:02 +0000] "GET /index.html HTTP/1.0" 200 5120 0.84ms
    json   {"connection_id": "3f2a9c1d", "client_ip": "::1", ...}

A connection that never produced a request line (client hung up, buffer
overflow, bad grammar) logs "-" for the request, and a connection that
got no response at all logs "-" for the status.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from typing import Optional


logger = logging.getLogger("fileserver.access")


@dataclass
class AccessLog:
    """Structured access log entry for one connection."""

    connection_id: str
    client_ip: str
    request_line: Optional[str]
    status_code: Optional[int]
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache common log format, plus duration."""
        status = self.status_code if self.status_code is not None else "-"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line or "-"}" {status} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_access(
    connection_id: str,
    client_ip: str,
    request_line: Optional[str],
    status_code: Optional[int],
    bytes_sent: int,
    started_at: float,
    log_format: str = "text",
) -> AccessLog:
    """
    Build an AccessLog entry and emit it at INFO.

    Args:
        started_at: time.monotonic() value from when handling began.
        log_format: "text" or "json".

    Returns:
        The entry that was logged.
    """
    entry = AccessLog(
        connection_id=connection_id,
        client_ip=client_ip,
        request_line=request_line,
        status_code=None if status_code is None else int(status_code),
        bytes_sent=bytes_sent,
        duration_ms=(time.monotonic() - started_at) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())

    return entry
