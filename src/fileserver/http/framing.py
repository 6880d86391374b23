"""
=============================================================================
REQUEST FRAMING
=============================================================================

TCP is a byte stream, not a message protocol. A request sent as

    GET /index.html HTTP/1.0\r\n\r\n

may arrive in one recv() or in ten. Framing is deciding where the request
ENDS: we keep reading into a bounded buffer until the blank line that
closes the header section shows up.

=============================================================================
THE THREE WAYS FRAMING STOPS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         frame(conn)                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   while buffer not full:                                            │
    │       result = conn.recv(remaining capacity)                        │
    │       │                                                              │
    │       ├── EOF / ERROR ──────────► return None   (no request)        │
    │       │                                                              │
    │       └── OK: append                                                │
    │              │                                                       │
    │              └── \r\n\r\n seen? ──► return buffer[:end]             │
    │                                                                      │
    │   buffer full, no terminator ─────► raise FramingFailure (→ 400)    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Bytes after the terminator are dropped: one request per connection.

=============================================================================
"""

import logging
from typing import Optional

from ..core.connection import Connection
from ..errors import FramingFailure


logger = logging.getLogger(__name__)

TERMINATOR = b"\r\n\r\n"


class RequestFramer:
    """
    Reads one complete request head from a connection.

    Args:
        capacity: Size of the raw request buffer in bytes. A request
                  that does not end within this many bytes is rejected.
    """

    def __init__(self, capacity: int = 4096):
        self.capacity = capacity

    def frame(self, conn: Connection) -> Optional[bytes]:
        """
        Read from conn until the request terminator is found.

        Returns:
            The request bytes up to and including \\r\\n\\r\\n, or None if
            the client closed the connection or the read failed first.

        Raises:
            FramingFailure: The buffer filled up without a terminator.
        """
        buffer = bytearray()

        while len(buffer) < self.capacity:
            result = conn.recv(self.capacity - len(buffer))

            if result.is_eof:
                logger.debug(f"[{conn.id}] Peer closed after {len(buffer)} bytes")
                return None
            if result.is_error:
                logger.debug(f"[{conn.id}] Read error while framing: {result.error}")
                return None

            # A terminator can straddle the previous chunk boundary
            search_from = max(0, len(buffer) - (len(TERMINATOR) - 1))
            buffer += result.data

            end = buffer.find(TERMINATOR, search_from)
            if end != -1:
                return bytes(buffer[:end + len(TERMINATOR)])

        raise FramingFailure(
            f"Request exceeds {self.capacity} bytes without a terminator"
        )
