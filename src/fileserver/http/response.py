"""
=============================================================================
RESPONSE STREAMING
=============================================================================

Writes exactly one response to a connection. There are only two shapes:

    SUCCESS                                   ERROR
    ───────                                   ─────
    HTTP/1.0 200 OK\r\n                       HTTP/1.0 400 Bad Request\r\n
    Content-type: text/html; charset=UTF-8\r\n  Connection: close\r\n
    \r\n                                      \r\n
    <raw file bytes ...>                      (no body)

The success header is fixed. Content type is always text/html whatever
the file actually holds, and there is no Content-Length: the body ends
when the connection closes.

=============================================================================
THE COPY LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   open(path) ── fails ──► ResourceUnavailable (nothing written)      │
    │       │                                                              │
    │   send 200 header                                                   │
    │       │                                                              │
    │   loop:                                                             │
    │       read_chunk(file) ──┬── EOF   ──► done                          │
    │                          ├── ERROR ──► ResourceUnavailable           │
    │                          └── OK    ──► conn.send(chunk)              │
    │                                          └── ERROR ──► stop          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The file is opened BEFORE the status line goes out, so a missing file
never produces a "200 OK" with an empty body.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Union

from ..core.connection import Connection, read_chunk
from ..errors import ResourceUnavailable
from .status_codes import HTTPStatus, reason_phrase


logger = logging.getLogger(__name__)

SUCCESS_HEADER = (
    b"HTTP/1.0 200 OK\r\n"
    b"Content-type: text/html; charset=UTF-8\r\n"
    b"\r\n"
)


def error_response(status_code: int) -> bytes:
    """
    Build an error response.

    Example:
        >>> error_response(400)
        b'HTTP/1.0 400 Bad Request\\r\\nConnection: close\\r\\n\\r\\n'
    """
    return (
        f"HTTP/1.0 {int(status_code)} {reason_phrase(status_code)}\r\n"
        f"Connection: close\r\n"
        f"\r\n"
    ).encode("ascii")


class ResponseStreamer:
    """
    Writes a response to one connection.

    Args:
        conn: Connection to write to.
        chunk_size: Bytes read from the file per iteration.
    """

    def __init__(self, conn: Connection, chunk_size: int = 4096):
        self.conn = conn
        self.chunk_size = chunk_size

    def send_error(self, status_code: int = HTTPStatus.BAD_REQUEST) -> bool:
        """
        Send a body-less error response.

        Returns:
            True if the response was written.
        """
        return self.conn.send(error_response(status_code)).is_ok

    def send_file(self, path: Union[str, Path]) -> int:
        """
        Send the 200 header followed by the contents of path.

        Returns:
            Number of body bytes sent. Less than the file size if the
            client disconnected mid-transfer.

        Raises:
            ResourceUnavailable: path can't be opened (nothing has been
                                 sent yet) or a read fails mid-stream.
        """
        try:
            source = open(path, "rb")
        except OSError as e:
            raise ResourceUnavailable(f"Cannot open {path}: {e.strerror or e}") from e
        except ValueError as e:
            # Embedded NUL byte
            raise ResourceUnavailable(f"Cannot open {path!r}: {e}") from e

        sent = 0
        with source:
            if not self.conn.send(SUCCESS_HEADER).is_ok:
                return sent

            while True:
                result = read_chunk(source, self.chunk_size)

                if result.is_eof:
                    break
                if result.is_error:
                    raise ResourceUnavailable(
                        f"Read failed on {path} after {sent} bytes: {result.error}"
                    ) from result.error

                if not self.conn.send(result.data).is_ok:
                    logger.info(f"[{self.conn.id}] Client went away after {sent} bytes")
                    break
                sent += len(result.data)

        return sent
