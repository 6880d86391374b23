"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps an accepted client socket with a small API the request
lifecycle can rely on: read a chunk, write some bytes, close.

=============================================================================
EVERY I/O CALL HAS THREE OUTCOMES
=============================================================================

A raw recv() can:

    return data        b"GET / HT"      → keep going
    return b""         peer hung up     → stop, nothing more will come
    raise OSError      reset / timeout  → stop, the socket is unusable

Code that only handles the first case loops forever on a dead socket
(recv() keeps returning b"") or crashes on the third. So instead of raw
bytes, every read and write here returns an IOResult:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          IOResult                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   IOStatus.OK      data holds the bytes read (or b"" for a write)   │
    │   IOStatus.EOF     end of stream, data is b""                       │
    │   IOStatus.ERROR   error holds the OSError that was raised          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The same type is used for file reads by the response streamer, so both
sides of the copy loop are handled the same way.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► FRAMING ──► PARSING ──► VALIDATING ──► STREAMING ──► CLOSING ──► CLOSED
               │           │             │              ▲
               │           └─────────────┴──── 400 ─────┘
               │
               └──── peer closed / read error ─────────────────► CLOSING

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, BinaryIO


logger = logging.getLogger(__name__)


class IOStatus(Enum):
    """Outcome of a single read or write."""
    OK = "ok"
    EOF = "eof"
    ERROR = "error"


@dataclass(frozen=True)
class IOResult:
    """
    Result of one I/O call on a socket or file.

    Build these with the ok()/eof()/failed() constructors rather than
    directly.
    """

    status: IOStatus
    data: bytes = b""
    error: Optional[OSError] = None

    @classmethod
    def ok(cls, data: bytes = b"") -> "IOResult":
        return cls(IOStatus.OK, data)

    @classmethod
    def eof(cls) -> "IOResult":
        return cls(IOStatus.EOF)

    @classmethod
    def failed(cls, error: OSError) -> "IOResult":
        return cls(IOStatus.ERROR, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is IOStatus.OK

    @property
    def is_eof(self) -> bool:
        return self.status is IOStatus.EOF

    @property
    def is_error(self) -> bool:
        return self.status is IOStatus.ERROR


def read_chunk(source: BinaryIO, size: int) -> IOResult:
    """
    Read up to size bytes from a binary file object.

    A zero-length read is reported as EOF.
    """
    try:
        data = source.read(size)
    except OSError as e:
        return IOResult.failed(e)
    if not data:
        return IOResult.eof()
    return IOResult.ok(data)


class ConnectionState(Enum):
    """
    Connection lifecycle states.

    The driver moves the connection through these so logs and tests can
    tell how far a request got before it finished.
    """
    NEW = "new"                # Just accepted
    FRAMING = "framing"        # Reading until \r\n\r\n
    PARSING = "parsing"        # Matching the request line
    VALIDATING = "validating"  # Checking the target path
    STREAMING = "streaming"    # Writing a response (success or error)
    CLOSING = "closing"        # Shutdown sequence in progress
    CLOSED = "closed"          # Socket released


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    Use it as a context manager so the socket is always released:

        with Connection(sock, addr) as conn:
            result = conn.recv(4096)
            ...

    Attributes:
        socket: The client socket.
        address: Client address as returned by accept().
        id: Short identifier used to prefix log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was accepted.
        bytes_received: Total bytes read from the client.
        bytes_sent: Total bytes written to the client.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    timeout: Optional[float] = None

    # Bounds on what close() reads back from a client that keeps sending
    drain_limit: int = 4096
    drain_timeout: float = 0.5

    def __post_init__(self):
        # The listening socket has an accept timeout; accepted sockets
        # may inherit it on some platforms, so set ours explicitly.
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0] if self.address else "-"

    # =========================================================================
    # READING
    # =========================================================================

    def recv(self, max_bytes: int) -> IOResult:
        """
        Receive at most max_bytes from the client.

        Returns:
            OK with the data, EOF if the peer closed its side, or ERROR
            if the socket failed (reset, timeout, ...).
        """
        try:
            data = self.socket.recv(max_bytes)
        except OSError as e:
            # socket.timeout is an OSError subclass too
            logger.debug(f"[{self.id}] recv failed: {e}")
            return IOResult.failed(e)

        if not data:
            return IOResult.eof()

        self.bytes_received += len(data)
        return IOResult.ok(data)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> IOResult:
        """
        Send all of data to the client.

        Uses sendall() so a short write can't silently drop bytes.

        Returns:
            OK on success, ERROR if the client went away.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return IOResult.failed(e)

        self.bytes_sent += len(data)
        return IOResult.ok()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. shutdown(SHUT_WR) sends FIN so the client sees end of response
        2. drain what the client still sends, at most drain_limit bytes
           or drain_timeout seconds
        3. close() releases the file descriptor

        Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection closed "
            f"({self.bytes_received} bytes in, {self.bytes_sent} bytes out)"
        )

    def _drain(self):
        """Read and discard pending client data, within the drain bounds."""
        drained = 0
        deadline = time.monotonic() + self.drain_timeout

        try:
            self.socket.settimeout(self.drain_timeout)
            while drained < self.drain_limit and time.monotonic() < deadline:
                chunk = self.socket.recv(min(1024, self.drain_limit - drained))
                if not chunk:
                    return
                drained += len(chunk)
        except OSError:
            return  # Timed out or reset, we're closing anyway

        if drained >= self.drain_limit:
            logger.debug(f"[{self.id}] Client still sending after {drained} bytes, closing")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
