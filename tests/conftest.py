"""
pytest configuration and fixtures.
"""

import socket
import threading
from pathlib import Path
from typing import Generator, List, Union
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig
from fileserver.core.connection import Connection


SUCCESS_HEADER = b"HTTP/1.0 200 OK\r\nContent-type: text/html; charset=UTF-8\r\n\r\n"
BAD_REQUEST = b"HTTP/1.0 400 Bad Request\r\nConnection: close\r\n\r\n"

INDEX_HTML = b"<html><body>Hello, file server!</body></html>\n"


class FakeSocket:
    """
    Scripted stand-in for a connected client socket.

    recv() hands out the scripted items in order; an item that is an
    exception is raised instead. Once the script runs out, recv() returns
    b"" (peer closed). Everything passed to sendall() is recorded.
    """

    def __init__(self, script: List[Union[bytes, Exception]] = None, fail_send: bool = False):
        self._script = list(script or [])
        self.fail_send = fail_send
        self.sent = bytearray()
        self.recv_sizes: List[int] = []
        self.timeout = None
        self.closed = False
        self.shut_down = False

    def recv(self, max_bytes: int) -> bytes:
        if self.closed:
            raise OSError("recv on closed socket")
        self.recv_sizes.append(max_bytes)
        if not self._script:
            return b""
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        if len(item) > max_bytes:
            self._script.insert(0, item[max_bytes:])
            item = item[:max_bytes]
        return item

    def sendall(self, data: bytes) -> None:
        if self.fail_send:
            raise BrokenPipeError("client went away")
        self.sent += data

    def settimeout(self, timeout) -> None:
        self.timeout = timeout

    def shutdown(self, how) -> None:
        self.shut_down = True

    def close(self) -> None:
        self.closed = True


class EndlessSocket(FakeSocket):
    """A client that never stops sending: recv() always fills the buffer."""

    def recv(self, max_bytes: int) -> bytes:
        if self.closed:
            raise OSError("recv on closed socket")
        self.recv_sizes.append(max_bytes)
        return b"x" * max_bytes


@pytest.fixture
def make_connection():
    """Factory for Connections over a FakeSocket (or an EndlessSocket)."""
    def factory(*script, fail_send: bool = False, endless: bool = False) -> Connection:
        sock = EndlessSocket() if endless else FakeSocket(list(script), fail_send=fail_send)
        return Connection(
            socket=sock,
            address=("127.0.0.1", 54321),
        )
    return factory


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """
    A document root with a few files:

        index.html
        docs/page.html
        big.bin           (several chunks long, every byte value)
        empty.txt
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "docs").mkdir()
    (root / "docs" / "page.html").write_bytes(b"<p>nested</p>")
    (root / "big.bin").write_bytes(bytes(range(256)) * 70)
    (root / "empty.txt").write_bytes(b"")
    return root


@pytest.fixture
def config(doc_root: Path) -> ServerConfig:
    """Test server configuration on an OS-picked loopback port."""
    return ServerConfig(
        root=str(doc_root),
        host="127.0.0.1",
        port=0,
        accept_timeout=0.1,
        timeout=5.0,
        log_level="WARNING",
    )


def fetch(address, raw: bytes, half_close: bool = True, timeout: float = 5.0) -> bytes:
    """
    Send raw bytes to the server and read the whole response.

    With half_close the client shuts down its write side after sending,
    so the server sees end-of-stream if it wants more.
    """
    with socket.create_connection(address, timeout=timeout) as sock:
        sock.sendall(raw)
        if half_close:
            sock.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


class RunningServer:
    """A FileServer running in a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self):
        return self.server.address

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self.server.wait_for_shutdown(timeout=5.0)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def fetch(self, raw: bytes, **kwargs) -> bytes:
        return fetch(self.address, raw, **kwargs)


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """Start a file server on a free port for the duration of a test."""
    running = RunningServer(FileServer(config))
    running.start()

    yield running

    running.stop()
