"""
End-to-end tests against a live server on a loopback socket.
"""

import socket
import time

import pytest

from conftest import BAD_REQUEST, SUCCESS_HEADER


class TestServingFiles:
    """Valid requests for existing files."""

    def test_get_file(self, live_server, doc_root):
        response = live_server.fetch(b"GET /index.html HTTP/1.0\r\n\r\n")

        assert response == SUCCESS_HEADER + (doc_root / "index.html").read_bytes()

    def test_get_large_binary_file(self, live_server, doc_root):
        response = live_server.fetch(b"GET /big.bin HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert response == SUCCESS_HEADER + (doc_root / "big.bin").read_bytes()

    def test_same_request_twice_is_identical(self, live_server):
        """Idempotence: an unchanged file gives byte-identical responses."""
        first = live_server.fetch(b"GET /docs/page.html HTTP/1.0\r\n\r\n")
        second = live_server.fetch(b"GET /docs/page.html HTTP/1.0\r\n\r\n")

        assert first == second
        assert first.startswith(SUCCESS_HEADER)

    def test_request_sent_in_pieces(self, live_server, doc_root):
        """The server waits for the whole request across segments."""
        with socket.create_connection(live_server.address, timeout=5) as sock:
            for piece in (b"GET /ind", b"ex.html HT", b"TP/1.0\r\n", b"\r\n"):
                sock.sendall(piece)
                time.sleep(0.05)

            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)

        assert b"".join(chunks) == SUCCESS_HEADER + (doc_root / "index.html").read_bytes()


class TestBadRequests:
    """Requests that must get exactly the 400 response."""

    @pytest.mark.parametrize("raw", [
        b"POST /index.html HTTP/1.0\r\n\r\n",
        b"GET /index.html\r\n\r\n",
        b"GET /index.html HTTP/2.0\r\n\r\n",
        b"GET /secret/../../etc/passwd HTTP/1.0\r\n\r\n",
        b"GET index.html HTTP/1.0\r\n\r\n",
    ])
    def test_bad_request(self, live_server, raw):
        assert live_server.fetch(raw) == BAD_REQUEST

    def test_request_at_buffer_capacity(self, live_server):
        """A full buffer with no terminator gets a 400, not a hang."""
        raw = b"GET /" + b"a" * (4096 - 5)

        assert live_server.fetch(raw, half_close=False) == BAD_REQUEST


class TestClosedWithoutResponse:
    """Connections that end without any bytes written."""

    def test_missing_file(self, live_server):
        """No 200 header and no garbage body for a missing file."""
        assert live_server.fetch(b"GET /nope.html HTTP/1.0\r\n\r\n") == b""

    def test_root_directory(self, live_server):
        assert live_server.fetch(b"GET / HTTP/1.0\r\n\r\n") == b""

    def test_trailing_slash_after_file_name(self, live_server):
        assert live_server.fetch(b"GET /index.html/ HTTP/1.0\r\n\r\n") == b""

    def test_client_hangs_up_early(self, live_server):
        assert live_server.fetch(b"GET /index.html HTTP/1.0\r\n") == b""


class TestSequentialClients:
    """One failing connection never affects the next."""

    def test_server_keeps_serving(self, live_server, doc_root):
        expected = SUCCESS_HEADER + (doc_root / "index.html").read_bytes()

        assert live_server.fetch(b"BREW /pot HTCPCP/1.0\r\n\r\n") == BAD_REQUEST
        assert live_server.fetch(b"GET /missing HTTP/1.0\r\n\r\n") == b""
        assert live_server.fetch(b"GET /index.html HTTP/1.0\r\n") == b""
        assert live_server.fetch(b"GET /index.html HTTP/1.0\r\n\r\n") == expected

    def test_shutdown_releases_socket(self, live_server):
        address = live_server.address

        live_server.stop()

        assert not live_server.server.is_running
        with pytest.raises(OSError):
            socket.create_connection(address, timeout=1)

    def test_client_that_never_stops_sending(self, live_server, doc_root):
        """A flooding client gets its 400 and the next client is still served."""
        with socket.create_connection(live_server.address, timeout=5) as sock:
            sock.sendall(b"x" * 4096)
            response = b""
            deadline = time.monotonic() + 5
            while time.monotonic() < deadline:
                try:
                    sock.sendall(b"x" * 1024)
                except OSError:
                    break  # Server closed the connection
                time.sleep(0.01)
            try:
                while True:
                    chunk = sock.recv(65536)
                    if not chunk:
                        break
                    response += chunk
            except OSError:
                pass  # Reset after unread data; the 400 may already be lost

        assert response in (BAD_REQUEST, b"")
        expected = SUCCESS_HEADER + (doc_root / "index.html").read_bytes()
        assert live_server.fetch(b"GET /index.html HTTP/1.0\r\n\r\n") == expected
