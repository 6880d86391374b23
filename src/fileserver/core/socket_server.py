"""
=============================================================================
LISTENING SOCKET AND ACCEPT LOOP
=============================================================================

This module owns the one process-wide resource the server has: the
listening socket. It is created in start(), used by the accept loop, and
released in _cleanup() no matter how the loop ends.

=============================================================================
SOCKET SETUP
=============================================================================

    socket(AF_INET6, SOCK_STREAM)      or AF_INET for an IPv4 host
    setsockopt(SO_REUSEADDR, 1)        restart without "Address in use"
    setsockopt(IPV6_V6ONLY, 0)         IPv6 socket accepts IPv4 clients too
    setsockopt(TCP_NODELAY, 1)         send small writes right away
    bind((host, port))
    listen(backlog)

Any failure in this sequence is fatal and raised as SocketSetupFailure.
The CLI turns it into a diagnostic and exit status 1.

=============================================================================
ACCEPT LOOP
=============================================================================

    while running:
        accept()           ← wakes up every accept_timeout seconds
        Connection(...)       to notice shutdown()
        handler(conn)      ← runs to completion before the next accept

Connections are handled one at a time, in order. The handler owns the
connection from here on and is responsible for closing it.

SIGINT (Ctrl+C) and SIGTERM request a shutdown: the loop finishes the
current connection, exits, and the socket is closed.

A failed accept() never ends the loop silently:

    ECONNABORTED, EPROTO, ...   client gave up, skip it
    EMFILE, ENFILE, ...         out of descriptors, wait accept_timeout, retry
    anything else               SocketSetupFailure, the CLI exits with 1

=============================================================================
"""

import errno
import socket
import signal
import logging
import threading
import time
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from ..errors import SocketSetupFailure
from .connection import Connection


logger = logging.getLogger(__name__)

# accept() failures that only concern the connection being accepted
TRANSIENT_ACCEPT_ERRORS = frozenset({
    errno.ECONNABORTED,
    errno.EPROTO,
    errno.EPERM,
    errno.EINTR,
})

# Out of descriptors or memory; accept() can succeed again later
EXHAUSTION_ACCEPT_ERRORS = frozenset({
    errno.EMFILE,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
})


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        def handle_connection(conn: Connection):
            with conn:
                ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._listening = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address the server is bound to.

        After start() this is the real bound address, so a config with
        port 0 reports the port the OS picked.
        """
        if self._socket is not None:
            bound = self._socket.getsockname()
            return (bound[0], bound[1])
        return (self.config.host, self.config.port)

    def _family(self) -> socket.AddressFamily:
        return socket.AF_INET6 if ":" in self.config.host else socket.AF_INET

    def _create_socket(self) -> socket.socket:
        """
        Create and configure the listening socket.

        Raises:
            SocketSetupFailure: If the socket can't be created or configured.
        """
        family = self._family()

        try:
            sock = socket.socket(family, socket.SOCK_STREAM)
        except OSError as e:
            raise SocketSetupFailure(f"Creating socket failed: {e}") from e

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            if family == socket.AF_INET6:
                # Allow IPv4 to connect as well
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)

            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as e:
            sock.close()
            raise SocketSetupFailure(f"Setting socket options failed: {e}") from e

        sock.settimeout(self.config.accept_timeout)
        return sock

    def _setup_signals(self):
        """
        Install SIGINT/SIGTERM handlers that request a shutdown.

        Python only allows this from the main thread; when the server runs
        elsewhere (tests, embedding) the caller stops it with shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not in main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and run the accept loop.

        This method BLOCKS until shutdown() is called.

        Args:
            connection_handler: Called with each accepted connection.

        Raises:
            SocketSetupFailure: If binding or listening fails.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            self._cleanup()
            raise SocketSetupFailure(
                f"Error binding to {self.config.host}:{self.config.port}: {e}"
            ) from e

        try:
            self._socket.listen(self.config.backlog)
        except OSError as e:
            self._cleanup()
            raise SocketSetupFailure(f"Error listening for connections: {e}") from e

        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._listening.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections one at a time until shutdown.

        Raises:
            SocketSetupFailure: If accept() fails in a way the listener
                                can't recover from.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Check the running flag
            except OSError as e:
                if not self._running:
                    break  # Socket closed under us by shutdown
                if e.errno in TRANSIENT_ACCEPT_ERRORS or isinstance(e, ConnectionAbortedError):
                    # Client gave up while still in the backlog
                    logger.debug(f"Accept aborted: {e}")
                    continue
                if e.errno in EXHAUSTION_ACCEPT_ERRORS:
                    # Pending connection stays queued; retry once a descriptor frees up
                    logger.error(f"Accept error: {e}, retrying in {self.config.accept_timeout}s")
                    time.sleep(self.config.accept_timeout)
                    continue
                raise SocketSetupFailure(f"Error accepting connection: {e}") from e

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.timeout,
            )
            connection_handler(conn)

    def shutdown(self):
        """
        Ask the accept loop to stop.

        Safe to call from a signal handler or another thread, and more
        than once. Returns right away; use wait_for_shutdown() to block
        until the listening socket has been released.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Release the listening socket and restore signal handlers."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._listening.clear()
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the socket is bound and listening.

        Returns:
            True if listening, False on timeout.
        """
        return self._listening.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the server has shut down.

        Returns:
            True if shutdown completed, False on timeout.
        """
        return self._shutdown_event.wait(timeout)
