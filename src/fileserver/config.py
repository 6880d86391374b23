"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the file server.

The reference behavior needs only two values, the listen port and the
document root, which come from the command line. Everything else has a
default that reproduces that behavior and can be tuned from code or
from the optional CLI flags.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION GROUPS                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SERVING      root, strict_paths                                   │
    │   NETWORK      host, port, backlog, timeout, accept_timeout         │
    │   BUFFERS      request_buffer_size, max_path_length, chunk_size     │
    │   LOGGING      log_level, log_format                                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation is eager: call validate() at startup and get a ValueError with
a clear message instead of a confusing failure on the first request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    Example:
        config = ServerConfig(root="./public", port=8080)
        config.validate()
        FileServer(config).run()
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVING
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """
    Document root. The resource path is root + request target, so
    "GET /a/b.html" with root "./public" opens "./public/a/b.html".
    """

    strict_paths: bool = False
    """
    Also confine resolved resource paths to the document root.
    Off by default: only the textual "/../" check is applied.
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "::"
    """
    Address to bind. "::" is every interface, IPv6 and IPv4 alike
    (the socket is dual-stack). An IPv4 address gives an IPv4 socket.
    """

    port: int = 8080
    """Port to listen on. 0 asks the OS for any free port."""

    backlog: int = 10
    """Accept queue length passed to listen()."""

    timeout: Optional[float] = None
    """
    Per-read timeout on client sockets in seconds.
    None blocks until the client sends something or hangs up.
    """

    accept_timeout: float = 1.0
    """How often the accept loop wakes up to check for shutdown."""

    # ─────────────────────────────────────────────────────────────────────
    # BUFFERS
    # ─────────────────────────────────────────────────────────────────────

    request_buffer_size: int = 4096
    """Capacity of the raw request buffer. Larger requests get a 400."""

    max_path_length: int = 4096
    """Longest accepted request target in bytes."""

    chunk_size: int = 4096
    """Bytes read from the file (and sent) per loop iteration."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid value found.
        """
        if not os.path.isdir(self.root):
            raise ValueError(f"Document root is not a directory: {self.root}")

        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        # The shortest request ("GET / HTTP/1.0\r\n\r\n") must fit
        if self.request_buffer_size < 32:
            raise ValueError("request_buffer_size must be >= 32")

        if self.max_path_length < 1:
            raise ValueError("max_path_length must be >= 1")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
