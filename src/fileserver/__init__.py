"""
=============================================================================
FILESERVER - Minimal HTTP/1.0 File Server on Raw Sockets
=============================================================================

Accepts TCP connections one at a time, reads a single GET request line,
and streams the requested file from a document root back to the client.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        REQUEST LIFECYCLE                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer      accept()                                        │
    │        │                                                             │
    │        ▼                                                             │
    │   FileServer.handle_connection(conn)                                │
    │        │                                                             │
    │        ├──► RequestFramer      read until \r\n\r\n (bounded)         │
    │        ├──► RequestParser      "GET <path> HTTP/1.<n>\r\n"           │
    │        ├──► PathValidator      starts with "/", no "/../"            │
    │        └──► ResponseStreamer   200 + file bytes, or 400             │
    │                                                                      │
    │   close, then accept() the next client                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer: connection driver + lifecycle
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # Exception hierarchy
    ├── access_log.py        # Per-connection access log
    ├── core/
    │   ├── socket_server.py # Listening socket, accept loop, signals
    │   └── connection.py    # Client socket wrapper, IOResult
    └── http/
        ├── framing.py       # Request framing
        ├── request.py       # Request line parsing
        ├── paths.py         # Path validation
        ├── response.py      # Response streaming
        └── status_codes.py  # Status codes and reason phrases

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    FileServer(ServerConfig(root="./public", port=8080)).run()

or from a shell:

    python -m fileserver 8080 ./public

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import FileServer

__all__ = ["FileServer", "ServerConfig", "__version__"]
