"""
Low-level socket components.

    socket_server.py  SocketServer  listening socket + accept loop
    connection.py     Connection    client socket wrapper, IOResult
"""

from .connection import Connection, ConnectionState, IOResult, IOStatus, read_chunk
from .socket_server import SocketServer

__all__ = [
    "Connection",
    "ConnectionState",
    "IOResult",
    "IOStatus",
    "read_chunk",
    "SocketServer",
]
