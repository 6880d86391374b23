"""
=============================================================================
FILE SERVER
=============================================================================

FileServer ties the pieces together. SocketServer hands it each accepted
connection; handle_connection() drives that connection through the whole
request lifecycle and closes it before the next one is accepted.

=============================================================================
PER-CONNECTION FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     handle_connection(conn)                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FRAMING     RequestFramer.frame()                                 │
    │      │          ├── None ────────────────────────────► close        │
    │      │          └── FramingFailure ──────┐                          │
    │      ▼                                   │                          │
    │   PARSING     RequestParser.parse()      │                          │
    │      │          └── MalformedRequest ────┤                          │
    │      ▼                                   │                          │
    │   VALIDATING  PathValidator.validate()   │                          │
    │      │          └── ForbiddenPath ───────┤                          │
    │      ▼                                   ▼                          │
    │   STREAMING   send_file()             send_error(400)               │
    │      │          └── ResourceUnavailable ─────────────► close        │
    │      ▼                                                              │
    │   CLOSED                                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Every failure is contained in the connection it happened on: the accept
loop never sees an exception from here.

=============================================================================
"""

import time
import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .access_log import log_access
from .core.connection import Connection, ConnectionState
from .core.socket_server import SocketServer
from .errors import FramingFailure, MalformedRequest, ForbiddenPath, ResourceUnavailable
from .http.framing import RequestFramer
from .http.paths import PathValidator
from .http.request import RequestParser
from .http.response import ResponseStreamer


logger = logging.getLogger(__name__)


class FileServer:
    """
    Serves files from a document root, one connection at a time.

    Example:
        server = FileServer(ServerConfig(root="./public", port=8080))
        server.run()  # Blocks until Ctrl+C
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._framer = RequestFramer(self.config.request_buffer_size)
        self._parser = RequestParser(self.config.max_path_length)
        self._validator = PathValidator(self.config.root, strict=self.config.strict_paths)
        self._socket_server = SocketServer(self.config)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port) while running, configured one otherwise."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, setup_logging: bool = True):
        """
        Start serving (blocking).

        Args:
            setup_logging: Configure the root logger from config. Embedding
                           applications that manage logging pass False.

        Raises:
            SocketSetupFailure: If the listening socket can't be set up.
        """
        if setup_logging:
            self._setup_logging()

        logger.info(
            f"Serving {self.config.root} on {self.config.host}:{self.config.port}"
            + (" (strict paths)" if self.config.strict_paths else "")
        )

        try:
            self._socket_server.start(self.handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

        logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections once the current one is done."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket has been released."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserver").setLevel(level)

    # =========================================================================
    # CONNECTION DRIVER
    # =========================================================================

    def handle_connection(self, conn: Connection):
        """
        Run one connection through the request lifecycle and close it.

        Never raises: per-connection failures end in a 400, a quiet close,
        or (for bugs) a logged traceback.
        """
        started_at = time.monotonic()
        streamer = ResponseStreamer(conn, self.config.chunk_size)
        request_line = None
        status_code = None

        with conn:
            try:
                conn.state = ConnectionState.FRAMING
                raw_request = self._framer.frame(conn)
                if raw_request is None:
                    return

                conn.state = ConnectionState.PARSING
                request = self._parser.parse(raw_request)
                request_line = request.request_line

                conn.state = ConnectionState.VALIDATING
                resource = self._validator.validate(request.target)

                conn.state = ConnectionState.STREAMING
                streamer.send_file(resource)
                if conn.bytes_sent:
                    status_code = 200

            except (FramingFailure, MalformedRequest, ForbiddenPath) as e:
                logger.info(f"[{conn.id}] {type(e).__name__}: {e}")
                conn.state = ConnectionState.STREAMING
                if streamer.send_error(e.status_code):
                    status_code = e.status_code

            except ResourceUnavailable as e:
                logger.warning(f"[{conn.id}] {e}")
                # Mid-stream read failure: the 200 header already went out
                if conn.bytes_sent:
                    status_code = 200

            except Exception as e:
                logger.exception(f"[{conn.id}] Connection error: {e}")

            finally:
                log_access(
                    connection_id=conn.id,
                    client_ip=conn.client_ip,
                    request_line=request_line,
                    status_code=status_code,
                    bytes_sent=conn.bytes_sent,
                    started_at=started_at,
                    log_format=self.config.log_format,
                )
