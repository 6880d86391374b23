"""
=============================================================================
ERROR HIERARCHY
=============================================================================

Every failure the file server knows how to handle has its own exception
type. The connection driver catches these and turns them into a response
(or into a quiet close), so nothing raised while serving one client can
reach the accept loop.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        EXCEPTION TREE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   FileServerError                                                   │
    │   ├── SocketSetupFailure     fatal, process exits with status 1     │
    │   └── RequestError           scoped to one connection               │
    │       ├── FramingFailure     request too large      → 400           │
    │       ├── MalformedRequest   bad request line       → 400           │
    │       ├── ForbiddenPath      unsafe target          → 400           │
    │       └── ResourceUnavailable  file can't be read   → close         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""


class FileServerError(Exception):
    """
    Base class for all file server errors.

    Attributes:
        message: Human-readable description (also used in logs).
        status_code: HTTP status to answer with, if any.
    """

    status_code: int = 400

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class SocketSetupFailure(FileServerError):
    """The listening socket could not be created, configured, bound or listened on."""


class RequestError(FileServerError):
    """An error scoped to a single client connection."""


class FramingFailure(RequestError):
    """The request buffer filled up before the end of the request was seen."""


class MalformedRequest(RequestError):
    """The request line does not match ``GET <path> HTTP/1.<n>\\r\\n``."""


class ForbiddenPath(RequestError):
    """The request target could escape the document root."""


class ResourceUnavailable(RequestError):
    """
    The resource path could not be opened or read.

    No response is sent for this error; the connection is simply closed.
    """
