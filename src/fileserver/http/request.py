"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns a framed request into a ParsedRequest. Only the request line is
looked at; header lines that follow it are ignored.

=============================================================================
THE GRAMMAR
=============================================================================

    GET /path/to/file.html HTTP/1.0\r\n
    ─┬─ ──────────┬─────── ───┬────┬─
     │            │           │    └── CRLF is required
     │            │           └── "HTTP/1." then the minor version digits
     │            └── target: 1..4096 non-whitespace bytes
     └── the only method we serve

Anything else is a MalformedRequest:

    POST /index.html HTTP/1.0\r\n     wrong method
    GET /index.html\r\n               missing version
    GET /index.html HTTP/2.0\r\n      wrong major version
    GET /index.html HTTP/1.0          missing CRLF
    GET  /index.html HTTP/1.0\r\n     two spaces

=============================================================================
"""

import os
import re
from dataclasses import dataclass

from ..errors import MalformedRequest


@dataclass(frozen=True)
class ParsedRequest:
    """
    A request line that matched the grammar.

    Attributes:
        method: Always "GET".
        target: Request target as sent, e.g. "/docs/index.html".
        http_minor_version: The n in HTTP/1.n.
    """

    method: str
    target: str
    http_minor_version: int

    @property
    def version(self) -> str:
        """Protocol version string, e.g. "HTTP/1.0"."""
        return f"HTTP/1.{self.http_minor_version}"

    @property
    def request_line(self) -> str:
        """The request line without CRLF, for logging."""
        return f"{self.method} {self.target} {self.version}"


class RequestParser:
    """
    Parses framed request bytes into ParsedRequest objects.

    Args:
        max_path_length: Longest accepted target, in bytes.
    """

    def __init__(self, max_path_length: int = 4096):
        self.max_path_length = max_path_length
        self._pattern = re.compile(
            rb"GET (\S{1,%d}) HTTP/1\.(\d+)\r\n" % max_path_length
        )

    def parse(self, data: bytes) -> ParsedRequest:
        """
        Match the request line at the start of data.

        Raises:
            MalformedRequest: If the request line doesn't match.
        """
        match = self._pattern.match(data)
        if match is None:
            first_line = data.split(b"\r\n", 1)[0][:80]
            raise MalformedRequest(f"Invalid request line: {first_line!r}")

        path, minor = match.groups()
        return ParsedRequest(
            method="GET",
            # fsdecode keeps undecodable bytes intact for open()
            target=os.fsdecode(path),
            http_minor_version=int(minor),
        )


def parse_request(data: bytes, max_path_length: int = 4096) -> ParsedRequest:
    """
    Parse request bytes with a one-off parser.

    Convenience wrapper around RequestParser for callers (and tests)
    that don't keep a parser around.
    """
    return RequestParser(max_path_length).parse(data)
