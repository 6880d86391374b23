"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server only ever answers with two statuses:

    200 OK            the file follows
    400 Bad Request   framing, parsing or path validation failed

Anything else that reaches the response line gets an EMPTY reason phrase,
which keeps the status line well-formed:

    HTTP/1.0 400 Bad Request\r\n
    HTTP/1.0 404 \r\n             ← unknown code, empty reason

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes the server can emit.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.BAD_REQUEST == 400
        True
        >>> HTTPStatus.BAD_REQUEST.phrase
        'Bad Request'
    """

    OK = 200
    BAD_REQUEST = 400

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _PHRASES[self]


_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
}


def reason_phrase(code: int) -> str:
    """
    Get the reason phrase for any status code.

    Returns an empty string for codes the server does not define.
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""
