"""
HTTP protocol pieces of the request lifecycle.

    framing.py       RequestFramer     bytes until \\r\\n\\r\\n
    request.py       RequestParser     request line → ParsedRequest
    paths.py         PathValidator     target → resource path under root
    response.py      ResponseStreamer  200 + file bytes, or 400
    status_codes.py  HTTPStatus        status codes and reason phrases
"""

from .status_codes import HTTPStatus, reason_phrase
from .framing import RequestFramer, TERMINATOR
from .request import ParsedRequest, RequestParser, parse_request
from .paths import PathValidator
from .response import ResponseStreamer, SUCCESS_HEADER, error_response

__all__ = [
    "HTTPStatus",
    "reason_phrase",
    "RequestFramer",
    "TERMINATOR",
    "ParsedRequest",
    "RequestParser",
    "parse_request",
    "PathValidator",
    "ResponseStreamer",
    "SUCCESS_HEADER",
    "error_response",
]
