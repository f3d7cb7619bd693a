"""
=============================================================================
HTTP MODULE - Protocol Layer
=============================================================================

Everything that turns bytes into requests and responses into bytes.

    request.py       RequestParser, HTTPRequest, Headers, ParseResult
    response.py      HTTPResponse, ResponseWriter, fixed response bodies
    compression.py   Compressor (gzip)
    mime_types.py    Extension → Content-Type
    status_codes.py  HTTPStatus

=============================================================================
"""

from .compression import Compressor
from .mime_types import DEFAULT_MIME_TYPE, MIME_TYPES, get_content_type
from .request import (
    Headers,
    HTTPRequest,
    ParseError,
    ParseResult,
    RequestLine,
    RequestParser,
    parse_request,
)
from .response import HTTPResponse, ResponseWriter
from .status_codes import HTTPStatus

__all__ = [
    # Requests
    "RequestParser",
    "HTTPRequest",
    "Headers",
    "RequestLine",
    "ParseError",
    "ParseResult",
    "parse_request",
    # Responses
    "HTTPResponse",
    "ResponseWriter",
    "HTTPStatus",
    "Compressor",
    # Content types
    "get_content_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
]
