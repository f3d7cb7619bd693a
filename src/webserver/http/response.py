"""
=============================================================================
HTTP RESPONSE WRITER
=============================================================================

Frames HTTP/1.1 responses and writes them to a connection.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

Every response this server sends has exactly this shape, in this order:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  STATUS LINE                                                         │
    │      HTTP/1.1 200 OK\r\n                                             │
    │      ────┬─── ─┬─ ─┬─                                                │
    │      Version  Code Phrase                                            │
    │                                                                      │
    │  HEADERS (fixed order)                                               │
    │      Content-Type: text/html\r\n                                     │
    │      Content-Length: 2\r\n          ← length of the bytes SENT       │
    │      Content-Encoding: gzip\r\n     ← only if compressed             │
    │      Connection: close\r\n          ← always; no keep-alive          │
    │                                                                      │
    │  EMPTY LINE                                                          │
    │      \r\n                                                            │
    │                                                                      │
    │  BODY                                                                │
    │      hi                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

There are no Date, Server or caching headers. Because every connection is
closed after one response, Content-Length is what tells the client the
body is complete; it is always computed from the final body, after any
compression.

=============================================================================
BUILD, THEN WRITE
=============================================================================

    ResponseWriter.build()  ── decide compression, produce HTTPResponse
    ResponseWriter.write()  ── build() + to_bytes() + conn.send_response()

build() is pure, so tests can inspect exactly what would go on the wire
without a socket.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .compression import Compressor
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Fixed response bodies
# ─────────────────────────────────────────────────────────────────────────────

NOT_FOUND_PAGE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>404 No Encontrado</title>
    <style>
        body { font-family: Arial, sans-serif; text-align: center; margin-top: 50px; }
        h1 { color: #d32f2f; }
    </style>
</head>
<body>
    <h1>404 - Página No Encontrada</h1>
    <p>El archivo solicitado no existe en el servidor.</p>
</body>
</html>"""

POST_ACCEPTED_TEXT = "Datos recibidos y logueados"
METHOD_NOT_ALLOWED_TEXT = "Método no permitido"
INTERNAL_ERROR_TEXT = "Error interno del servidor"


@dataclass
class HTTPResponse:
    """
    A response ready to be serialized.

    Attributes:
        status: HTTP status code.
        content_type: Value of the Content-Type header.
        body: The bytes that go on the wire (already compressed if
              content_encoding is set).
        content_encoding: "gzip" when the body was compressed, else None.
    """

    status: HTTPStatus = HTTPStatus.OK
    content_type: str = "text/plain"
    body: bytes = b""
    content_encoding: Optional[str] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 404 Not Found"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def content_length(self) -> int:
        return len(self.body)

    def header_lines(self):
        """Headers in the order they are written."""
        lines = [
            ("Content-Type", self.content_type),
            ("Content-Length", str(self.content_length)),
        ]
        if self.content_encoding:
            lines.append(("Content-Encoding", self.content_encoding))
        lines.append(("Connection", "close"))
        return lines

    def to_bytes(self) -> bytes:
        """
        Serialize for socket.sendall().

            HTTP/1.1 200 OK\\r\\n
            Content-Type: text/html\\r\\n
            Content-Length: 2\\r\\n
            Connection: close\\r\\n
            \\r\\n
            hi
        """
        lines = [self.status_line]
        for name, value in self.header_lines():
            lines.append(f"{name}: {value}")

        # Empty line separates headers from body
        lines.append("")

        head = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return head + self.body


class ResponseWriter:
    """
    Builds responses (compressing when appropriate) and sends them.

    Usage:
        writer = ResponseWriter()

        # Static file, may be gzipped
        writer.write(conn, HTTPStatus.OK, "text/html", content,
                     accept_encoding=request.accept_encoding)

        # Fixed text reply, never compressed
        writer.write(conn, HTTPStatus.METHOD_NOT_ALLOWED, "text/plain",
                     METHOD_NOT_ALLOWED_TEXT)
    """

    def __init__(self, compressor: Optional[Compressor] = None):
        self.compressor = compressor or Compressor()

    def build(
        self,
        status: HTTPStatus,
        content_type: str,
        body: Union[str, bytes],
        accept_encoding: Optional[str] = None,
    ) -> HTTPResponse:
        """
        Build a response, compressing the body if the policy allows.

        Args:
            status: Status code to send.
            content_type: Content-Type header value.
            body: Response body; str is encoded as UTF-8.
            accept_encoding: Client's Accept-Encoding, or None to never
                             compress this response.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")

        encoding = None
        if self.compressor.should_compress(body, content_type, accept_encoding):
            original = len(body)
            body = self.compressor.compress(body)
            encoding = self.compressor.token
            logger.debug(f"Compressed {content_type} body {original} -> {len(body)} bytes")

        return HTTPResponse(
            status=status,
            content_type=content_type,
            body=body,
            content_encoding=encoding,
        )

    def write(
        self,
        conn,
        status: HTTPStatus,
        content_type: str,
        body: Union[str, bytes],
        accept_encoding: Optional[str] = None,
    ) -> HTTPResponse:
        """
        Build a response and send it on `conn`.

        Returns:
            The response that was sent.

        Raises:
            OSError: If the client went away mid-write.
        """
        response = self.build(status, content_type, body, accept_encoding)
        conn.send_response(response.to_bytes())
        return response
