"""
Unit tests for HTTP response framing and writing.
"""

from conftest import split_response

from webserver.http.compression import Compressor
from webserver.http.response import (
    NOT_FOUND_PAGE,
    HTTPResponse,
    ResponseWriter,
)
from webserver.http.status_codes import HTTPStatus


class RecordingConnection:
    """Stands in for Connection; keeps whatever is sent."""

    def __init__(self):
        self.sent = b""

    def send_response(self, data: bytes) -> bool:
        self.sent += data
        return True


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.NOT_FOUND)
        assert response.status_line == "HTTP/1.1 404 Not Found"

        response = HTTPResponse(status=HTTPStatus.METHOD_NOT_ALLOWED)
        assert response.status_line == "HTTP/1.1 405 Method Not Allowed"

    def test_to_bytes_exact_framing(self):
        """Test the complete wire format, header order included."""
        response = HTTPResponse(status=HTTPStatus.OK, content_type="text/html", body=b"hi")

        assert response.to_bytes() == (
            b"HTTP/1.1 200 OK\r\n"
            b"Content-Type: text/html\r\n"
            b"Content-Length: 2\r\n"
            b"Connection: close\r\n"
            b"\r\n"
            b"hi"
        )

    def test_content_encoding_before_connection(self):
        response = HTTPResponse(body=b"x", content_encoding="gzip")

        _, headers, _ = split_response(response.to_bytes())

        assert list(headers) == [
            "Content-Type", "Content-Length", "Content-Encoding", "Connection",
        ]
        assert headers["Content-Encoding"] == "gzip"

    def test_no_content_encoding_when_uncompressed(self):
        _, headers, _ = split_response(HTTPResponse(body=b"x").to_bytes())

        assert "Content-Encoding" not in headers

    def test_empty_body(self):
        _, headers, body = split_response(HTTPResponse().to_bytes())

        assert headers["Content-Length"] == "0"
        assert body == b""


class TestResponseWriter:
    """Tests for ResponseWriter."""

    def test_small_body_not_compressed(self):
        """Test that bodies of 1024 bytes or less are sent as-is."""
        writer = ResponseWriter()
        body = b"a" * 1024

        response = writer.build(HTTPStatus.OK, "text/html", body, "gzip")

        assert response.content_encoding is None
        assert response.body == body

    def test_large_text_body_compressed(self):
        """Test that a 1025-byte text body is gzipped when accepted."""
        writer = ResponseWriter()
        body = b"a" * 1025

        response = writer.build(HTTPStatus.OK, "text/html", body, "gzip, deflate")

        assert response.content_encoding == "gzip"
        assert response.content_length == len(response.body)
        assert Compressor().decompress(response.body) == body

    def test_content_length_counts_compressed_bytes(self):
        writer = ResponseWriter()
        conn = RecordingConnection()

        writer.write(conn, HTTPStatus.OK, "text/css", b"body{}" * 500, "gzip")

        _, headers, body = split_response(conn.sent)
        assert int(headers["Content-Length"]) == len(body)
        assert headers["Content-Encoding"] == "gzip"

    def test_no_accept_encoding_no_compression(self):
        writer = ResponseWriter()

        response = writer.build(HTTPStatus.OK, "text/html", b"a" * 5000, None)

        assert response.content_encoding is None

    def test_binary_type_not_compressed(self):
        writer = ResponseWriter()

        response = writer.build(HTTPStatus.OK, "image/png", b"a" * 5000, "gzip")

        assert response.content_encoding is None

    def test_string_body_is_utf8(self):
        writer = ResponseWriter()

        response = writer.build(HTTPStatus.METHOD_NOT_ALLOWED, "text/plain", "Método no permitido")

        assert response.body == "Método no permitido".encode("utf-8")
        assert response.content_length == len("Método no permitido".encode("utf-8"))

    def test_write_returns_sent_response(self):
        writer = ResponseWriter()
        conn = RecordingConnection()

        response = writer.write(conn, HTTPStatus.NOT_FOUND, "text/html", NOT_FOUND_PAGE)

        assert conn.sent == response.to_bytes()
        assert conn.sent.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_identical_responses_for_identical_input(self):
        """Compression is deterministic."""
        writer = ResponseWriter()
        body = b"<p>repeat</p>" * 200

        first = writer.build(HTTPStatus.OK, "text/html", body, "gzip").to_bytes()
        second = writer.build(HTTPStatus.OK, "text/html", body, "gzip").to_bytes()

        assert first == second


class TestNotFoundPage:
    def test_page_content(self):
        assert "404 - Página No Encontrada" in NOT_FOUND_PAGE
        assert "<title>404 No Encontrado</title>" in NOT_FOUND_PAGE
        assert "El archivo solicitado no existe en el servidor." in NOT_FOUND_PAGE
