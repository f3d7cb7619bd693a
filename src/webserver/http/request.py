"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Reads an HTTP/1.1 request straight off a blocking byte stream and turns it
into a structured HTTPRequest.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  REQUEST LINE                                                        │
    │      POST /contact?lang=es HTTP/1.1\r\n                              │
    │      ─┬── ───────┬──────── ───┬────                                  │
    │       │          │            │                                      │
    │     Method    Target       Version                                   │
    │                  │                                                   │
    │          ┌───────┴────────┐                                          │
    │        Path           Query string                                   │
    │      /contact           lang=es                                      │
    │                                                                      │
    │  HEADERS (one per line, until an empty line)                         │
    │      Host: localhost:8080\r\n                                        │
    │      Accept-Encoding: gzip, deflate\r\n                              │
    │      Content-Length: 5\r\n                                           │
    │      \r\n                                                            │
    │                                                                      │
    │  BODY (POST only, exactly Content-Length BYTES - not lines!)         │
    │      hello                                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Both "\r\n" and a bare "\n" are accepted as line terminators.

=============================================================================
THREE READING STAGES
=============================================================================

The parser reads in three stages so the connection handler can track
which one it is in:

    read_request_line()  ──►  read_headers()  ──►  read_body()
          │                        │                    │
     EMPTY_REQUEST             (never fails)       short read → body_truncated
     MALFORMED_REQUEST

parse() runs all three and wraps the outcome in a ParseResult.

=============================================================================
FAILURES ARE VALUES
=============================================================================

Nothing in here raises for bad input. A parse either yields a request or
one of the ParseError kinds:

    EMPTY_REQUEST      Client connected and sent nothing (or a blank line).
                       Not an error - the connection is just closed.

    MALFORMED_REQUEST  Request line with fewer than two tokens, or one
                       longer than max_line_length. Dropped silently.

A body shorter than its Content-Length is NOT a failure: the bytes that
did arrive are kept and HTTPRequest.body_truncated is set.

Socket-level faults (timeouts, resets) still surface as exceptions from
the stream; those belong to the connection handler.

=============================================================================
"""

import io
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl


logger = logging.getLogger(__name__)


class ParseError(Enum):
    """Ways a request can fail to parse."""
    EMPTY_REQUEST = "empty_request"
    MALFORMED_REQUEST = "malformed_request"


class Headers(Mapping[str, str]):
    """
    Ordered, case-insensitive header mapping.

    HTTP header names are case-insensitive (RFC 7230), so lookups ignore
    case while iteration keeps the original spelling and arrival order.

    Duplicates: the FIRST occurrence wins. Later lines with the same name
    are ignored, so "Accept-Encoding" is whatever the client sent first.

        >>> headers = Headers([("Content-Type", "text/html"), ("content-type", "x")])
        >>> headers["CONTENT-TYPE"]
        'text/html'
        >>> list(headers)
        ['Content-Type']
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        # lowercase name → (original name, value)
        self._items: Dict[str, Tuple[str, str]] = {}
        for name, value in items or []:
            self.add(name, value)

    def add(self, name: str, value: str) -> bool:
        """
        Add a header unless one with the same name is already present.

        Returns:
            True if stored, False if it was a duplicate.
        """
        key = name.lower()
        if key in self._items:
            return False
        self._items[key] = (name, value)
        return True

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({list(self.items())!r})"


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Built once per connection by RequestParser and never modified
    afterwards (frozen dataclass).

    Attributes:
        method:          As sent; no case folding ("get" is not "GET").
        path:            Target up to the first "?". Verbatim - no
                         percent-decoding, no ".." normalisation.
        raw_target:      The full target including the query string.
                         This is what the access log records.
        version:         Third token of the request line, "" if absent.
        headers:         Case-insensitive, first occurrence wins.
        query_params:    "a=1&b=2" → {"a": "1", "b": "2"}, first wins.
        body:            Raw body bytes (POST only).
        body_truncated:  Client closed before sending Content-Length bytes.
        client_address:  (ip, port) of the peer.
    """

    method: str
    path: str
    raw_target: str = ""
    version: str = ""
    headers: Headers = field(default_factory=Headers)
    query_params: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    body_truncated: bool = False
    client_address: Tuple[str, int] = ("", 0)

    @property
    def query_string(self) -> str:
        """Everything after the first "?" in the target, or ""."""
        _, _, query = self.raw_target.partition("?")
        return query

    @property
    def accept_encoding(self) -> Optional[str]:
        """The client's Accept-Encoding value, None if not sent."""
        return self.headers.get("Accept-Encoding")

    @property
    def content_length(self) -> Optional[int]:
        """
        Content-Length as a non-negative int.

        None if the header is missing or is not a plain decimal number
        ("abc", "-5" and "+5" all give None).
        """
        return parse_content_length(self.headers.get("Content-Length"))


@dataclass(frozen=True)
class RequestLine:
    """The three tokens of the first line, with the target already split."""
    method: str
    raw_target: str
    path: str
    query_params: Dict[str, str]
    version: str


@dataclass(frozen=True)
class ParseResult:
    """
    Tagged outcome of parsing one request.

    Exactly one of `request` / `error` is set:

        result = parser.parse(stream)
        if result.ok:
            handle(result.request)
        elif result.error is ParseError.EMPTY_REQUEST:
            ...
    """
    request: Optional[HTTPRequest] = None
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.request is not None


_DIGITS = re.compile(r"^[0-9]+$")


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """Parse a Content-Length value; None unless it is all decimal digits."""
    if value is None:
        return None
    value = value.strip()
    if not _DIGITS.match(value):
        return None
    return int(value)


class RequestParser:
    """
    Parses a request from a blocking binary stream.

    The stream needs readline(limit) and read(n). In production it is
    socket.makefile("rb"); in tests an io.BytesIO works just as well.

    Usage:
        parser = RequestParser()
        result = parser.parse(conn.reader, conn.address)
    """

    def __init__(self, max_line_length: int = 65536, buffer_size: int = 8192):
        """
        Args:
            max_line_length: Longest request or header line accepted, in
                             bytes. Stops a client from making us buffer
                             an endless line.
            buffer_size: Chunk size used when reading the body.
        """
        self.max_line_length = max_line_length
        self.buffer_size = buffer_size

    def parse(
        self,
        stream: BinaryIO,
        client_address: Tuple[str, int] = ("", 0),
    ) -> ParseResult:
        """
        Read and parse a whole request.

        Returns:
            ParseResult holding the request or the ParseError kind.
        """
        line = self.read_request_line(stream)
        if isinstance(line, ParseError):
            return ParseResult(error=line)

        headers = self.read_headers(stream)
        body, truncated = self.read_body(stream, line.method, headers)

        return ParseResult(request=self.build(line, headers, body, truncated, client_address))

    def build(
        self,
        line: RequestLine,
        headers: Headers,
        body: bytes,
        truncated: bool,
        client_address: Tuple[str, int],
    ) -> HTTPRequest:
        """Assemble the staged pieces into an HTTPRequest."""
        return HTTPRequest(
            method=line.method,
            path=line.path,
            raw_target=line.raw_target,
            version=line.version,
            headers=headers,
            query_params=line.query_params,
            body=body,
            body_truncated=truncated,
            client_address=client_address,
        )

    # =========================================================================
    # STAGE 1: REQUEST LINE
    # =========================================================================

    def read_request_line(self, stream: BinaryIO) -> Union[RequestLine, ParseError]:
        """
        Read and split the request line.

        Returns:
            RequestLine, or ParseError.EMPTY_REQUEST / MALFORMED_REQUEST.
        """
        line = self._read_line(stream)
        if line is None:
            return ParseError.MALFORMED_REQUEST
        if not line:
            return ParseError.EMPTY_REQUEST

        # "GET /index.html HTTP/1.1" → ["GET", "/index.html", "HTTP/1.1"]
        tokens = line.split()
        if len(tokens) < 2:
            return ParseError.MALFORMED_REQUEST

        method, raw_target = tokens[0], tokens[1]
        version = tokens[2] if len(tokens) > 2 else ""

        path, _, query = raw_target.partition("?")

        return RequestLine(
            method=method,
            raw_target=raw_target,
            path=path,
            query_params=self._parse_query(query),
            version=version,
        )

    def _parse_query(self, query: str) -> Dict[str, str]:
        """
        Split "a=1&b=&c" on & and = boundaries.

        Blank values are kept; the first occurrence of a name wins.
        """
        params: Dict[str, str] = {}
        for name, value in parse_qsl(query, keep_blank_values=True):
            params.setdefault(name, value)
        return params

    # =========================================================================
    # STAGE 2: HEADERS
    # =========================================================================

    def read_headers(self, stream: BinaryIO) -> Headers:
        """
        Read header lines up to the empty line (or end of stream).

        Each line is split on its FIRST colon, so values may contain
        colons ("Host: localhost:8080"). Lines with no colon, or with the
        colon in position 0, are skipped without disturbing the others.
        An over-long line is skipped the same way.
        """
        headers = Headers()

        while True:
            line = self._read_line(stream)
            if line is None:
                continue
            if not line:
                # Blank line or EOF ends the header block
                break

            separator = line.find(":")
            if separator <= 0:
                logger.debug(f"Skipping malformed header line: {line!r}")
                continue

            name = line[:separator].strip()
            value = line[separator + 1:].strip()
            if not headers.add(name, value):
                logger.debug(f"Ignoring duplicate header: {name}")

        return headers

    # =========================================================================
    # STAGE 3: BODY
    # =========================================================================

    def read_body(self, stream: BinaryIO, method: str, headers: Headers) -> Tuple[bytes, bool]:
        """
        Read exactly Content-Length bytes for a POST.

        Returns:
            (body, truncated). truncated is True when the stream ended
            before Content-Length bytes arrived.
        """
        if method != "POST":
            return b"", False

        expected = parse_content_length(headers.get("Content-Length"))
        if not expected:
            return b"", False

        chunks = []
        received = 0
        while received < expected:
            chunk = stream.read(min(self.buffer_size, expected - received))
            if not chunk:
                break  # Client closed mid-body
            chunks.append(chunk)
            received += len(chunk)

        body = b"".join(chunks)
        truncated = received < expected
        if truncated:
            logger.warning(f"Truncated body: expected {expected} bytes, got {received}")

        return body, truncated

    # =========================================================================
    # LINE READING
    # =========================================================================

    def _read_line(self, stream: BinaryIO) -> Optional[str]:
        """
        Read one line and strip its terminator.

        Returns:
            The decoded line, "" for a blank line or at end of stream,
            or None when the line exceeds max_line_length. The rest of
            an over-long line is consumed, so the stream stays at the
            start of the next line.
        """
        # Room for the line plus a CRLF terminator
        raw = stream.readline(self.max_line_length + 2)
        if not raw:
            return ""

        complete = raw.endswith(b"\n")

        # Tolerate both CRLF and bare LF
        if raw.endswith(b"\n"):
            raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]

        if len(raw) > self.max_line_length:
            logger.warning(f"Line exceeds {self.max_line_length} bytes")
            if not complete:
                self._discard_line(stream)
            return None

        return raw.decode("utf-8", errors="replace")

    def _discard_line(self, stream: BinaryIO):
        """Skip up to and including the next line terminator."""
        while True:
            chunk = stream.readline(self.buffer_size)
            if not chunk or chunk.endswith(b"\n"):
                return


def parse_request(data: bytes, client_address: Tuple[str, int] = ("", 0)) -> ParseResult:
    """
    Parse a complete request held in memory.

    Convenience wrapper for tests and tools; the server parses straight
    from the socket.
    """
    return RequestParser().parse(io.BytesIO(data), client_address)
