"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Runs one connection from first byte to close, on a worker thread.

=============================================================================
CONNECTION STATES
=============================================================================

    AWAIT_REQUEST_LINE ──empty/malformed──────────────────────────┐
            │                                                      │
            ▼                                                      │
    PARSING_HEADERS  (headers, then the body for POST)             │
            │                                                      │
            ├──► ROUTING_GET    StaticFileResolver                 │
            ├──► ROUTING_POST   PostHandler                        │
            └──► ROUTING_OTHER  405                                │
                      │                                            │
                      ▼                                            │
                 RESPONDING   ResponseWriter → socket              │
                      │                                            │
                      ▼                                            │
                 LOGGING      AccessLogger                         │
                      │                                            │
                      ▼                                            ▼
                 CLOSED  ◄─────────────────────────────────────────┘

CLOSED is always reached: the connection is used as a context manager.

=============================================================================
WHAT GOES WRONG, AND WHAT HAPPENS
=============================================================================

    ┌─────────────────────────────┬───────────────────┬──────────────────┐
    │ Situation                   │ Client gets       │ Access log       │
    ├─────────────────────────────┼───────────────────┼──────────────────┤
    │ Nothing sent / blank line   │ nothing           │ nothing          │
    │ Malformed request line      │ nothing           │ nothing          │
    │ GET, file missing/escaping  │ 404 page          │ ... | 404        │
    │ Method not GET or POST      │ 405               │ ... | 405        │
    │ Exception while routing     │ 500               │ ... | 500        │
    │ Socket error / timeout      │ (whatever got out)│ UNKNOWN ERROR|500│
    └─────────────────────────────┴───────────────────┴──────────────────┘

Nothing ever propagates out of handle(); the accept loop and the worker
pool never see a connection's failure.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union

from .access_log import AccessLogEntry, AccessLogger
from .config import ServerConfig
from .core.connection import Connection
from .handlers.post import PostHandler
from .handlers.static import StaticFile, StaticFileResolver
from .http.request import HTTPRequest, ParseError, RequestParser
from .http.response import (
    INTERNAL_ERROR_TEXT,
    METHOD_NOT_ALLOWED_TEXT,
    NOT_FOUND_PAGE,
    HTTPResponse,
    ResponseWriter,
)
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Where a connection is in its single request/response exchange."""
    AWAIT_REQUEST_LINE = "await_request_line"
    PARSING_HEADERS = "parsing_headers"
    ROUTING_GET = "routing_get"
    ROUTING_POST = "routing_post"
    ROUTING_OTHER = "routing_other"
    RESPONDING = "responding"
    LOGGING = "logging"
    CLOSED = "closed"


@dataclass
class Exchange:
    """
    Record of what happened on one connection.

    handle() returns it; the server ignores it, tests inspect it.
    """
    connection_id: str
    states: List[ConnectionState] = field(default_factory=list)
    request: Optional[HTTPRequest] = None
    parse_error: Optional[ParseError] = None
    response: Optional[HTTPResponse] = None
    log_entry: Optional[AccessLogEntry] = None
    error: Optional[BaseException] = None

    @property
    def state(self) -> Optional[ConnectionState]:
        return self.states[-1] if self.states else None

    def advance(self, state: ConnectionState):
        logger.debug(f"[{self.connection_id}] -> {state.value}")
        self.states.append(state)


# (status, content type, body, accept-encoding to honour)
Reply = Tuple[HTTPStatus, str, Union[str, bytes], Optional[str]]


class ConnectionHandler:
    """
    Parses, routes, responds and logs for one connection at a time.

    One instance is shared by all workers. It holds no per-connection
    state, so handle() may run on many threads at once.

    Usage:
        handler = ConnectionHandler(config)
        pool.submit(handler.handle, args=(conn,))
    """

    def __init__(
        self,
        config: ServerConfig,
        parser: Optional[RequestParser] = None,
        resolver: Optional[StaticFileResolver] = None,
        post_handler: Optional[PostHandler] = None,
        writer: Optional[ResponseWriter] = None,
        access_log: Optional[AccessLogger] = None,
    ):
        self.config = config
        self.parser = parser or RequestParser(
            max_line_length=config.max_line_length,
            buffer_size=config.buffer_size,
        )
        self.resolver = resolver or StaticFileResolver(config.document_root)
        self.post_handler = post_handler or PostHandler()
        self.writer = writer or ResponseWriter()
        self.access_log = access_log or AccessLogger(config.log_directory)

    def handle(self, conn: Connection) -> Exchange:
        """
        Serve one connection and close it.

        Never raises: faults are logged and, once past parsing, recorded
        in the access log.
        """
        exchange = Exchange(conn.id)

        with conn:
            try:
                self._serve(conn, exchange)
            except Exception as e:
                exchange.error = e
                logger.error(f"[{conn.id}] Error handling connection from {conn.client_ip}: {e}")
                if exchange.log_entry is None:
                    exchange.log_entry = self.access_log.record_unknown_error(conn.client_ip)

        exchange.advance(ConnectionState.CLOSED)
        return exchange

    def _serve(self, conn: Connection, exchange: Exchange):
        # ─────────────────────────────────────────────────────────────────
        # REQUEST LINE
        # ─────────────────────────────────────────────────────────────────
        exchange.advance(ConnectionState.AWAIT_REQUEST_LINE)
        line = self.parser.read_request_line(conn.reader)

        if line is ParseError.EMPTY_REQUEST:
            exchange.parse_error = line
            logger.debug(f"[{conn.id}] Empty request from {conn.client_ip}")
            return

        if line is ParseError.MALFORMED_REQUEST:
            exchange.parse_error = line
            logger.warning(f"[{conn.id}] Malformed request line from {conn.client_ip}")
            return

        # ─────────────────────────────────────────────────────────────────
        # HEADERS AND BODY
        # ─────────────────────────────────────────────────────────────────
        exchange.advance(ConnectionState.PARSING_HEADERS)
        headers = self.parser.read_headers(conn.reader)
        body, truncated = self.parser.read_body(conn.reader, line.method, headers)
        request = self.parser.build(line, headers, body, truncated, conn.address)
        exchange.request = request

        logger.debug(f"[{conn.id}] {request.method} {request.raw_target} from {conn.client_ip}")

        # ─────────────────────────────────────────────────────────────────
        # ROUTE, RESPOND, LOG
        # ─────────────────────────────────────────────────────────────────
        status, content_type, reply_body, accept_encoding = self._route(conn, request, exchange)

        exchange.advance(ConnectionState.RESPONDING)
        exchange.response = self.writer.write(
            conn, status, content_type, reply_body, accept_encoding
        )

        exchange.advance(ConnectionState.LOGGING)
        exchange.log_entry = self.access_log.record(
            conn.client_ip, request.method, request.raw_target, exchange.response.status
        )

    def _route(self, conn: Connection, request: HTTPRequest, exchange: Exchange) -> Reply:
        """Pick the reply for a request. Any exception becomes a 500."""
        try:
            if request.method == "GET":
                exchange.advance(ConnectionState.ROUTING_GET)
                return self._route_get(request)

            if request.method == "POST":
                exchange.advance(ConnectionState.ROUTING_POST)
                text = self.post_handler.handle(request)
                return (HTTPStatus.OK, "text/plain", text, None)

            exchange.advance(ConnectionState.ROUTING_OTHER)
            return (HTTPStatus.METHOD_NOT_ALLOWED, "text/plain", METHOD_NOT_ALLOWED_TEXT, None)

        except Exception as e:
            logger.exception(f"[{conn.id}] Error routing {request.method} {request.path}: {e}")
            return (HTTPStatus.INTERNAL_SERVER_ERROR, "text/plain", INTERNAL_ERROR_TEXT, None)

    def _route_get(self, request: HTTPRequest) -> Reply:
        result = self.resolver.resolve(request.path)

        if isinstance(result, StaticFile):
            return (HTTPStatus.OK, result.content_type, result.content, request.accept_encoding)

        # The 404 page is never compressed
        return (HTTPStatus.NOT_FOUND, "text/html", NOT_FOUND_PAGE, None)
