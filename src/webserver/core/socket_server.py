"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

The listener: binds the server socket and accepts client connections.
It never reads from a client itself; each accepted socket is wrapped in a
Connection and handed to a callback (HTTPServer submits it to the pool).

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket() ──► setsockopt() ──► bind() ──► listen() ──► accept() loop
                  SO_REUSEADDR                              │
                  TCP_NODELAY                               ▼
                                                   Connection(client_sock)
                                                            │
                                                            ▼
                                                   callback(conn)

bind() is the only step that may fail fatally ("Address already in use",
"Permission denied"). Its OSError is logged and re-raised; everything
after it is kept alive by the loop.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() on a blocking socket waits forever, so the loop could never
notice a shutdown request. The listening socket gets a 1-second timeout:

    while running:
        try:
            accept()          # at most 1s
        except timeout:
            continue          # re-check running

shutdown() just clears the flag; the loop exits within a second.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP listener.

    Usage:
        def on_connection(conn: Connection):
            pool.submit(handler.handle, args=(conn,))

        server = SocketServer(config)
        server.start(on_connection)  # Blocks until shutdown()
    """

    ACCEPT_TIMEOUT = 1.0

    def __init__(self, config: ServerConfig):
        """
        Args:
            config: Supplies host, port, backlog and read_timeout.

        The socket is created lazily in start().
        """
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (host, port) actually bound.

        Differs from the configured port when port 0 asked the OS to
        pick one.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return (host, port)
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create and configure the listening socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # Restarting the server must not fail on ports in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # Responses are written in one sendall(), send them immediately
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        sock.settimeout(self.ACCEPT_TIMEOUT)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that stop the accept loop.

        Python only allows signal handlers in the main thread, so a server
        started from a worker thread (as the test suite does) skips this
        and is stopped with shutdown().
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        on_listening: Optional[Callable[[], None]] = None,
    ):
        """
        Bind, listen, and accept connections until shutdown().

        Args:
            connection_handler: Called with every accepted Connection.
                                Must return quickly; it runs on the
                                accept loop.
            on_listening: Called once the socket is listening.

        Raises:
            OSError: If the socket cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()
        if on_listening is not None:
            on_listening()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    read_timeout=self.config.read_timeout,
                )
            except OSError as e:
                logger.warning(f"Could not set up connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            connection_handler(conn)

    def shutdown(self):
        """
        Stop the accept loop. Safe to call from any thread, a signal
        handler, or more than once.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        self._running = False
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
