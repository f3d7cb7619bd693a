"""
=============================================================================
WEB SERVER
=============================================================================

Wires the pieces together and owns the server's lifecycle.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌──────────────┐  accept   ┌────────────┐  submit   ┌──────────────┐
    │ SocketServer │ ────────► │ Connection │ ────────► │  ThreadPool  │
    └──────────────┘           └────────────┘           └──────┬───────┘
      (main thread)                                            │ worker
                                                               ▼
                                                   ┌────────────────────┐
                                                   │ ConnectionHandler  │
                                                   │  parse → route →   │
                                                   │  respond → log     │
                                                   └────────────────────┘

The accept loop only accepts and submits. All blocking work (socket
reads and writes, file reads, log appends) happens on the connection's
worker.

=============================================================================
"""

import logging
from typing import Optional, Tuple

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .handler import ConnectionHandler


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Concurrent static-file HTTP/1.1 server.

    =========================================================================
    USAGE
    =========================================================================

        config = ServerConfig(port=8080, document_root="./StaticFiles")
        server = HTTPServer(config)
        server.run()          # Blocks until Ctrl+C / SIGTERM / stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Server configuration. Defaults are used if omitted.

        Raises:
            ConfigError: If the configuration is invalid.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._handler = ConnectionHandler(self.config)

    @property
    def handler(self) -> ConnectionHandler:
        return self._handler

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening on port 0."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, setup_logging: bool = True):
        """
        Start the server (blocking).

        Raises:
            OSError: If the listening socket cannot be bound.
        """
        if setup_logging:
            self._setup_logging()

        self._thread_pool.start()

        logger.info(f"Document root: {self._handler.resolver.document_root}")
        logger.info(f"Access logs: {self._handler.access_log.log_directory}")

        try:
            self._socket_server.start(self._dispatch, on_listening=self._print_startup_banner)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def stop(self):
        """Ask the accept loop to stop. Returns immediately."""
        self._socket_server.shutdown()

    def _print_startup_banner(self):
        host, port = self.address
        logger.info(
            f"{self.config.server_name} listening on http://{host}:{port} "
            f"(workers: {self.config.min_workers}-{self.config.max_workers or 'unbounded'})"
        )

    def _setup_logging(self):
        """Configure console logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("webserver").setLevel(level)

    def _shutdown(self):
        """
        Stop the worker pool.

        In-flight connections are not waited for: a client that never
        sends anything would hold shutdown forever. Workers are daemon
        threads and finish (or die with the process) on their own.
        """
        logger.info("Shutting down server...")
        self._thread_pool.shutdown(wait=False)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION DISPATCH
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """
        Hand a connection to the pool. Runs on the accept loop, so it
        must not block.
        """
        try:
            self._thread_pool.submit(self._handler.handle, args=(conn,))
        except RuntimeError as e:
            # Pool already shutting down
            logger.warning(f"[{conn.id}] Dropping connection from {conn.client_ip}: {e}")
            conn.close()
