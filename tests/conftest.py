"""
pytest configuration and fixtures.
"""

import socket
import threading
from datetime import datetime
from typing import Dict, Generator, Tuple

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from webserver import HTTPServer, ServerConfig
from webserver.access_log import AccessLogger
from webserver.core.connection import Connection


FIXED_NOW = datetime(2026, 10, 19, 14, 3, 7)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /docs/page.html?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, deflate\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a short body."""
    body = b"hello"
    head = (
        b"POST /anything HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: text/plain\r\n"
    )
    return head + f"Content-Length: {len(body)}\r\n".encode() + b"\r\n" + body


@pytest.fixture
def doc_root(tmp_path: Path) -> Path:
    """Document root with an index page."""
    root = tmp_path / "StaticFiles"
    root.mkdir()
    (root / "index.html").write_bytes(b"hi")
    return root


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "Logs"


@pytest.fixture
def config(doc_root: Path, log_dir: Path) -> ServerConfig:
    """Test server configuration bound to localhost on a free port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(doc_root),
        log_directory=str(log_dir),
        read_timeout=5.0,
        min_workers=2,
        log_level="WARNING",
    )


@pytest.fixture
def access_log(log_dir: Path) -> AccessLogger:
    """Access logger with a fixed clock."""
    return AccessLogger(log_dir, clock=lambda: FIXED_NOW)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# ─────────────────────────────────────────────────────────────────────────────
# In-process connections
# ─────────────────────────────────────────────────────────────────────────────

class ClientPair:
    """
    A Connection whose peer is a plain socket held by the test.

    Built on socket.socketpair(), so no listening socket is needed.
    """

    def __init__(self, address: Tuple[str, int] = ("127.0.0.1", 50000)):
        server_sock, self.client = socket.socketpair()
        self.client.settimeout(5.0)
        self.conn = Connection(socket=server_sock, address=address, read_timeout=5.0)

    def send(self, data: bytes, close_write: bool = True):
        self.client.sendall(data)
        if close_write:
            self.client.shutdown(socket.SHUT_WR)

    def receive_all(self) -> bytes:
        chunks = []
        while True:
            chunk = self.client.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def close(self):
        self.client.close()
        self.conn.close()


@pytest.fixture
def client_pair() -> Generator[ClientPair, None, None]:
    pair = ClientPair()
    yield pair
    pair.close()


def split_response(raw: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """
    Split raw response bytes into (status line, headers, body).

    Header names keep their case; the order of the dict is wire order.
    """
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("utf-8").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body


def http_exchange(address: Tuple[str, int], request: bytes) -> bytes:
    """Send a request over TCP and read until the server closes."""
    with socket.create_connection(address, timeout=5.0) as sock:
        sock.sendall(request)
        chunks = []
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


# ─────────────────────────────────────────────────────────────────────────────
# Background server
# ─────────────────────────────────────────────────────────────────────────────

class ServerThread:
    """Runs an HTTPServer in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.address

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A server listening on 127.0.0.1 with a temporary document root."""
    server_thread = ServerThread(HTTPServer(config))
    server_thread.start()

    yield server_thread

    server_thread.stop()
