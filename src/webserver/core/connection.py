"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with the small API the connection handler
needs: a buffered reader for parsing, sendall() for the response, and a
graceful close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP does NOT preserve message boundaries. A request sent as

    POST /form HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello

may arrive as one recv() or as five. The parser never sees recv() chunks
directly: it reads through a buffered file object from
socket.makefile("rb"), which gives it

    readline(limit)  - up to and including the next "\n"
    read(n)          - up to n bytes, fewer only at end of stream

and takes care of stitching chunks back together.

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

There is no keep-alive. Each connection carries exactly one request and
one response, then is closed:

    accept ──► read request ──► send response ──► close
                                                  │
                                     shutdown(SHUT_WR)  (send FIN)
                                     drain (0.5s / 64 KiB at most)
                                     close()

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Tuple


logger = logging.getLogger(__name__)

# Total budget for reading leftover client bytes while closing
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The accepted client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        read_timeout: Seconds a single read may block; None blocks forever.
        reader: Buffered binary reader over the socket.
        closed: True once close() has run.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    created_at: float = field(default_factory=time.time)
    read_timeout: Optional[float] = None

    reader: Optional[BinaryIO] = field(default=None, repr=False)
    closed: bool = False

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.read_timeout:
            self.socket.settimeout(self.read_timeout)

        if self.reader is None:
            self.reader = self.socket.makefile("rb")

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so the whole response goes out; a plain send()
        may write only part of it when the socket buffer is full.

        Returns:
            True once everything was sent.

        Raises:
            OSError: Client disconnected (reset, broken pipe, timeout).
        """
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            raise

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection gracefully.

        1. Close the buffered reader (it holds a reference to the socket).
        2. shutdown(SHUT_WR): send FIN so the client sees end of response.
        3. Drain what the client still sends (DRAIN_TIMEOUT / DRAIN_LIMIT
           in total, however slowly it trickles in).
        4. close(): release the file descriptor.

        Safe to call more than once.
        """
        if self.closed:
            return

        try:
            if self.reader is not None:
                self.reader.close()
        except OSError:
            pass

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            self._drain()
        except OSError:
            pass  # Timeout or reset, we're closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.closed = True
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def _drain(self):
        """
        Read and discard what the client still sends, within DRAIN_TIMEOUT
        seconds and DRAIN_LIMIT bytes in total. Stops early at EOF.
        """
        deadline = time.time() + DRAIN_TIMEOUT
        drained = 0
        while drained < DRAIN_LIMIT:
            remaining = deadline - time.time()
            if remaining <= 0:
                return
            self.socket.settimeout(remaining)
            chunk = self.socket.recv(4096)
            if not chunk:
                return
            drained += len(chunk)

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows:

            with conn:
                result = parser.parse(conn.reader, conn.address)
                ...
            # Connection closed here, even on error
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
