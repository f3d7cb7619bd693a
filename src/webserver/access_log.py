"""
=============================================================================
ACCESS LOG
=============================================================================

Appends one line per handled request to a daily file:

    <log_directory>/access_2026-10-19.log

    2026-10-19 14:03:07 | 127.0.0.1 | GET /index.html | 200
    2026-10-19 14:03:09 | 127.0.0.1 | POST /contact?lang=es | 200
    2026-10-19 14:03:12 | 10.0.0.7 | PUT /x | 405
    2026-10-19 14:03:15 | 10.0.0.9 | UNKNOWN ERROR | 500

The date in the file name and the timestamp use the local calendar, and
the status is the one actually sent to the client.

=============================================================================
CONCURRENT APPENDS
=============================================================================

Every worker thread appends to the same file. Two lines must never
interleave:

    2026-10-19 14:03:07 | 127.0.2026-10-19 14:03:07 | 10.0.0.7 | ...

Each line is written with ONE os.write() on a descriptor opened with
O_APPEND. On POSIX the kernel positions and writes an O_APPEND write in
a single step, so small writes from different threads (or processes)
land whole. Windows gives no such guarantee; there a per-file lock
serialises the writes inside this process.

=============================================================================
FAILURES
=============================================================================

A full disk or an unwritable directory must not take the request down
with it. OSError is logged on the console and swallowed; the response
has already been sent by the time we get here.

=============================================================================
"""

import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Union


logger = logging.getLogger(__name__)

# Each entry is mirrored here at INFO, so the console shows traffic too
access_logger = logging.getLogger("webserver.access")


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
FILE_DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class AccessLogEntry:
    """
    One access log line.

    Attributes:
        timestamp: When the request was handled (local time).
        client_ip: Peer IP address.
        method: Request method as sent, or "UNKNOWN".
        target: Request target including the query string, or "ERROR".
        status_code: HTTP status sent.
    """
    timestamp: datetime
    client_ip: str
    method: str
    target: str
    status_code: int

    def to_text(self) -> str:
        """
        Format: <YYYY-MM-DD HH:MM:SS> | <ip> | <METHOD> <target> | <status>
        """
        return (
            f"{self.timestamp.strftime(TIMESTAMP_FORMAT)} | {self.client_ip} | "
            f"{self.method} {self.target} | {int(self.status_code)}"
        )

    @classmethod
    def unknown_error(cls, timestamp: datetime, client_ip: str) -> "AccessLogEntry":
        """Entry for a connection that failed before a request could be handled."""
        return cls(timestamp, client_ip, "UNKNOWN", "ERROR", 500)


class AccessLogger:
    """
    Daily access log writer.

    Usage:
        access_log = AccessLogger("./Logs")
        access_log.record("127.0.0.1", "GET", "/index.html", 200)
    """

    def __init__(
        self,
        log_directory: Union[str, Path],
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            log_directory: Where the daily files go. Created if missing.
            clock: Source of local timestamps; tests pass a fixed one.
        """
        self.log_directory = Path(log_directory)
        self.clock = clock

        # Only needed where O_APPEND writes are not atomic
        self._needs_lock = os.name == "nt"
        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        try:
            self.log_directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create log directory {self.log_directory}: {e}")

    def path_for(self, timestamp: datetime) -> Path:
        """access_YYYY-MM-DD.log for the timestamp's calendar date."""
        return self.log_directory / f"access_{timestamp.strftime(FILE_DATE_FORMAT)}.log"

    def record(
        self,
        client_ip: str,
        method: str,
        target: str,
        status_code: int,
        timestamp: Optional[datetime] = None,
    ) -> AccessLogEntry:
        """Build an entry stamped now (or at `timestamp`) and log it."""
        entry = AccessLogEntry(
            timestamp=timestamp or self.clock(),
            client_ip=client_ip,
            method=method,
            target=target,
            status_code=int(status_code),
        )
        self.log(entry)
        return entry

    def record_unknown_error(self, client_ip: str) -> AccessLogEntry:
        entry = AccessLogEntry.unknown_error(self.clock(), client_ip)
        self.log(entry)
        return entry

    def log(self, entry: AccessLogEntry) -> bool:
        """
        Append an entry to its daily file.

        Returns:
            True if the line was written, False if writing failed (the
            failure is logged, never raised).
        """
        line = entry.to_text()
        access_logger.info(line)

        path = self.path_for(entry.timestamp)
        data = (line + "\n").encode("utf-8")

        try:
            if self._needs_lock:
                with self._lock_for(path):
                    self._append(path, data)
            else:
                self._append(path, data)
        except OSError as e:
            logger.error(f"Error writing access log {path}: {e}")
            return False

        return True

    def _append(self, path: Path, data: bytes):
        flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND | getattr(os, "O_BINARY", 0)
        fd = os.open(path, flags, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(path)
            if lock is None:
                lock = self._locks[path] = threading.Lock()
            return lock
