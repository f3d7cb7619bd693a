"""
Unit tests for the access log.
"""

import threading
from datetime import datetime
from pathlib import Path

from conftest import FIXED_NOW

from webserver.access_log import AccessLogEntry, AccessLogger


class TestAccessLogEntry:
    """Tests for line formatting."""

    def test_to_text(self):
        entry = AccessLogEntry(FIXED_NOW, "127.0.0.1", "GET", "/index.html", 200)

        assert entry.to_text() == "2026-10-19 14:03:07 | 127.0.0.1 | GET /index.html | 200"

    def test_target_keeps_query(self):
        entry = AccessLogEntry(FIXED_NOW, "10.0.0.1", "POST", "/form?lang=es", 200)

        assert entry.to_text().endswith("| POST /form?lang=es | 200")

    def test_unknown_error(self):
        entry = AccessLogEntry.unknown_error(FIXED_NOW, "10.0.0.9")

        assert entry.to_text() == "2026-10-19 14:03:07 | 10.0.0.9 | UNKNOWN ERROR | 500"


class TestAccessLogger:
    """Tests for AccessLogger."""

    def test_daily_file_name(self, access_log: AccessLogger, log_dir: Path):
        assert access_log.path_for(FIXED_NOW) == log_dir / "access_2026-10-19.log"

    def test_creates_directory(self, tmp_path: Path):
        target = tmp_path / "nested" / "Logs"

        AccessLogger(target)

        assert target.is_dir()

    def test_record_appends_line(self, access_log: AccessLogger, log_dir: Path):
        access_log.record("127.0.0.1", "GET", "/", 200)
        access_log.record("127.0.0.1", "PUT", "/x", 405)

        lines = (log_dir / "access_2026-10-19.log").read_text().splitlines()
        assert lines == [
            "2026-10-19 14:03:07 | 127.0.0.1 | GET / | 200",
            "2026-10-19 14:03:07 | 127.0.0.1 | PUT /x | 405",
        ]

    def test_records_true_status(self, access_log: AccessLogger, log_dir: Path):
        entry = access_log.record("1.2.3.4", "GET", "/missing.html", 404)

        assert entry.status_code == 404
        assert (log_dir / "access_2026-10-19.log").read_text().endswith("| 404\n")

    def test_entries_split_by_date(self, access_log: AccessLogger, log_dir: Path):
        access_log.record("a", "GET", "/", 200, timestamp=datetime(2026, 1, 1, 23, 59, 59))
        access_log.record("a", "GET", "/", 200, timestamp=datetime(2026, 1, 2, 0, 0, 0))

        assert (log_dir / "access_2026-01-01.log").exists()
        assert (log_dir / "access_2026-01-02.log").exists()

    def test_record_unknown_error(self, access_log: AccessLogger, log_dir: Path):
        access_log.record_unknown_error("10.0.0.9")

        text = (log_dir / "access_2026-10-19.log").read_text()
        assert text == "2026-10-19 14:03:07 | 10.0.0.9 | UNKNOWN ERROR | 500\n"

    def test_mirrors_to_logger(self, access_log: AccessLogger, caplog):
        with caplog.at_level("INFO", logger="webserver.access"):
            access_log.record("127.0.0.1", "GET", "/", 200)

        assert "127.0.0.1 | GET / | 200" in caplog.text

    def test_write_failure_is_swallowed(self, tmp_path: Path, caplog):
        """A log directory that cannot be written must not raise."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        access_log = AccessLogger(blocker, clock=lambda: FIXED_NOW)

        with caplog.at_level("ERROR", logger="webserver.access_log"):
            written = access_log.log(AccessLogEntry(FIXED_NOW, "a", "GET", "/", 200))

        assert written is False
        assert "Error writing access log" in caplog.text

    def test_concurrent_appends_do_not_interleave(self, access_log: AccessLogger, log_dir: Path):
        """Every line arrives whole when many threads log at once."""
        threads_count = 16
        per_thread = 50

        def worker(n: int):
            for i in range(per_thread):
                access_log.record(f"10.0.0.{n}", "GET", f"/page/{i}", 200)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        lines = (log_dir / "access_2026-10-19.log").read_text().splitlines()
        assert len(lines) == threads_count * per_thread
        for line in lines:
            parts = line.split(" | ")
            assert len(parts) == 4
            assert parts[0] == "2026-10-19 14:03:07"
            assert parts[3] == "200"
