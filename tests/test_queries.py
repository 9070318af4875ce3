"""Tests for per-request query tracking and the query-trace log."""

import sqlite3
import threading
from datetime import datetime

from request_logger.queries import QueryTracker
from request_logger.store import LogStore


class TestCounting:
    def test_starts_at_zero(self):
        assert QueryTracker().count() == 0

    def test_track_increments(self):
        tracker = QueryTracker()
        tracker.reset("/a")
        tracker.track("SELECT 1")
        tracker.track("SELECT 2")
        assert tracker.count() == 2

    def test_reset_starts_new_request(self):
        tracker = QueryTracker()
        tracker.track("SELECT 1")
        tracker.reset("/b")
        assert tracker.count() == 0

    def test_counts_are_per_thread(self):
        tracker = QueryTracker()
        tracker.reset("/main")
        tracker.track("SELECT 1")
        seen = []

        def worker():
            tracker.reset("/worker")
            for _ in range(5):
                tracker.track("SELECT 1")
            seen.append(tracker.count())

        t = threading.Thread(target=worker)
        t.start()
        t.join()

        assert seen == [5]
        assert tracker.count() == 1

    def test_sqlite_trace_callback(self):
        tracker = QueryTracker()
        tracker.reset("/db")
        conn = sqlite3.connect(":memory:")
        conn.set_trace_callback(tracker.track)
        conn.execute("CREATE TABLE t (x INTEGER)")
        conn.execute("SELECT * FROM t").fetchall()
        conn.close()
        assert tracker.count() >= 2


class TestTraceLog:
    def test_writes_one_line_per_query(self, tmp_path):
        trace = LogStore(str(tmp_path / "db-queries.log"))
        tracker = QueryTracker(trace_store=trace, clock=lambda: datetime(2025, 5, 15, 12, 0, 0))
        tracker.reset("/posts?id=3")
        tracker.track("SELECT *\n  FROM posts\n  WHERE id = 3")
        tracker.track("UPDATE posts SET views = views + 1")

        assert trace.read_all() == [
            "[2025-05-15 12:00:00] [request:/posts?id=3] SELECT * FROM posts WHERE id = 3\n",
            "[2025-05-15 12:00:00] [request:/posts?id=3] UPDATE posts SET views = views + 1\n",
        ]

    def test_no_trace_store_writes_nothing(self, tmp_path):
        tracker = QueryTracker()
        tracker.track("SELECT 1")
        assert list(tmp_path.iterdir()) == []

    def test_trace_failure_still_counts(self, tmp_path, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        tracker = QueryTracker(trace_store=LogStore(str(blocker / "db.log")))
        tracker.track("SELECT 1")
        assert tracker.count() == 1
        assert "Failed to write query trace" in caplog.text
