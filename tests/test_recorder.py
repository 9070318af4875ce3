"""Tests for the request recorder (append at start, patch at finish)."""

import logging
import threading
from datetime import datetime

import pytest

from request_logger.codec import decode
from request_logger.models import RequestInfo
from request_logger.parser import parse_all
from request_logger.recorder import RecordState, RequestRecorder, parse_content_length
from request_logger.store import LogStore


def _info(uri="/", method="GET", **overrides) -> RequestInfo:
    defaults = dict(
        method=method,
        uri=uri,
        content_length=None,
        user_agent="pytest-agent/1.0",
        ip="192.168.1.20",
    )
    defaults.update(overrides)
    return RequestInfo(**defaults)


@pytest.fixture()
def recorder(store, now, monotonic) -> RequestRecorder:
    return RequestRecorder(store, clock=lambda: now, monotonic=monotonic)


class TestParseContentLength:
    def test_values(self):
        assert parse_content_length("42") == 42
        assert parse_content_length(17) == 17
        assert parse_content_length(None) == 0
        assert parse_content_length("") == 0
        assert parse_content_length("abc") == 0
        assert parse_content_length("-5") == 0


class TestStart:
    def test_appends_record_with_zero_queries(self, recorder, store):
        handle = recorder.start(_info(uri="/shop?page=2", method="POST", content_length="128"))
        assert handle.state is RecordState.RECORDED

        records = list(parse_all(store))
        assert len(records) == 1
        record = records[0]
        assert record.method == "POST"
        assert record.uri == "/shop?page=2"
        assert record.bytes == 128
        assert record.query_count == 0
        assert record.ip == "192.168.1.20"
        assert record.user_agent == "pytest-agent/1.0"
        assert record.timestamp_formatted == "2025-05-15 12:00:00"

    def test_timestamp_truncated_to_seconds(self, store, monotonic):
        recorder = RequestRecorder(
            store, clock=lambda: datetime(2025, 5, 15, 12, 0, 0, 987654), monotonic=monotonic
        )
        recorder.start(_info())
        assert list(parse_all(store))[0].timestamp == datetime(2025, 5, 15, 12, 0, 0)

    def test_supplied_timestamp_wins(self, recorder, store):
        recorder.start(_info(timestamp=datetime(2024, 1, 2, 3, 4, 5)))
        assert list(parse_all(store))[0].timestamp_formatted == "2024-01-02 03:04:05"

    def test_write_failure_returns_none(self, tmp_path, now, monotonic, caplog):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        recorder = RequestRecorder(
            LogStore(str(blocker / "app.log")), clock=lambda: now, monotonic=monotonic
        )
        with caplog.at_level(logging.ERROR):
            assert recorder.start(_info()) is None
        assert "Failed to record request" in caplog.text


class TestFinish:
    def test_patches_query_count(self, recorder, store):
        handle = recorder.start(_info())
        recorder.finish(handle, 12)
        assert list(parse_all(store))[0].query_count == 12
        assert handle.state is RecordState.PATCHED

    def test_elapsed_time_written_at_start_is_never_updated(self, recorder, store, monotonic):
        # Current behaviour: the time field reflects the moment of the append,
        # only the query count is corrected when the request finishes.
        handle = recorder.start(_info())
        monotonic.advance(2.5)
        elapsed = recorder.finish(handle, 3)

        assert elapsed == pytest.approx(2.5)
        record = list(parse_all(store))[0]
        assert record.elapsed_seconds == 0.0
        assert record.query_count == 3

    def test_finish_twice_is_noop(self, recorder, store):
        handle = recorder.start(_info())
        recorder.finish(handle, 4)
        assert recorder.finish(handle, 99) is None
        assert list(parse_all(store))[0].query_count == 4

    def test_finish_none_handle(self, recorder):
        assert recorder.finish(None, 5) is None

    def test_negative_count_clamped(self, recorder, store):
        handle = recorder.start(_info())
        recorder.finish(handle, -3)
        assert list(parse_all(store))[0].query_count == 0

    def test_log_cleared_while_in_flight(self, recorder, store):
        handle = recorder.start(_info())
        store.clear()
        assert recorder.finish(handle, 5) is not None
        assert store.read_all() == []

    def test_only_own_line_patched(self, recorder, store):
        store.append("[2025-05-15 11:00:00] unrelated line\n")
        handle = recorder.start(_info(uri="/mine"))
        recorder.finish(handle, 8)
        lines = store.read_all()
        assert lines[0] == "[2025-05-15 11:00:00] unrelated line\n"
        assert decode(lines[1]).query_count == 8

    def test_patch_failure_is_logged_not_raised(self, recorder, store, monkeypatch, caplog):
        handle = recorder.start(_info(uri="/locked-dir"))

        def refuse(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("request_logger.store.tempfile.mkstemp", refuse)
        with caplog.at_level(logging.ERROR):
            assert recorder.finish(handle, 3) is None
        assert "Failed to patch query count" in caplog.text
        assert handle.state is RecordState.PATCHED
        assert decode(store.read_all()[0]).query_count == 0


class TestInterleavedRequests:
    def test_interleaved_lifecycles_patch_their_own_lines(self, recorder, store):
        first = recorder.start(_info(uri="/first"))
        second = recorder.start(_info(uri="/second"))

        # first finishes while second is still open and is the last line
        recorder.finish(first, 5)
        recorder.finish(second, 9)

        counts = {r.uri: r.query_count for r in parse_all(store)}
        assert counts == {"/first": 5, "/second": 9}

    def test_identical_requests_both_patched(self, recorder, store):
        first = recorder.start(_info(uri="/same"))
        second = recorder.start(_info(uri="/same"))
        recorder.finish(first, 3)
        recorder.finish(second, 4)

        assert sorted(r.query_count for r in parse_all(store)) == [3, 4]

    def test_concurrent_threads_no_cross_contamination(self, store, now):
        recorder = RequestRecorder(store, clock=lambda: now)
        num_threads = 8
        barrier = threading.Barrier(num_threads)
        errors = []

        def worker(index):
            try:
                handle = recorder.start(_info(uri=f"/worker/{index}"))
                # every request is open before any of them finishes
                barrier.wait(timeout=10)
                recorder.finish(handle, index + 1)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        records = list(parse_all(store))
        assert len(records) == num_threads
        for record in records:
            index = int(record.uri.rsplit("/", 1)[1])
            assert record.query_count == index + 1


class TestRecordContext:
    def test_record_patches_on_exit(self, recorder, store):
        with recorder.record(_info(), lambda: 6) as handle:
            assert handle.state is RecordState.RECORDED
        assert handle.state is RecordState.PATCHED
        assert list(parse_all(store))[0].query_count == 6

    def test_record_patches_when_body_raises(self, recorder, store):
        with pytest.raises(RuntimeError):
            with recorder.record(_info(), lambda: 2):
                raise RuntimeError("handler failed")
        assert list(parse_all(store))[0].query_count == 2

    def test_broken_query_counter_records_zero(self, recorder, store):
        def counter():
            raise ValueError("no counter")

        with recorder.record(_info(), counter):
            pass
        assert list(parse_all(store))[0].query_count == 0
