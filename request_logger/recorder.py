"""Per-request recorder — append a record at request start, patch its query count at the end.

Lifecycle of one request::

    START --start()--> RECORDED --finish()--> PATCHED

The ``time`` field is computed when the record is first written and is not
rewritten by the patch; only ``queries`` changes after the append.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from request_logger.codec import encode, format_timestamp, set_query_count
from request_logger.errors import LogStoreError
from request_logger.models import LogRecord, RequestInfo
from request_logger.store import LogStore

logger = logging.getLogger(__name__)


class RecordState(Enum):
    START = "start"
    RECORDED = "recorded"
    PATCHED = "patched"


@dataclass
class RecordHandle:
    line: str
    start_instant: float
    state: RecordState = RecordState.RECORDED


def parse_content_length(value) -> int:
    """Content-Length as a non-negative int; 0 when absent or unparseable."""
    if value is None or value == "":
        return 0
    try:
        length = int(value)
    except (TypeError, ValueError):
        return 0
    return max(length, 0)


class RequestRecorder:
    def __init__(
        self,
        store: LogStore,
        clock: Callable[[], datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
    ):
        self._store = store
        self._clock = clock or datetime.now
        self._monotonic = monotonic or time.monotonic

    @property
    def store(self) -> LogStore:
        return self._store

    def start(self, info: RequestInfo) -> RecordHandle | None:
        """Append the initial record with a zero query count.

        Returns None if the record could not be written; the request itself
        must carry on regardless.
        """
        start_instant = self._monotonic()
        timestamp = (info.timestamp or self._clock()).replace(microsecond=0)

        try:
            record = LogRecord(
                timestamp=timestamp,
                timestamp_formatted=format_timestamp(timestamp),
                bytes=parse_content_length(info.content_length),
                elapsed_seconds=max(self._monotonic() - start_instant, 0.0),
                query_count=0,
                method=(info.method or "").strip(),
                uri=info.uri or "",
                ip=info.ip or "",
                user_agent=info.user_agent or "",
            )
            line = encode(record)
            self._store.append(line)
        except (LogStoreError, OSError, ValueError, TypeError):
            logger.exception("Failed to record request %s %s", info.method, info.uri)
            return None

        return RecordHandle(line=line, start_instant=start_instant)

    def finish(self, handle: RecordHandle | None, query_count: int) -> float | None:
        """Patch the handle's own line with the final query count.

        Returns the elapsed seconds since start(), or None when the handle is
        missing or the patch failed. Calling finish twice on a handle is a no-op.
        """
        if handle is None or handle.state is not RecordState.RECORDED:
            return None

        elapsed = max(self._monotonic() - handle.start_instant, 0.0)
        handle.state = RecordState.PATCHED

        try:
            count = max(int(query_count), 0)
            # targets this request's own line even if others were appended since
            patched = self._store.patch_line(
                handle.line, lambda line: set_query_count(line, count)
            )
        except (LogStoreError, OSError, TypeError, ValueError):
            logger.exception("Failed to patch query count into %s", self._store.path)
            return None

        if not patched:
            # log was cleared (or rewritten) while the request was in flight
            logger.debug("Record no longer present in %s, skipping patch", self._store.path)
        logger.debug("Request finished: elapsed=%.4fs queries=%d", elapsed, count)
        return elapsed

    @contextmanager
    def record(self, info: RequestInfo, query_counter: Callable[[], int]):
        """Wrap one request: start on enter, finish with query_counter() on exit."""
        handle = self.start(info)
        try:
            yield handle
        finally:
            self.finish(handle, _safe_count(query_counter))


def _safe_count(query_counter: Callable[[], int]) -> int:
    try:
        return int(query_counter())
    except (TypeError, ValueError):
        logger.exception("Query counter failed, recording 0 queries")
        return 0
