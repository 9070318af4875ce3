"""Per-request query counting, with an optional raw query-trace log.

The tracker is the collaborator that supplies ``executed_query_count`` when a
request finishes. Counts are kept per thread, so each worker thread sees only
the queries of the request it is serving. For sqlite3 connections::

    conn.set_trace_callback(tracker.track)
"""

import logging
import threading
from datetime import datetime
from typing import Callable

from request_logger.codec import format_timestamp
from request_logger.errors import LogStoreError
from request_logger.store import LogStore

logger = logging.getLogger(__name__)


class QueryTracker:
    def __init__(
        self,
        trace_store: LogStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._local = threading.local()
        self._trace_store = trace_store
        self._clock = clock or datetime.now

    def reset(self, uri: str = ""):
        """Start counting for a new request on the current thread."""
        self._local.count = 0
        self._local.uri = uri

    def count(self) -> int:
        return getattr(self._local, "count", 0)

    def track(self, sql: str):
        """Count one executed query and append it to the trace log if enabled."""
        self._local.count = self.count() + 1
        if self._trace_store is None:
            return

        uri = getattr(self._local, "uri", "")
        statement = " ".join(sql.split())
        line = f"[{format_timestamp(self._clock())}] [request:{uri}] {statement}\n"
        try:
            self._trace_store.append(line)
        except LogStoreError:
            logger.exception("Failed to write query trace to %s", self._trace_store.path)
