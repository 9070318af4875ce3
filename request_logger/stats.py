"""Statistics — totals, 10-minute window averages, and the log's time range."""

from datetime import datetime, timedelta
from typing import Iterable

from request_logger.models import LogRecord, Statistics, TimeRange

WINDOW_SECONDS = 600


def _mean(values: list) -> float:
    return sum(values) / len(values) if values else 0


def aggregate(
    records: Iterable[LogRecord],
    now: datetime | None = None,
    window_seconds: int = WINDOW_SECONDS,
) -> Statistics:
    """Consume a record stream once and produce aggregated statistics.

    Records with ``timestamp >= now - window`` fall in the window. Request
    rates are per minute over the full window length, regardless of how
    much of the window the log actually covers.
    """
    now = now or datetime.now()
    window_start = now - timedelta(seconds=window_seconds)
    window_minutes = window_seconds / 60

    total = 0
    total_post = 0
    windowed = 0
    windowed_post = 0
    post_sizes = []
    get_times = []
    post_times = []
    get_queries = []
    post_queries = []
    earliest = None
    latest = None

    for record in records:
        total += 1
        if earliest is None or record.timestamp < earliest:
            earliest = record.timestamp
        if latest is None or record.timestamp > latest:
            latest = record.timestamp

        if record.method == "POST":
            total_post += 1

        if record.timestamp < window_start:
            continue

        windowed += 1
        if record.method == "POST":
            windowed_post += 1
            post_sizes.append(record.bytes)
            post_times.append(record.elapsed_seconds)
            post_queries.append(record.query_count)
        elif record.method == "GET":
            get_times.append(record.elapsed_seconds)
            get_queries.append(record.query_count)

    if total == 0:
        return Statistics()

    return Statistics(
        total_requests=total,
        total_post_requests=total_post,
        requests_10min=windowed,
        post_requests_10min=windowed_post,
        avg_requests_10min=windowed / window_minutes,
        avg_post_requests_10min=windowed_post / window_minutes,
        avg_post_size_10min=_mean(post_sizes),
        avg_get_time_10min=_mean(get_times),
        avg_post_time_10min=_mean(post_times),
        avg_get_queries_10min=_mean(get_queries),
        avg_post_queries_10min=_mean(post_queries),
        earliest=earliest,
        latest=latest,
        time_range=TimeRange(int((latest - earliest).total_seconds())),
    )
