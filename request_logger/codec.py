"""Line codec — one LogRecord per fixed-width, bracket-delimited text line.

Line layout::

    [2025-05-15 14:30:00] [bytes:   512] [time:  0.0012][queries: 14] [method:POST] [uri:/x] [ip:10.0.0.1] [user-agent:curl/8.0]

Numeric fields are padded for readability in a plain text viewer. The
user-agent is always last and runs to the final ``]`` of the line, so it may
itself contain brackets.
"""

import re
from datetime import datetime

from request_logger.models import TIMESTAMP_FORMAT, LogRecord

LINE_PATTERN = re.compile(
    r"^\[(?P<timestamp>[^\]]*)\] "
    r"\[bytes:\s*(?P<bytes>\d+)\] "
    r"\[time:\s*(?P<time>\d+(?:\.\d+)?)\]"
    r"\[queries:\s*(?P<queries>\d+)\] "
    r"\[method:\s*(?P<method>[^\]\s]+)\s*\] "
    r"\[uri:(?P<uri>.*?)\] "
    r"\[ip:(?P<ip>.*?)\] "
    r"\[user-agent:(?P<user_agent>.*)\]\s*$"
)

QUERIES_PATTERN = re.compile(r"\[queries:\s*\d+\]")

_LINE_BREAKS = re.compile(r"[\r\n]+")


def _single_line(value: str) -> str:
    return _LINE_BREAKS.sub(" ", value)


def format_timestamp(ts: datetime) -> str:
    return ts.strftime(TIMESTAMP_FORMAT)


def encode(record: LogRecord) -> str:
    """Serialize a record to a newline-terminated log line."""
    return (
        f"[{record.timestamp_formatted}] "
        f"[bytes:{record.bytes:6d}] "
        f"[time:{record.elapsed_seconds:8.4f}]"
        f"[queries:{record.query_count:3d}] "
        f"[method:{_single_line(record.method):<4}] "
        f"[uri:{_single_line(record.uri)}] "
        f"[ip:{_single_line(record.ip)}] "
        f"[user-agent:{_single_line(record.user_agent)}]\n"
    )


def decode(line: str) -> LogRecord | None:
    """Parse a single log line. Returns None for malformed or truncated lines."""
    match = LINE_PATTERN.match(line.rstrip("\r\n"))
    if not match:
        return None

    timestamp_str = match.group("timestamp")
    try:
        timestamp = datetime.strptime(timestamp_str, TIMESTAMP_FORMAT)
    except ValueError:
        return None

    return LogRecord(
        timestamp=timestamp,
        timestamp_formatted=timestamp_str,
        bytes=int(match.group("bytes")),
        elapsed_seconds=float(match.group("time")),
        query_count=int(match.group("queries")),
        method=match.group("method").strip(),
        uri=match.group("uri").strip(),
        ip=match.group("ip").strip(),
        user_agent=match.group("user_agent").strip(),
    )


def set_query_count(line: str, count: int) -> str:
    """Rewrite only the queries field of an encoded line."""
    return QUERIES_PATTERN.sub(f"[queries:{count:3d}]", line, count=1)
