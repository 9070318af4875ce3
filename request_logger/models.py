"""Data models — logged request records, inbound request info, and derived statistics."""

from dataclasses import dataclass, field
from datetime import datetime

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class LogRecord:
    timestamp: datetime
    timestamp_formatted: str
    bytes: int = 0
    elapsed_seconds: float = 0.0
    query_count: int = 0
    method: str = ""
    uri: str = ""
    ip: str = ""
    user_agent: str = ""

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp_formatted,
            "bytes": self.bytes,
            "time": self.elapsed_seconds,
            "queries": self.query_count,
            "method": self.method,
            "uri": self.uri,
            "ip": self.ip,
            "user_agent": self.user_agent,
        }


@dataclass(frozen=True)
class RequestInfo:
    """What the host framework knows about a request when it arrives."""

    method: str
    uri: str
    content_length: int | str | None = None
    user_agent: str = ""
    ip: str = ""
    timestamp: datetime | None = None


@dataclass(frozen=True)
class TimeRange:
    """Span between the earliest and latest record, broken into units."""

    total_seconds: int = 0

    @property
    def days(self) -> int:
        return self.total_seconds // 86400

    @property
    def hours(self) -> int:
        return self.total_seconds // 3600

    @property
    def minutes(self) -> int:
        return self.total_seconds // 60

    @property
    def seconds(self) -> int:
        return self.total_seconds

    def describe(self) -> str:
        """Human summary using the coarsest non-zero unit."""
        if self.days > 0:
            return f"{self.days} days, {self.hours % 24} hours"
        if self.hours > 0:
            return f"{self.hours} hours, {self.minutes % 60} minutes"
        return f"{self.minutes} minutes, {self.seconds % 60} seconds"

    def to_dict(self) -> dict:
        return {
            "seconds": self.seconds,
            "minutes": self.minutes,
            "hours": self.hours,
            "days": self.days,
            "summary": self.describe(),
        }


@dataclass
class Statistics:
    total_requests: int = 0
    total_post_requests: int = 0
    requests_10min: int = 0
    post_requests_10min: int = 0
    avg_requests_10min: float = 0.0
    avg_post_requests_10min: float = 0.0
    avg_post_size_10min: float = 0.0
    avg_get_time_10min: float = 0.0
    avg_post_time_10min: float = 0.0
    avg_get_queries_10min: float = 0.0
    avg_post_queries_10min: float = 0.0
    earliest: datetime | None = None
    latest: datetime | None = None
    time_range: TimeRange = field(default_factory=TimeRange)

    def to_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "total_post_requests": self.total_post_requests,
            "requests_10min": self.requests_10min,
            "post_requests_10min": self.post_requests_10min,
            "avg_requests_10min": self.avg_requests_10min,
            "avg_post_requests_10min": self.avg_post_requests_10min,
            "avg_post_size_10min": self.avg_post_size_10min,
            "avg_get_time_10min": self.avg_get_time_10min,
            "avg_post_time_10min": self.avg_post_time_10min,
            "avg_get_queries_10min": self.avg_get_queries_10min,
            "avg_post_queries_10min": self.avg_post_queries_10min,
            "earliest": self.earliest.strftime(TIMESTAMP_FORMAT) if self.earliest else None,
            "latest": self.latest.strftime(TIMESTAMP_FORMAT) if self.latest else None,
            "time_range": self.time_range.to_dict(),
        }
