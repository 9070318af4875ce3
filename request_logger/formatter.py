"""Output formatters for statistics and records — text and JSON."""

import json
from typing import Callable

from request_logger.models import TIMESTAMP_FORMAT, LogRecord, Statistics


def format_stats_text(stats: Statistics) -> str:
    """Human-readable stats summary."""
    lines = []
    if stats.earliest is not None:
        lines.append("Log time range:")
        lines.append(f"  {stats.earliest.strftime(TIMESTAMP_FORMAT)}")
        lines.append("  to")
        lines.append(f"  {stats.latest.strftime(TIMESTAMP_FORMAT)}")
        lines.append(f"  ({stats.time_range.describe()})")
    else:
        lines.append("Log time range: no records")
    lines.append("")

    lines.append(f"Total requests:      {stats.total_requests:,}"
                 f"  (avg {stats.avg_requests_10min:.1f}/min, 10m)")
    lines.append(f"Total POST requests: {stats.total_post_requests:,}"
                 f"  (avg {stats.avg_post_requests_10min:.1f}/min, 10m)")
    lines.append(f"Average POST size (10m): {stats.avg_post_size_10min:,.0f} bytes")
    lines.append("")

    lines.append("Average response time (10m):")
    lines.append(f"  GET   {stats.avg_get_time_10min:.4f}s")
    lines.append(f"  POST  {stats.avg_post_time_10min:.4f}s")
    lines.append("Average queries (10m):")
    lines.append(f"  GET   {stats.avg_get_queries_10min:.1f}")
    lines.append(f"  POST  {stats.avg_post_queries_10min:.1f}")

    return "\n".join(lines)


def format_stats_json(stats: Statistics) -> str:
    return json.dumps(stats.to_dict(), indent=2)


def format_record_text(record: LogRecord) -> str:
    return (
        f"{record.timestamp_formatted}  {record.method:<6} {record.uri}  "
        f"{record.bytes:,}B  {record.elapsed_seconds:.4f}s  {record.query_count}q  "
        f"{record.ip}  {record.user_agent}"
    )


def format_record_json(record: LogRecord) -> str:
    """NDJSON — one object per line."""
    return json.dumps(record.to_dict())


def get_formatter(output_format: str = "text") -> Callable[[LogRecord], str]:
    if output_format == "json":
        return format_record_json
    return format_record_text
