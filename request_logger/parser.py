"""Stream a log store back into LogRecords, skipping lines that don't decode."""

from typing import Iterable, Iterator

from request_logger.codec import decode
from request_logger.models import LogRecord
from request_logger.store import LogStore


def parse_lines(lines: Iterable[str]) -> Iterator[LogRecord]:
    """Yield a LogRecord for every line that decodes; malformed lines are dropped."""
    for line in lines:
        record = decode(line)
        if record is not None:
            yield record


def parse_all(store: LogStore) -> Iterator[LogRecord]:
    """Parse a snapshot of the whole store in file order.

    Raises LogNotFoundError (on first iteration) if the log file does not exist.
    """
    yield from parse_lines(store.read_all())
