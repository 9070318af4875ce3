"""Shared pytest fixtures for the request-logger test suite."""

from datetime import datetime

import pytest

from request_logger.config import Config
from request_logger.store import LogStore


class FakeMonotonic:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float):
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def log_path(tmp_path) -> str:
    return str(tmp_path / "logs" / "request-logs.log")


@pytest.fixture()
def store(log_path) -> LogStore:
    return LogStore(log_path)


@pytest.fixture()
def now() -> datetime:
    return datetime(2025, 5, 15, 12, 0, 0)


@pytest.fixture()
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def config(tmp_path) -> Config:
    return Config(log_dir=str(tmp_path / "logs"), secret_key="test-secret", admin_token="test-token")
