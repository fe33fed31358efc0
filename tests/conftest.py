"""
Pytest configuration and fixtures for s3-loader.

Provides a controllable clock, a scripted object store and a monitoring
recorder so the delivery loop can be driven without real waits or network.
"""

from datetime import datetime, timezone

import pytest

from s3_loader.config import S3Config, get_settings
from s3_loader.monitoring import Monitoring


class Halted(Exception):
    """Raised by the test halt hook in place of terminating the process."""

    def __init__(self, status: int):
        super().__init__(f"halt({status})")
        self.status = status


class FakeClock:
    """Wall clock in seconds that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start.timestamp()
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)


class ScriptedStore:
    """Object store that raises the scripted errors in order, then succeeds."""

    def __init__(self, errors=(), clock: FakeClock | None = None, latency: float = 0.0):
        self._errors = list(errors)
        self.clock = clock
        self.latency = latency
        self.calls: list[tuple[str, str, bytes, int]] = []

    def put_object(self, bucket: str, key: str, data: bytes, content_length: int) -> None:
        self.calls.append((bucket, key, data, content_length))
        if self.clock is not None and self.latency:
            self.clock.advance(self.latency)
        if self._errors:
            err = self._errors.pop(0)
            if err is not None:
                raise err


class FailingStore(ScriptedStore):
    """Object store that never succeeds."""

    def put_object(self, bucket: str, key: str, data: bytes, content_length: int) -> None:
        self.calls.append((bucket, key, data, content_length))
        raise ConnectionError("S3 unreachable")


class RecordingMonitoring(Monitoring):
    """Monitoring that records events synchronously instead of dispatching them."""

    def __init__(self):
        super().__init__()
        self.events: list[tuple[str, object]] = []

    def initialize(self):
        self.events.append(("initialize", None))
        return []

    def report_attempt_failure(self, failure):
        self.events.append(("attempt_failure", failure))
        return []

    def report_batch_metrics(self, meta):
        self.events.append(("batch_metrics", meta))
        return []

    def capture_error(self, error):
        self.events.append(("capture_error", error))
        return []

    def report_shutdown(self, error=None):
        if error is not None:
            self.events.append(("capture_error", error))
        self.events.append(("shutdown", None))
        return True

    def of(self, kind: str) -> list:
        return [payload for k, payload in self.events if k == kind]


@pytest.fixture
def start_time():
    """2021-03-05T00:00:00Z."""
    return datetime(2021, 3, 5, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    return FakeClock(start_time)


@pytest.fixture
def s3_config():
    return S3Config(endpoint="http://localhost:4566", region="us-east-1", bucket="test-bucket")


@pytest.fixture
def recording_monitoring():
    return RecordingMonitoring()


@pytest.fixture
def halt():
    """Halt hook that raises Halted instead of exiting."""
    calls = []

    def _halt(status: int):
        calls.append(status)
        raise Halted(status)

    _halt.calls = calls
    return _halt


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Isolate tests from the caller's environment and the settings cache."""
    for name in (
        "S3_BUCKET",
        "S3_ENDPOINT",
        "S3_REGION",
        "OUTPUT_DIRECTORY",
        "DATE_FORMAT",
        "FILENAME_PREFIX",
        "TRACKING_COLLECTOR_URL",
        "SENTRY_DSN",
        "PROMETHEUS_PORT",
        "METRICS_ENABLED",
        "BAD_ROWS_PATH",
        "BAD_ROWS_STREAM",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
