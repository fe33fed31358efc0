"""
Unit tests for the S3Emitter delivery loop.
"""

import time
from datetime import datetime, timezone

import pytest
import sentry_sdk
from botocore.exceptions import ClientError

from conftest import FailingStore, Halted, ScriptedStore
from s3_loader.emitter import BackoffPolicy, S3Emitter
from s3_loader.models import NamedStream
from s3_loader.monitoring import Monitoring, MonitoringBackend, SentryBackend

pytestmark = pytest.mark.timeout(5)


def _client_error(code="ServiceUnavailable"):
    return ClientError({"Error": {"Code": code, "Message": "try later"}}, "PutObject")


def _emitter(s3_config, store, clock, monitoring, halt, **kw):
    policy = BackoffPolicy(
        backoff_period_ms=kw.pop("backoff_period_ms", 10_000),
        max_connection_time_ms=kw.pop("max_connection_time_ms", 60_000),
    )
    return S3Emitter(
        s3_config,
        store,
        policy,
        monitoring,
        clock=clock,
        sleep=clock.sleep,
        halt=halt,
        **kw,
    )


@pytest.fixture
def stream():
    return NamedStream("part-0001", b"line-1\nline-2\n")


def test_first_attempt_success(s3_config, clock, recording_monitoring, halt, stream, start_time):
    """Successful upload returns the key without sleeping or reporting."""
    store = ScriptedStore()
    emitter = _emitter(
        s3_config,
        store,
        clock,
        recording_monitoring,
        halt,
        output_directory="logs",
        date_format="{yyyy/MM/dd}",
        filename_prefix="run",
    )

    key = emitter.attempt_emit(stream, connection_attempt_start_time=start_time)

    assert key == "logs/2021/03/05/run-part-0001"
    assert store.calls == [("test-bucket", key, stream.data, len(stream.data))]
    assert clock.sleeps == []
    assert recording_monitoring.events == []
    assert halt.calls == []


@pytest.mark.parametrize("failures", [1, 2, 5])
def test_fails_n_times_then_succeeds(s3_config, clock, recording_monitoring, halt, stream, failures):
    """N failures -> N+1 attempts, N fixed sleeps, N monitoring reports."""
    store = ScriptedStore([_client_error()] * failures)
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, max_connection_time_ms=3_600_000)

    emitter.attempt_emit(stream)

    assert len(store.calls) == failures + 1
    assert clock.sleeps == [10.0] * failures
    reports = recording_monitoring.of("attempt_failure")
    assert [r.attempt for r in reports] == list(range(1, failures + 1))
    assert all(r.backoff_period_ms == 10_000 for r in reports)
    assert recording_monitoring.of("shutdown") == []
    assert halt.calls == []


def test_failure_report_carries_elapsed_time_and_message(
    s3_config, clock, recording_monitoring, halt, stream, start_time
):
    """Failure reports include elapsed ms since the first attempt and the error text."""
    store = ScriptedStore([ConnectionError("reset"), _client_error("SlowDown")])
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt)

    emitter.attempt_emit(stream)

    first, second = recording_monitoring.of("attempt_failure")
    assert first.elapsed_ms == 0
    assert second.elapsed_ms == 10_000
    assert first.started_at == start_time
    assert first.message == "ConnectionError: reset"
    assert "SlowDown" in second.message


def test_retries_reuse_the_original_timestamp(s3_config, recording_monitoring, halt, stream):
    """Retries land at the same key even when the clock crosses midnight."""
    from conftest import FakeClock

    clock = FakeClock(datetime(2021, 3, 5, 23, 59, 55, tzinfo=timezone.utc))
    store = ScriptedStore([_client_error(), _client_error()])
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, date_format="{yyyy/MM/dd}")

    key = emitter.attempt_emit(stream)

    assert key == "2021/03/05/part-0001"
    assert {call[1] for call in store.calls} == {key}


def test_shutdown_once_max_connection_time_exceeded(s3_config, clock, recording_monitoring, halt, stream):
    """Always-failing store halts after elapsed time passes the maximum, not before."""
    store = FailingStore()
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, max_connection_time_ms=25_000)

    with pytest.raises(Halted) as exc_info:
        emitter.attempt_emit(stream)

    assert exc_info.value.status == 1
    # attempts at t=0, 10, 20 stay within 25s; the one at t=30 exceeds it
    assert len(store.calls) == 4
    assert clock.sleeps == [10.0, 10.0, 10.0]
    assert [r.elapsed_ms for r in recording_monitoring.of("attempt_failure")] == [0, 10_000, 20_000, 30_000]
    assert len(recording_monitoring.of("shutdown")) == 1
    assert halt.calls == [1]


def test_elapsed_equal_to_maximum_does_not_halt(s3_config, clock, recording_monitoring, halt, stream):
    """The timeout is strict: elapsed == max keeps retrying."""
    store = FailingStore()
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, max_connection_time_ms=20_000)

    with pytest.raises(Halted):
        emitter.attempt_emit(stream)

    assert len(store.calls) == 4


def test_slow_first_attempt_never_triggers_shutdown(s3_config, clock, recording_monitoring, halt, stream):
    """The first attempt is exempt from the timeout check."""
    store = ScriptedStore([ConnectionError("slow")], clock=clock, latency=120.0)
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, max_connection_time_ms=60_000)

    emitter.attempt_emit(stream)

    assert len(store.calls) == 2
    assert halt.calls == []


def test_shutdown_captures_last_error_before_halting(s3_config, clock, recording_monitoring, halt, stream):
    """Forced shutdown captures the last error and reports shutdown, in that order."""
    store = FailingStore()
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, max_connection_time_ms=0)

    with pytest.raises(Halted):
        emitter.attempt_emit(stream)

    kinds = [k for k, _ in recording_monitoring.events]
    assert kinds[-2:] == ["capture_error", "shutdown"]
    assert isinstance(recording_monitoring.of("capture_error")[0], ConnectionError)


def test_fatal_errors_propagate_without_retry(s3_config, clock, recording_monitoring, halt, stream):
    """MemoryError is not absorbed by the retry loop."""
    store = ScriptedStore([MemoryError()])
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt)

    with pytest.raises(MemoryError):
        emitter.attempt_emit(stream)

    assert len(store.calls) == 1
    assert clock.sleeps == []
    assert recording_monitoring.events == []


def test_bucket_override_and_stream_directory(s3_config, clock, recording_monitoring, halt):
    """Explicit bucket wins; the stream directory nests under the output directory."""
    store = ScriptedStore()
    emitter = _emitter(s3_config, store, clock, recording_monitoring, halt, output_directory="enriched")

    key = emitter.attempt_emit(NamedStream("f.gz", b"x", directory="good"), bucket="other")

    assert key == "enriched/good/f.gz"
    assert store.calls[0][0] == "other"


def test_from_settings_wires_policy_and_layout():
    """from_settings copies key layout and timing from Settings."""
    from s3_loader.config import Settings

    settings = Settings(
        _env_file=None,
        S3_BUCKET="bucket",
        S3_REGION="eu-west-1",
        OUTPUT_DIRECTORY="out",
        DATE_FORMAT="{yyyy}",
        FILENAME_PREFIX="p",
        BACKOFF_PERIOD_MS=500,
        MAX_CONNECTION_TIME_MS=1_000,
    )
    store = ScriptedStore()
    emitter = S3Emitter.from_settings(settings, store=store)

    assert emitter.config.bucket == "bucket"
    assert emitter.policy == BackoffPolicy(backoff_period_ms=500, max_connection_time_ms=1_000)
    assert emitter.key_for(NamedStream("f", b""), datetime(2020, 1, 1, tzinfo=timezone.utc)) == "out/2020/p-f"


class SlowCaptureBackend(MonitoringBackend):
    name = "slow-capture"

    def __init__(self):
        self.captured = False

    def capture_error(self, error):
        time.sleep(0.2)
        self.captured = True


def test_shutdown_waits_for_error_capture(s3_config, clock, stream):
    """A slow backend still captures the last error before the process halts."""
    backend = SlowCaptureBackend()
    monitoring = Monitoring([backend], shutdown_flush_seconds=2.0)
    captured_at_halt = []

    def _halt(status):
        captured_at_halt.append(backend.captured)
        raise Halted(status)

    emitter = _emitter(s3_config, FailingStore(), clock, monitoring, _halt, max_connection_time_ms=0)
    with pytest.raises(Halted):
        emitter.attempt_emit(stream)
    monitoring.close()

    assert captured_at_halt == [True]


def test_shutdown_flushes_sentry_before_halting(s3_config, clock, stream, monkeypatch):
    calls = []
    monkeypatch.setattr(sentry_sdk, "capture_exception", lambda err: calls.append("capture"))
    monkeypatch.setattr(sentry_sdk, "flush", lambda timeout=None: calls.append("flush"))
    monitoring = Monitoring(
        [SentryBackend("https://key@sentry.invalid/1", flush_timeout=1.0, init=False)],
        shutdown_flush_seconds=2.0,
    )
    seen_at_halt = []

    def _halt(status):
        seen_at_halt.append(list(calls))
        raise Halted(status)

    emitter = _emitter(s3_config, FailingStore(), clock, monitoring, _halt, max_connection_time_ms=0)
    with pytest.raises(Halted):
        emitter.attempt_emit(stream)
    monitoring.close()

    assert seen_at_halt == [["capture", "flush"]]
