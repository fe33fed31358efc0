"""
S3 delivery loop.

Keeps attempting to write one serialized batch until S3 accepts it. Failed
attempts are logged, reported to monitoring and retried after a fixed
backoff. If S3 stays unreachable for longer than the configured maximum
connection time the process is halted without running shutdown hooks.
"""

from __future__ import annotations

import os
import time
from datetime import datetime
from typing import Callable, NoReturn, Optional

from loguru import logger

from ..config import S3Config, Settings
from ..dynamic_path import decorate_path
from ..errors import Fatal, Retry, classify_upload_error, describe_upload_error
from ..models import NamedStream
from ..monitoring import AttemptFailure, Monitoring
from ..storage import ObjectStore, S3ObjectStore
from .policy import BackoffPolicy, sleep_uninterruptibly
from .types import AttemptOutcome, Delivered, DeliveryAttempt


class S3Emitter:
    """Emitter for flushing serialized batches to S3.

    Args:
        config: Target endpoint/region/bucket
        store: Object store used for uploads (shared across emitters)
        policy: Backoff period and maximum connection time
        monitoring: Backends notified of failures and shutdown
        output_directory: Leading key directory
        date_format: Directory template with ``{pattern}`` placeholders
        filename_prefix: Prepended to every object name
        clock: Wall clock in seconds
        sleep: Blocking wait used between attempts
        halt: Terminates the process; must not return

    Example:
        emitter = S3Emitter.from_settings(get_settings())
        key = emitter.attempt_emit(NamedStream("part-0001.gz", payload))
    """

    def __init__(
        self,
        config: S3Config,
        store: ObjectStore,
        policy: Optional[BackoffPolicy] = None,
        monitoring: Optional[Monitoring] = None,
        *,
        output_directory: Optional[str] = None,
        date_format: Optional[str] = None,
        filename_prefix: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = sleep_uninterruptibly,
        halt: Callable[[int], NoReturn] = os._exit,
    ):
        self.config = config
        self.store = store
        self.policy = policy or BackoffPolicy()
        self.monitoring = monitoring or Monitoring()
        self.output_directory = output_directory
        self.date_format = date_format
        self.filename_prefix = filename_prefix
        self._clock = clock
        self._sleep = sleep
        self._halt = halt

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: Optional[ObjectStore] = None,
        monitoring: Optional[Monitoring] = None,
    ) -> "S3Emitter":
        s3 = settings.s3
        return cls(
            s3,
            store or S3ObjectStore.from_config(s3),
            BackoffPolicy(
                backoff_period_ms=settings.BACKOFF_PERIOD_MS,
                max_connection_time_ms=settings.MAX_CONNECTION_TIME_MS,
            ),
            monitoring,
            output_directory=settings.OUTPUT_DIRECTORY,
            date_format=settings.DATE_FORMAT,
            filename_prefix=settings.FILENAME_PREFIX,
        )

    # --------------------------- public API

    def key_for(self, stream: NamedStream, started_at: datetime) -> str:
        """Destination key for ``stream`` when delivery began at ``started_at``."""
        parts = [d for d in (self.output_directory, stream.directory) if d]
        directory = "/".join(parts) if parts else None
        return decorate_path(
            directory,
            stream.filename,
            started_at,
            self.date_format,
            self.filename_prefix,
        )

    def attempt_emit(
        self,
        stream: NamedStream,
        bucket: Optional[str] = None,
        connection_attempt_start_time: Optional[datetime] = None,
    ) -> str:
        """Keep attempting to send ``stream`` to S3 until it succeeds.

        Never returns on failure: either the object is stored and its key is
        returned, or the process is halted once retries exceed
        ``policy.max_connection_time_ms``.

        Args:
            stream: Serialized batch and its filename
            bucket: Overrides the configured bucket
            connection_attempt_start_time: When delivery of this batch began;
                defaults to now

        Returns:
            The key the batch was written under
        """
        bucket = bucket or self.config.bucket
        if connection_attempt_start_time is None:
            started_at_ms = self._now_ms()
        else:
            started_at_ms = int(connection_attempt_start_time.timestamp() * 1000)

        attempt = DeliveryAttempt.first(started_at_ms, self.policy.backoff_period_ms)
        while True:
            outcome = self._attempt(stream, bucket, attempt)
            if isinstance(outcome, Delivered):
                if attempt.count > 1:
                    logger.info(f"Delivered s3://{bucket}/{outcome.key} after {attempt.count} attempts")
                return outcome.key
            if isinstance(outcome, Fatal):
                raise outcome.reason

            now_ms = self._now_ms()
            self._report_failure(attempt, now_ms, outcome)
            if self.policy.timed_out(attempt, now_ms):
                self.force_shutdown(outcome.reason)
            attempt = attempt.next()
            self._sleep(attempt.backoff_period_ms / 1000.0)

    def force_shutdown(self, last_error: Optional[BaseException] = None) -> NoReturn:
        """Terminate the application, skipping ``atexit`` handlers and cleanup."""
        logger.error(
            f"Shutting down application as unable to connect to S3 for over "
            f"{self.policy.max_connection_time_ms} ms"
        )
        self.monitoring.report_shutdown(last_error)
        self._halt(1)

    # --------------------------- internals

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _attempt(self, stream: NamedStream, bucket: str, attempt: DeliveryAttempt) -> AttemptOutcome:
        try:
            key = self.key_for(stream, attempt.started_at)
            self.store.put_object(bucket, key, stream.data, stream.size)
            return Delivered(key)
        except Exception as exc:
            return classify_upload_error(exc)

    def _report_failure(self, attempt: DeliveryAttempt, now_ms: int, outcome: Retry) -> None:
        error = outcome.reason
        logger.opt(exception=error).error(
            f"{describe_upload_error(error)} (attempt={attempt.count})"
        )
        self.monitoring.report_attempt_failure(
            AttemptFailure(
                attempt=attempt.count,
                started_at=attempt.started_at,
                elapsed_ms=attempt.elapsed_ms(now_ms),
                backoff_period_ms=attempt.backoff_period_ms,
                error=error,
            )
        )
