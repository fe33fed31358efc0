"""Sentry error-capture backend."""

from __future__ import annotations

import sentry_sdk

from .base import MonitoringBackend


class SentryBackend(MonitoringBackend):
    """Forward captured errors to Sentry.

    The SDK sends events from a background thread, so queued events are
    flushed on shutdown before the process is halted.
    """

    name = "sentry"

    def __init__(self, dsn: str, *, flush_timeout: float = 2.0, init: bool = True) -> None:
        self.dsn = dsn
        self.flush_timeout = flush_timeout
        if init:
            sentry_sdk.init(dsn=dsn)

    def capture_error(self, error: BaseException) -> None:
        sentry_sdk.capture_exception(error)

    def report_shutdown(self) -> None:
        sentry_sdk.flush(timeout=self.flush_timeout)

    def close(self) -> None:
        sentry_sdk.flush(timeout=self.flush_timeout)
