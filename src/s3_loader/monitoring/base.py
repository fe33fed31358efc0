"""
Monitoring backend interface.

Every hook is a no-op here; a backend overrides only the events it can
deliver. Backends are called from a worker thread and may block on I/O, but
any exception they raise is logged and dropped by :class:`Monitoring`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..models import BatchMeta


def describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


@dataclass(frozen=True)
class AttemptFailure:
    """One failed upload attempt, as seen by the delivery loop.

    Attributes:
        attempt: 1-based attempt number that failed
        started_at: When the first attempt for this batch began
        elapsed_ms: Milliseconds between ``started_at`` and the failure
        backoff_period_ms: Wait before the next attempt
        error: Exception raised by the object store
    """

    attempt: int
    started_at: datetime
    elapsed_ms: int
    backoff_period_ms: int
    error: BaseException

    @property
    def message(self) -> str:
        return describe_error(self.error)


class MonitoringBackend:
    name = "noop"

    def initialize(self) -> None:
        pass

    def report_attempt_failure(self, failure: AttemptFailure) -> None:
        pass

    def report_shutdown(self) -> None:
        pass

    def report_batch_metrics(self, meta: BatchMeta) -> None:
        pass

    def capture_error(self, error: BaseException) -> None:
        pass

    def close(self) -> None:
        pass
