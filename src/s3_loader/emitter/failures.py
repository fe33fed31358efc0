from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable

from loguru import logger

from ..models import EmitterInput, FailureRecord, RecordFailure
from .sinks import FailureSink


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FailureRouter:
    """Send records that failed serialization, compression or partitioning
    to the dead-letter sink.

    There is no retry here; if the sink raises, the error reaches the caller.
    """

    def __init__(self, sink: FailureSink, clock: Callable[[], datetime] = _utc_now) -> None:
        self.sink = sink
        self._clock = clock

    def send_failures(self, inputs: Iterable[EmitterInput]) -> int:
        """Forward every failed input. Returns how many were sent."""
        sent = 0
        for item in inputs:
            if not isinstance(item, RecordFailure):
                continue
            logger.warning(f"Record failed: {item.line}")
            logger.info("Sending failed record to dead-letter sink")
            record = FailureRecord.from_failure(item, self._clock())
            self.sink.store(record.to_json(), None, False)
            sent += 1
        return sent
