from __future__ import annotations

import time
from dataclasses import dataclass

from loguru import logger

from .types import DeliveryAttempt


@dataclass(frozen=True)
class BackoffPolicy:
    """Fixed-interval retry with a hard ceiling on total retry time.

    Attributes:
        backoff_period_ms: Wait between failed attempts (constant, no jitter)
        max_connection_time_ms: Elapsed time after which the loader gives up
            and halts the process
    """

    backoff_period_ms: int = 10_000
    max_connection_time_ms: int = 600_000

    def __post_init__(self) -> None:
        if self.backoff_period_ms < 0:
            raise ValueError("backoff_period_ms must be >= 0")
        if self.max_connection_time_ms < 0:
            raise ValueError("max_connection_time_ms must be >= 0")

    def timed_out(self, attempt: DeliveryAttempt, now_ms: int) -> bool:
        """True once retries have run longer than allowed.

        Never true for the first attempt, however long it took. Evaluated after
        a failed attempt and before the backoff sleep.
        """
        return attempt.count > 1 and attempt.elapsed_ms(now_ms) > self.max_connection_time_ms


def sleep_uninterruptibly(seconds: float) -> None:
    """Block for ``seconds``; an interrupt ends the wait early but is not raised."""
    try:
        time.sleep(seconds)
    except KeyboardInterrupt:
        logger.warning("Interrupted during backoff wait; resuming delivery")
