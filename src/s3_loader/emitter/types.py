from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Union

from ..errors import Fatal, Retry


@dataclass(frozen=True)
class Delivered:
    """Upload attempt succeeded; ``key`` is where the object now lives."""

    key: str


AttemptOutcome = Union[Delivered, Retry, Fatal]


@dataclass(frozen=True)
class DeliveryAttempt:
    """State of one delivery loop.

    ``started_at_ms`` is fixed for the whole loop so every retry of a batch
    resolves to the same key; each retry produces a new value via :meth:`next`.
    """

    count: int
    started_at_ms: int
    backoff_period_ms: int

    @classmethod
    def first(cls, started_at_ms: int, backoff_period_ms: int) -> "DeliveryAttempt":
        return cls(count=1, started_at_ms=started_at_ms, backoff_period_ms=backoff_period_ms)

    @property
    def started_at(self) -> datetime:
        return datetime.fromtimestamp(self.started_at_ms / 1000.0, tz=timezone.utc)

    def elapsed_ms(self, now_ms: int) -> int:
        return now_ms - self.started_at_ms

    def next(self) -> "DeliveryAttempt":
        return replace(self, count=self.count + 1)
