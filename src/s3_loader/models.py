"""
Data models passed between the batching stage and the delivery core.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, validator

from .datetime_pattern import format_datetime

TSTAMP_FORMAT = "yyyy-MM-dd'T'HH:mm:ss.SSS'Z'"


@dataclass(frozen=True)
class NamedStream:
    """One serialized batch, ready to be written under a single key."""

    filename: str
    data: bytes
    directory: Optional[str] = None  # appended to the configured output directory

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RecordSuccess:
    """Record that made it through serialization/partitioning."""

    value: Any


@dataclass(frozen=True)
class RecordFailure:
    """Record rejected upstream, with the raw line and why it failed."""

    line: str
    errors: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("RecordFailure requires at least one error")
        object.__setattr__(self, "errors", tuple(self.errors))


EmitterInput = Union[RecordSuccess, RecordFailure]


def format_tstamp(ts: datetime) -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return format_datetime(ts, TSTAMP_FORMAT)


class FailureRecord(BaseModel):
    """Dead-letter payload for a single failed record."""

    line: str
    errors: List[str]
    failure_tstamp: str

    model_config = {"frozen": True}

    @validator("errors")
    def _non_empty(cls, v):
        if not v:
            raise ValueError("errors must not be empty")
        return v

    @classmethod
    def from_failure(cls, failure: RecordFailure, now: datetime) -> "FailureRecord":
        return cls(line=failure.line, errors=list(failure.errors), failure_tstamp=format_tstamp(now))

    def to_json(self) -> str:
        return self.model_dump_json()


@dataclass(frozen=True)
class BatchMeta:
    """Size and age of a batch, used for metrics."""

    earliest_tstamp: Optional[datetime]
    count: int

    def latency_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
        if self.earliest_tstamp is None:
            return None
        now = now or datetime.now(timezone.utc)
        earliest = self.earliest_tstamp
        if earliest.tzinfo is None:
            earliest = earliest.replace(tzinfo=timezone.utc)
        return max(0.0, (now - earliest).total_seconds())


@dataclass(frozen=True)
class Batch:
    """Output of one buffer flush: serialized streams plus per-record results."""

    streams: Sequence[NamedStream]
    inputs: Sequence[EmitterInput] = field(default_factory=tuple)
    meta: BatchMeta = field(default_factory=lambda: BatchMeta(None, 0))
