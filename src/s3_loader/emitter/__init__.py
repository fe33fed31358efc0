"""S3 Emitter

Delivery of serialized batches to S3:
- S3Emitter retry loop (fixed backoff, forced shutdown on timeout)
- BackoffPolicy and uninterruptible backoff sleep
- FailureRouter for records rejected upstream
- Dead-letter sinks (NDJSON file, Kinesis)
- BatchEmitter tying the above together per flush
"""

from ..errors import Fatal, Retry
from .types import AttemptOutcome, Delivered, DeliveryAttempt
from .policy import BackoffPolicy, sleep_uninterruptibly
from .s3_emitter import S3Emitter
from .sinks import FailureSink, KinesisFailureSink, NdjsonFailureSink, build_failure_sink
from .failures import FailureRouter
from .batch import BatchEmitter

__all__ = [
    # types
    "AttemptOutcome",
    "Delivered",
    "DeliveryAttempt",
    "Retry",
    "Fatal",
    # policies
    "BackoffPolicy",
    "sleep_uninterruptibly",
    # runtime
    "S3Emitter",
    "BatchEmitter",
    "FailureRouter",
    # sinks
    "FailureSink",
    "NdjsonFailureSink",
    "KinesisFailureSink",
    "build_failure_sink",
]
