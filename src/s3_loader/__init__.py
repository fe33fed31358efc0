"""
S3 Loader delivery core

Durably writes serialized batches to S3: retries indefinitely on transient
errors, halts the process when S3 is unreachable for too long, renders
date-templated destination keys and routes failed records to a dead-letter
sink.

Usage:
    from s3_loader import S3Emitter, NamedStream, get_settings

    emitter = S3Emitter.from_settings(get_settings())
    key = emitter.attempt_emit(NamedStream("part-0001.gz", payload))
"""

from .config import S3Config, Settings, get_settings
from .dynamic_path import decorate_path
from .datetime_pattern import format_datetime
from .models import (
    Batch,
    BatchMeta,
    EmitterInput,
    FailureRecord,
    NamedStream,
    RecordFailure,
    RecordSuccess,
)
from .emitter import BatchEmitter, FailureRouter, S3Emitter
from .monitoring import Monitoring, build_monitoring

__version__ = "1.0.0"
__all__ = [
    "S3Config",
    "Settings",
    "get_settings",
    "decorate_path",
    "format_datetime",
    "Batch",
    "BatchMeta",
    "EmitterInput",
    "FailureRecord",
    "NamedStream",
    "RecordFailure",
    "RecordSuccess",
    "BatchEmitter",
    "FailureRouter",
    "S3Emitter",
    "Monitoring",
    "build_monitoring",
]
