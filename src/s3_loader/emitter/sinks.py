"""
Dead-letter sinks for records that failed before reaching S3.

- NdjsonFailureSink: appends one payload per line to a local file
- KinesisFailureSink: writes each payload as a Kinesis record
- build_failure_sink: picks one of the above from settings
"""

from __future__ import annotations

import threading
import uuid
from pathlib import Path
from typing import Any, Optional, Protocol

import boto3
from loguru import logger

from ..config import Settings
from ..errors import ConfigurationError, DeadLetterError


class FailureSink(Protocol):
    def store(self, payload: str, partition_key: Optional[str], is_retry: bool) -> None:
        ...


class NdjsonFailureSink:
    """Append failure payloads to an NDJSON file.

    Thread-safe within a process.
    """

    def __init__(self, path: str | Path, mkdirs: bool = True) -> None:
        self.path = Path(path)
        if mkdirs:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def store(self, payload: str, partition_key: Optional[str] = None, is_retry: bool = False) -> None:
        line = payload.replace("\n", " ")
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def replay(self, max_records: int = 1000) -> list[str]:
        """Read back up to ``max_records`` stored payloads."""
        if not self.path.exists():
            return []
        out: list[str] = []
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.rstrip("\n")
                if line:
                    out.append(line)
                if len(out) >= max_records:
                    break
        return out


class KinesisFailureSink:
    """Write failure payloads to a Kinesis stream."""

    def __init__(
        self,
        stream_name: str,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.stream_name = stream_name
        self._client = client or boto3.client(
            "kinesis",
            region_name=region_name,
            endpoint_url=endpoint_url,
        )

    def store(self, payload: str, partition_key: Optional[str] = None, is_retry: bool = False) -> None:
        key = partition_key or str(uuid.uuid4())
        data = payload.encode("utf-8")
        try:
            response = self._client.put_record(
                StreamName=self.stream_name,
                PartitionKey=key,
                Data=data,
            )
        except Exception as exc:
            raise DeadLetterError(f"Kinesis put_record to {self.stream_name} failed: {exc}") from exc
        logger.debug(
            f"Bad row written stream={self.stream_name} seq={response.get('SequenceNumber', '')} "
            f"bytes={len(data)} retry={is_retry}"
        )


def build_failure_sink(settings: Settings) -> FailureSink:
    """Dead-letter sink from ``BAD_ROWS_PATH`` or ``BAD_ROWS_STREAM``.

    Exactly one of the two must be set.

    Raises:
        ConfigurationError: if both or neither are configured
    """
    if settings.BAD_ROWS_PATH and settings.BAD_ROWS_STREAM:
        raise ConfigurationError("Set only one of BAD_ROWS_PATH and BAD_ROWS_STREAM")
    if settings.BAD_ROWS_PATH:
        logger.info(f"Bad rows go to file {settings.BAD_ROWS_PATH}")
        return NdjsonFailureSink(settings.BAD_ROWS_PATH)
    if settings.BAD_ROWS_STREAM:
        logger.info(f"Bad rows go to Kinesis stream {settings.BAD_ROWS_STREAM}")
        return KinesisFailureSink(settings.BAD_ROWS_STREAM, region_name=settings.S3_REGION)
    raise ConfigurationError("No bad rows sink configured (BAD_ROWS_PATH or BAD_ROWS_STREAM)")
