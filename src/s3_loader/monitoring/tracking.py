"""
HTTP event tracking backend.

POSTs lifecycle events (startup, failed writes, forced shutdown) as JSON to a
collector endpoint. Delivery is best-effort: a bounded number of retries with
exponential backoff, then the event is dropped with a log line.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from loguru import logger

from ..models import format_tstamp
from .base import AttemptFailure, MonitoringBackend

STORAGE_NAME = "amazon_s3"


class TrackingBackend(MonitoringBackend):
    """Send loader lifecycle events to an HTTP collector.

    Example:
        backend = TrackingBackend("https://collector.example.com/events", app_id="s3-loader")
        backend.initialize()
    """

    name = "tracking"

    def __init__(
        self,
        endpoint: str,
        app_id: str = "s3-loader",
        *,
        timeout: float = 2.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.endpoint = endpoint
        self.app_id = app_id
        self.max_retries = max(1, max_retries)
        self.backoff_base = backoff_base
        self._client = client or httpx.Client(timeout=timeout)

    # --------------------------- events

    def initialize(self) -> None:
        self.track("app_initialized", {})

    def report_attempt_failure(self, failure: AttemptFailure) -> None:
        self.track(
            "storage_write_failed",
            {
                "storage": STORAGE_NAME,
                "failure_count": failure.attempt,
                "initial_failure_time": format_tstamp(failure.started_at),
                "last_retry_period": failure.backoff_period_ms,
                "message": failure.message,
            },
        )

    def report_shutdown(self) -> None:
        self.track("app_shutdown", {})

    def close(self) -> None:
        self._client.close()

    # --------------------------- transport

    def payload(self, event: str, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "event": event,
            "app_id": self.app_id,
            "dvce_created_tstamp": format_tstamp(datetime.now(timezone.utc)),
            "data": data,
        }

    def track(self, event: str, data: dict[str, Any]) -> bool:
        """Send one event. Returns True if the collector accepted it."""
        body = self.payload(event, data)
        for attempt in range(1, self.max_retries + 1):
            try:
                response = self._client.post(self.endpoint, json=body)
                if response.status_code < 400:
                    logger.debug(f"Tracked {event} (status={response.status_code})")
                    return True
                logger.warning(
                    f"Collector rejected {event}: status={response.status_code} "
                    f"attempt={attempt}/{self.max_retries}"
                )
            except httpx.HTTPError as exc:
                logger.warning(
                    f"Collector unreachable for {event}: {type(exc).__name__}: {exc} "
                    f"attempt={attempt}/{self.max_retries}"
                )
            if attempt < self.max_retries:
                time.sleep(self.backoff_base * (2 ** (attempt - 1)))

        logger.error(f"Dropping {event} event after {self.max_retries} attempts")
        return False
